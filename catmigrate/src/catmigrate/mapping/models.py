"""Schema mappings: plain functors and join/case query mappings."""

from __future__ import annotations

from typing import Annotated, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field

from catmigrate.errors import SchemaMismatch
from catmigrate.schema.presentation import Path, Schema


class DiagramEdge(BaseModel):
    """Edge of a diagram: ``path`` must send the row at ``src`` to the row at ``tgt``."""

    model_config = ConfigDict(frozen=True)

    src: str
    tgt: str
    path: Path
    name: Optional[str] = None


class Diagram(BaseModel):
    """Finite graph whose vertices are bound to objects of a schema."""

    model_config = ConfigDict(frozen=True)

    vertices: Dict[str, str]  # vertex name -> object, in declaration order
    edges: Tuple[DiagramEdge, ...] = ()


# Object images


class PlainOb(BaseModel):
    """Object sent to a single object."""

    kind: Literal["plain"] = "plain"
    ob: str


class JoinOb(BaseModel):
    """Object sent to the limit (join) of a diagram."""

    kind: Literal["join"] = "join"
    diagram: Diagram


class CaseOb(BaseModel):
    """Object sent to the colimit (tagged union) of a diagram."""

    kind: Literal["case"] = "case"
    diagram: Diagram


ObImage = Annotated[Union[PlainOb, JoinOb, CaseOb], Discriminator("kind")]


# Morphism and attribute images


class Project(BaseModel):
    """Pick the row bound to ``vertex`` (the row itself if None) and apply ``path``."""

    kind: Literal["project"] = "project"
    vertex: Optional[str] = None
    path: Path = Field(default_factory=Path)


class TupleOf(BaseModel):
    """Build a row of a join object, one component per vertex of its diagram."""

    kind: Literal["tuple"] = "tuple"
    components: Dict[str, Project]


class Inject(BaseModel):
    """Land in case ``case`` of a case object."""

    kind: Literal["inject"] = "inject"
    case: str
    image: Project = Field(default_factory=Project)


ArmImage = Annotated[Union[Project, TupleOf, Inject], Discriminator("kind")]


class Cases(BaseModel):
    """Dispatch on the case of a row of a case object, one arm per case."""

    kind: Literal["cases"] = "cases"
    arms: Dict[str, ArmImage]


HomImage = Annotated[Union[Project, TupleOf, Inject, Cases], Discriminator("kind")]


class SchemaMapping(BaseModel):
    """
    Query mapping from ``dom`` into ``codom``.

    Migrating along it turns an instance over ``codom`` into an instance
    over ``dom``. Every object of ``dom`` maps to a plain object, a join
    diagram or a case diagram of ``codom``; every morphism and attribute
    maps to a compatible image.
    """

    dom: Schema
    codom: Schema
    obs: Dict[str, ObImage]
    homs: Dict[str, HomImage] = Field(default_factory=dict)
    attrtypes: Dict[str, str] = Field(default_factory=dict)

    @property
    def is_plain(self) -> bool:
        return all(isinstance(image, PlainOb) for image in self.obs.values()) and all(
            isinstance(image, Project) and image.vertex is None for image in self.homs.values()
        )


class Functor(BaseModel):
    """
    Plain functor between schemas.

    ``ob_map`` covers objects and attribute types, ``hom_map`` covers
    morphisms and attributes.
    """

    dom: Schema
    codom: Schema
    ob_map: Dict[str, str]
    hom_map: Dict[str, Path] = Field(default_factory=dict)

    @classmethod
    def identity(cls, schema: Schema) -> "Functor":
        return cls(
            dom=schema,
            codom=schema,
            ob_map={name: name for name in schema.obs + schema.attrtypes},
            hom_map={g.name: Path.of(g.name) for g in schema.homs + schema.attrs},
        )

    def map_ob(self, name: str) -> str:
        try:
            return self.ob_map[name]
        except KeyError:
            raise SchemaMismatch(f"Functor has no image for object '{name}'") from None

    def map_path(self, path: Path) -> Path:
        """Image of a path of ``dom`` as a path of ``codom``."""
        dom, _ = self.dom.path_type(path)
        result = Path.identity(self.map_ob(dom))
        for step in path.steps:
            try:
                image = self.hom_map[step]
            except KeyError:
                raise SchemaMismatch(f"Functor has no image for morphism '{step}'") from None
            result = result.then(image)
        return result

    def compose(self, other: "Functor") -> "Functor":
        """Functor doing ``self`` first and then ``other``."""
        if self.codom != other.dom:
            raise SchemaMismatch(
                f"Cannot compose functors into '{self.codom.name}' and out of '{other.dom.name}'"
            )
        hom_map = {}
        for name, path in self.hom_map.items():
            start = path.start or self.map_ob(self.dom.generator(name).dom)
            hom_map[name] = other.map_path(Path(steps=path.steps, start=start))
        return Functor(
            dom=self.dom,
            codom=other.codom,
            ob_map={name: other.map_ob(target) for name, target in self.ob_map.items()},
            hom_map=hom_map,
        )

    def to_mapping(self) -> SchemaMapping:
        """Same functor as a query mapping with only plain entries."""
        return SchemaMapping(
            dom=self.dom,
            codom=self.codom,
            obs={name: PlainOb(ob=target) for name, target in self.ob_map.items()
                 if self.dom.has_ob(name)},
            homs={name: Project(path=path) for name, path in self.hom_map.items()},
            attrtypes={name: target for name, target in self.ob_map.items()
                       if self.dom.has_attrtype(name)},
        )

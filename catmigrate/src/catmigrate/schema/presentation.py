"""Finitely presented schemas: objects, morphisms, attributes and paths."""

from collections import deque
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from catmigrate.config.settings import get_settings
from catmigrate.errors import AritySizeMismatch, MalformedMapping, MigrationError, SchemaMismatch


class Path(BaseModel):
    """Path expression: a composite of generators, read left to right.

    The empty path is the identity on ``start``. For non-empty paths
    ``start`` is optional and only checked when given.
    """

    model_config = ConfigDict(frozen=True)

    steps: Tuple[str, ...] = ()
    start: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def coerce_shorthand(cls, data: Any) -> Any:
        """Accept ``"f"``, ``["f", "g"]`` and ``{"id": "X"}`` shorthands."""
        if isinstance(data, str):
            return {"steps": (data,)}
        if isinstance(data, (list, tuple)):
            return {"steps": tuple(data)}
        if isinstance(data, dict) and "id" in data:
            return {"steps": (), "start": data["id"]}
        return data

    @classmethod
    def of(cls, *steps: str) -> "Path":
        return cls(steps=tuple(steps))

    @classmethod
    def identity(cls, ob: str) -> "Path":
        return cls(steps=(), start=ob)

    @property
    def is_identity(self) -> bool:
        return not self.steps

    def then(self, other: "Path") -> "Path":
        """Compose with ``other`` (this path first)."""
        start = self.start if (self.start is not None or self.steps) else other.start
        return Path(steps=self.steps + other.steps, start=start)

    def __str__(self) -> str:
        if not self.steps:
            return f"id({self.start})" if self.start else "id"
        return ".".join(self.steps)


def as_path(value: Any) -> Path:
    """Coerce a generator name, a sequence of names or a Path into a Path."""
    if isinstance(value, Path):
        return value
    return Path.model_validate(value)


class Hom(BaseModel):
    """Morphism generator between two objects."""

    model_config = ConfigDict(frozen=True)

    name: str
    dom: str
    codom: str


class Attr(BaseModel):
    """Attribute generator from an object to an attribute type."""

    model_config = ConfigDict(frozen=True)

    name: str
    dom: str
    codom: str


class Equation(BaseModel):
    """Declared equality between two parallel paths."""

    model_config = ConfigDict(frozen=True)

    lhs: Path
    rhs: Path


class Schema(BaseModel):
    """Finite presentation of a schema."""

    model_config = ConfigDict(frozen=True)

    name: str = "Schema"
    obs: Tuple[str, ...]
    homs: Tuple[Hom, ...] = ()
    attrtypes: Tuple[str, ...] = ()
    attrs: Tuple[Attr, ...] = ()
    equations: Tuple[Equation, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def check_generators(self) -> "Schema":
        """Reject duplicate names and dangling domain/codomain references."""
        names: List[str] = (
            list(self.obs)
            + [h.name for h in self.homs]
            + list(self.attrtypes)
            + [a.name for a in self.attrs]
        )
        seen = set()
        for name in names:
            if name in seen:
                raise ValueError(f"Duplicate generator name '{name}' in schema '{self.name}'")
            seen.add(name)

        obs = set(self.obs)
        for h in self.homs:
            if h.dom not in obs or h.codom not in obs:
                raise ValueError(
                    f"Morphism '{h.name}: {h.dom} -> {h.codom}' references an undeclared object"
                )
        for a in self.attrs:
            if a.dom not in obs:
                raise ValueError(f"Attribute '{a.name}' has undeclared domain '{a.dom}'")
            if a.codom not in self.attrtypes:
                raise ValueError(f"Attribute '{a.name}' has undeclared attribute type '{a.codom}'")

        for eq in self.equations:
            try:
                lhs_type = self.path_type(eq.lhs)
                rhs_type = self.path_type(eq.rhs, start=lhs_type[0])
            except MigrationError as e:
                raise ValueError(f"Invalid equation {eq.lhs} = {eq.rhs}: {e}") from e
            if lhs_type != rhs_type:
                raise ValueError(
                    f"Equation {eq.lhs} = {eq.rhs} relates paths of different types "
                    f"{lhs_type} and {rhs_type}"
                )
        return self

    # Generator lookup

    def _indexes(self) -> Tuple[Dict[str, Hom], Dict[str, Attr]]:
        return {h.name: h for h in self.homs}, {a.name: a for a in self.attrs}

    def has_ob(self, name: str) -> bool:
        return name in self.obs

    def has_attrtype(self, name: str) -> bool:
        return name in self.attrtypes

    def has_hom(self, name: str) -> bool:
        return name in self._indexes()[0]

    def has_attr(self, name: str) -> bool:
        return name in self._indexes()[1]

    def hom(self, name: str) -> Hom:
        try:
            return self._indexes()[0][name]
        except KeyError:
            raise SchemaMismatch(f"Schema '{self.name}' has no morphism '{name}'") from None

    def attr(self, name: str) -> Attr:
        try:
            return self._indexes()[1][name]
        except KeyError:
            raise SchemaMismatch(f"Schema '{self.name}' has no attribute '{name}'") from None

    def generator(self, name: str):
        """Look up a morphism or attribute generator by name."""
        homs, attrs = self._indexes()
        if name in homs:
            return homs[name]
        if name in attrs:
            return attrs[name]
        raise SchemaMismatch(f"Schema '{self.name}' has no morphism or attribute '{name}'")

    def homs_from(self, ob: str) -> List[Hom]:
        return [h for h in self.homs if h.dom == ob]

    def attrs_from(self, ob: str) -> List[Attr]:
        return [a for a in self.attrs if a.dom == ob]

    def columns_of(self, ob: str) -> List[str]:
        """Names of every morphism and attribute out of ``ob``, homs first."""
        return [h.name for h in self.homs_from(ob)] + [a.name for a in self.attrs_from(ob)]

    # Paths

    def path_type(self, path: Path, start: Optional[str] = None) -> Tuple[str, str]:
        """
        Compute the (domain, codomain) of a path.

        Args:
            path: Path to type
            start: Expected domain; required for identities with no ``start``

        Returns:
            Tuple of domain and codomain names

        Raises:
            SchemaMismatch: If the path uses an undeclared generator or object
            AritySizeMismatch: If consecutive generators do not compose
            MalformedMapping: If an identity path has no object to live on
        """
        expected = path.start or start
        if path.start is not None and start is not None and path.start != start:
            raise AritySizeMismatch(
                f"Path {path} starts at '{path.start}' but is used from '{start}'"
            )

        if not path.steps:
            if expected is None:
                raise MalformedMapping("Identity path has no object to start from")
            if not (self.has_ob(expected) or self.has_attrtype(expected)):
                raise SchemaMismatch(f"Schema '{self.name}' has no object '{expected}'")
            return expected, expected

        dom: Optional[str] = None
        current: Optional[str] = None
        last = len(path.steps) - 1
        for i, step in enumerate(path.steps):
            gen = self.generator(step)
            if isinstance(gen, Attr) and i != last:
                raise AritySizeMismatch(
                    f"Attribute '{step}' can only be the last step of path {path}"
                )
            if current is None:
                dom = gen.dom
                if expected is not None and gen.dom != expected:
                    raise AritySizeMismatch(
                        f"Path {path} starts at '{gen.dom}', expected '{expected}'"
                    )
            elif gen.dom != current:
                raise AritySizeMismatch(
                    f"Cannot compose path {path}: '{step}' starts at '{gen.dom}', "
                    f"previous step ends at '{current}'"
                )
            current = gen.codom
        return dom, current

    def ends_in_attr(self, path: Path) -> bool:
        return bool(path.steps) and self.has_attr(path.steps[-1])

    def paths_equal(self, p: Path, q: Path, limit: Optional[int] = None) -> bool:
        """
        Decide whether two paths are equal modulo the declared equations.

        Searches rewrites breadth-first from both paths at once, using every
        equation in both directions, until the two searches meet. An equation
        with an identity side can also insert its other side wherever the
        path passes through the right object; such insertions never grow a
        path beyond the longer input plus the longest equation side. When the
        search budget runs out the paths count as different.

        Args:
            p: First path
            q: Second path
            limit: Maximum number of visited paths (defaults to settings)

        Returns:
            True if the searches from ``p`` and ``q`` meet
        """
        start = p.start or q.start
        p_type = self.path_type(p, start=start)
        if p_type != self.path_type(q, start=start):
            return False
        if p.steps == q.steps:
            return True
        rules = self._rewrite_rules()
        if not rules:
            return False

        budget = limit if limit is not None else get_settings().path_search_limit
        longest = max(len(p.steps), len(q.steps)) + max(len(dst) for _, dst, _ in rules)
        dom = p_type[0]

        seen = ({p.steps}, {q.steps})
        queues = (deque([p.steps]), deque([q.steps]))
        side = 0
        while (queues[0] or queues[1]) and len(seen[0]) + len(seen[1]) < budget:
            if not queues[side]:
                side = 1 - side
            word = queues[side].popleft()
            for rewritten in self._rewrites(word, dom, rules, longest):
                if rewritten in seen[1 - side]:
                    return True
                if rewritten not in seen[side]:
                    seen[side].add(rewritten)
                    queues[side].append(rewritten)
            side = 1 - side
        return False

    def _rewrite_rules(self) -> List[Tuple[Tuple[str, ...], Tuple[str, ...], str]]:
        """Equations as ``(find, replace, object)`` rules, each in both directions."""
        rules = []
        for eq in self.equations:
            if not eq.lhs.steps and not eq.rhs.steps:
                continue
            ob = self.path_type(eq.lhs if eq.lhs.steps else eq.rhs)[0]
            rules.append((eq.lhs.steps, eq.rhs.steps, ob))
            rules.append((eq.rhs.steps, eq.lhs.steps, ob))
        return rules

    def _rewrites(self, word: Tuple[str, ...], dom: str, rules, longest: int):
        # Object reached after each prefix of the word
        objects = [dom]
        for step in word:
            objects.append(self.generator(step).codom)
        for src, dst, ob in rules:
            if src:
                width = len(src)
                for i in range(len(word) - width + 1):
                    if word[i:i + width] == src:
                        yield word[:i] + dst + word[i + width:]
            elif len(word) + len(dst) <= longest:
                for i, here in enumerate(objects):
                    if here == ob:
                        yield word[:i] + dst + word[i:]

    def extend(
        self,
        name: str,
        obs: Iterable[str] = (),
        homs: Iterable[Hom] = (),
        attrtypes: Iterable[str] = (),
        attrs: Iterable[Attr] = (),
        equations: Iterable[Equation] = (),
    ) -> "Schema":
        """Return a new schema with extra generators and equations."""
        return Schema(
            name=name,
            obs=self.obs + tuple(obs),
            homs=self.homs + tuple(homs),
            attrtypes=self.attrtypes + tuple(attrtypes),
            attrs=self.attrs + tuple(attrs),
            equations=self.equations + tuple(equations),
        )

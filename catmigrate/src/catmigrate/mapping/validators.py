"""Construction-time validation of functors and query mappings.

Every check here runs before any instance is touched. Validators return a
normalised copy in which every path carries its start object and omitted
case arms have been filled in.
"""

from typing import Dict, Iterable, Union

from catmigrate.config.logging import get_logger
from catmigrate.errors import AritySizeMismatch, MalformedMapping, NonFunctorial, SchemaMismatch
from catmigrate.mapping.models import (
    CaseOb,
    Cases,
    Diagram,
    DiagramEdge,
    Functor,
    Inject,
    JoinOb,
    ObImage,
    PlainOb,
    Project,
    SchemaMapping,
    TupleOf,
)
from catmigrate.schema.presentation import Path, Schema

logger = get_logger(__name__)


def _check_keys(kind: str, given: Iterable[str], expected: Iterable[str], error=SchemaMismatch) -> None:
    given, expected = list(given), list(expected)
    missing = [name for name in expected if name not in given]
    extra = [name for name in given if name not in expected]
    if missing:
        raise error(
            f"Mapping has no image for {kind} {missing}",
            details={"kind": kind, "missing": missing},
        )
    if extra:
        raise error(
            f"Mapping assigns images to unknown {kind} {extra}",
            details={"kind": kind, "unknown": extra},
        )


def validate_functor(functor: Functor, check_equations: bool = True) -> Functor:
    """
    Validate a plain functor and resolve the start of every path.

    Args:
        functor: Functor to check
        check_equations: Whether equations of the domain must be preserved

    Returns:
        Normalised functor

    Raises:
        SchemaMismatch: For missing, unknown or dangling generators
        AritySizeMismatch: If an image path has the wrong domain or codomain
        NonFunctorial: If an equation of the domain is not preserved
    """
    dom, codom = functor.dom, functor.codom
    _check_keys("objects", functor.ob_map, dom.obs + dom.attrtypes)
    _check_keys("morphisms", functor.hom_map, [g.name for g in dom.homs + dom.attrs])

    for name, target in functor.ob_map.items():
        if dom.has_ob(name) and not codom.has_ob(target):
            raise SchemaMismatch(f"Object '{name}' is sent to '{target}', not an object of '{codom.name}'")
        if dom.has_attrtype(name) and not codom.has_attrtype(target):
            raise SchemaMismatch(
                f"Attribute type '{name}' is sent to '{target}', not an attribute type of '{codom.name}'"
            )

    hom_map: Dict[str, Path] = {}
    for gen in dom.homs + dom.attrs:
        path = functor.hom_map[gen.name]
        start, stop = functor.ob_map[gen.dom], functor.ob_map[gen.codom]
        actual = codom.path_type(path, start=start)
        if actual != (start, stop):
            raise AritySizeMismatch(
                f"'{gen.name}: {gen.dom} -> {gen.codom}' is sent to {path}: "
                f"{actual[0]} -> {actual[1]}, expected {start} -> {stop}",
                details={"generator": gen.name},
            )
        hom_map[gen.name] = Path(steps=path.steps, start=start)

    resolved = Functor(dom=dom, codom=codom, ob_map=dict(functor.ob_map), hom_map=hom_map)

    if check_equations:
        for eq in dom.equations:
            lhs, rhs = resolved.map_path(eq.lhs), resolved.map_path(eq.rhs)
            if not codom.paths_equal(lhs, rhs):
                raise NonFunctorial(
                    f"Equation {eq.lhs} = {eq.rhs} of '{dom.name}' is sent to "
                    f"{lhs} and {rhs}, which are not equal in '{codom.name}'",
                    details={"lhs": str(eq.lhs), "rhs": str(eq.rhs)},
                )

    logger.debug(f"Validated functor {dom.name} -> {codom.name}")
    return resolved


def _validate_diagram(diagram: Diagram, schema: Schema, where: str, named_rows: bool) -> Diagram:
    for vertex, ob in diagram.vertices.items():
        if not schema.has_ob(ob):
            raise SchemaMismatch(f"{where}: vertex '{vertex}' is bound to unknown object '{ob}'")
        if named_rows and (not vertex.isidentifier() or vertex.startswith("_")):
            raise MalformedMapping(
                f"{where}: join vertex '{vertex}' must be an identifier not starting with '_'"
            )
    edges = []
    for edge in diagram.edges:
        for end in (edge.src, edge.tgt):
            if end not in diagram.vertices:
                raise MalformedMapping(f"{where}: edge refers to missing vertex '{end}'")
        start, stop = diagram.vertices[edge.src], diagram.vertices[edge.tgt]
        if schema.path_type(edge.path, start=start) != (start, stop):
            raise AritySizeMismatch(
                f"{where}: edge {edge.src} -> {edge.tgt} is labelled by {edge.path}, "
                f"which does not run from '{start}' to '{stop}'"
            )
        edges.append(
            DiagramEdge(src=edge.src, tgt=edge.tgt, name=edge.name,
                        path=Path(steps=edge.path.steps, start=start))
        )
    return Diagram(vertices=dict(diagram.vertices), edges=tuple(edges))


def _check_project(image: Project, source: ObImage, target_ob: str, schema: Schema, where: str) -> Project:
    if isinstance(source, PlainOb):
        if image.vertex is not None:
            raise MalformedMapping(f"{where}: plain source has no vertex '{image.vertex}'")
        start = source.ob
    elif isinstance(source, JoinOb):
        if image.vertex is None:
            raise MalformedMapping(f"{where}: a component of the join must be selected")
        if image.vertex not in source.diagram.vertices:
            raise MalformedMapping(f"{where}: join has no vertex '{image.vertex}'")
        start = source.diagram.vertices[image.vertex]
    else:
        raise MalformedMapping(f"{where}: images out of a case object must dispatch on its cases")

    actual = schema.path_type(image.path, start=start)
    if actual[1] != target_ob:
        raise AritySizeMismatch(
            f"{where}: path {image.path} ends at '{actual[1]}', expected '{target_ob}'"
        )
    return Project(vertex=image.vertex, path=Path(steps=image.path.steps, start=start))


def _infer_arm(case: str, ob: str, target: ObImage):
    if isinstance(target, PlainOb) and target.ob == ob:
        return Project(path=Path.identity(ob))
    if isinstance(target, CaseOb) and target.diagram.vertices.get(case) == ob:
        return Inject(case=case, image=Project(path=Path.identity(ob)))
    return None


def _check_image(image, source: ObImage, target: ObImage, schema: Schema, where: str):
    if isinstance(image, Cases):
        if not isinstance(source, CaseOb):
            raise MalformedMapping(f"{where}: only case objects can dispatch on cases")
        vertices = source.diagram.vertices
        unknown = [case for case in image.arms if case not in vertices]
        if unknown:
            raise MalformedMapping(f"{where}: unknown cases {unknown}")
        arms = {}
        for case, ob in vertices.items():
            arm = image.arms.get(case)
            if arm is None:
                arm = _infer_arm(case, ob, target)
                if arm is None:
                    raise MalformedMapping(f"{where}: no arm given for case '{case}'")
            arms[case] = _check_image(arm, PlainOb(ob=ob), target, schema, f"{where}[{case}]")
        return Cases(arms=arms)

    if isinstance(source, CaseOb):
        raise MalformedMapping(f"{where}: images out of a case object must dispatch on its cases")

    if isinstance(image, Project):
        if not isinstance(target, PlainOb):
            raise MalformedMapping(f"{where}: a projection must land in a plain object")
        return _check_project(image, source, target.ob, schema, where)

    if isinstance(image, TupleOf):
        if not isinstance(target, JoinOb):
            raise MalformedMapping(f"{where}: a tuple must land in a join object")
        _check_keys("join components", image.components, target.diagram.vertices, MalformedMapping)
        return TupleOf(components={
            vertex: _check_project(image.components[vertex], source, ob, schema, f"{where}.{vertex}")
            for vertex, ob in target.diagram.vertices.items()
        })

    if isinstance(image, Inject):
        if not isinstance(target, CaseOb):
            raise MalformedMapping(f"{where}: an injection must land in a case object")
        if image.case not in target.diagram.vertices:
            raise MalformedMapping(f"{where}: target has no case '{image.case}'")
        ob = target.diagram.vertices[image.case]
        return Inject(case=image.case, image=_check_project(image.image, source, ob, schema, where))

    raise MalformedMapping(f"{where}: unsupported image {type(image).__name__}")


def validate_mapping(mapping: Union[SchemaMapping, Functor]) -> SchemaMapping:
    """
    Validate a query mapping once, before any instance is migrated.

    Args:
        mapping: Query mapping (a functor is converted first)

    Returns:
        Normalised mapping with resolved paths and inferred case arms

    Raises:
        SchemaMismatch: For missing, unknown or dangling generators
        MalformedMapping: For missing vertices or images of the wrong kind
        AritySizeMismatch: For paths with the wrong domain or codomain
    """
    if isinstance(mapping, Functor):
        mapping = validate_functor(mapping, check_equations=False).to_mapping()

    dom, codom = mapping.dom, mapping.codom
    _check_keys("objects", mapping.obs, dom.obs)
    _check_keys("attribute types", mapping.attrtypes, dom.attrtypes)
    _check_keys("morphisms", mapping.homs, [g.name for g in dom.homs + dom.attrs])

    for name, target in mapping.attrtypes.items():
        if not codom.has_attrtype(target):
            raise SchemaMismatch(
                f"Attribute type '{name}' is sent to '{target}', not an attribute type of '{codom.name}'"
            )

    obs: Dict[str, ObImage] = {}
    for name in dom.obs:
        image = mapping.obs[name]
        if isinstance(image, PlainOb):
            if not codom.has_ob(image.ob):
                raise SchemaMismatch(f"Object '{name}' is sent to unknown object '{image.ob}'")
            obs[name] = image
        elif isinstance(image, JoinOb):
            obs[name] = JoinOb(diagram=_validate_diagram(image.diagram, codom, name, named_rows=True))
        else:
            obs[name] = CaseOb(diagram=_validate_diagram(image.diagram, codom, name, named_rows=False))

    homs = {}
    for gen in dom.homs:
        homs[gen.name] = _check_image(
            mapping.homs[gen.name], obs[gen.dom], obs[gen.codom], codom, gen.name
        )
    for gen in dom.attrs:
        target = PlainOb(ob=mapping.attrtypes[gen.codom])
        homs[gen.name] = _check_image(mapping.homs[gen.name], obs[gen.dom], target, codom, gen.name)

    logger.debug(
        f"Validated mapping {dom.name} -> {codom.name}: "
        f"{sum(isinstance(o, JoinOb) for o in obs.values())} join, "
        f"{sum(isinstance(o, CaseOb) for o in obs.values())} case objects"
    )
    return SchemaMapping(dom=dom, codom=codom, obs=obs, homs=homs, attrtypes=dict(mapping.attrtypes))

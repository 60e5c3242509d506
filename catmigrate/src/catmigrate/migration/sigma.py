"""Sigma migration: pushing an instance forward along a functor.

The left Kan extension is computed as a chase. Every source row is seeded
as an element of the target object it is sent to, the source morphisms
and attributes are pushed along their image paths, and elements are then
merged (with congruence closure over the morphism tables) until the
target equations hold and every target morphism is total. Equivalence
classes become the rows of the result.
"""

import time
from collections import deque
from typing import Any, Dict, List, Optional, Set

from catmigrate.config.logging import get_logger
from catmigrate.config.settings import get_settings
from catmigrate.errors import NonFunctorial, SchemaMismatch, UnreachableMorphism
from catmigrate.instance.instance import Instance
from catmigrate.mapping.models import Functor
from catmigrate.mapping.validators import validate_functor
from catmigrate.migration.unionfind import UnionFind
from catmigrate.schema.presentation import Path, Schema

logger = get_logger(__name__)


def free_cycle(functor: Functor) -> Optional[List[str]]:
    """
    Find target morphisms that would have to be generated forever.

    A morphism of the codomain is free when no source morphism or attribute
    is sent to a path through it. Free morphisms mentioned by an equation
    are assumed to be cut off by it. Any cycle of the remaining free
    morphisms among objects reachable from the functor's image makes the
    pushforward infinite.

    Returns:
        Names of the morphisms on one such cycle, or None
    """
    codom = functor.codom
    used: Set[str] = {step for path in functor.hom_map.values() for step in path.steps}
    for eq in codom.equations:
        used.update(eq.lhs.steps)
        used.update(eq.rhs.steps)

    reachable = {functor.ob_map[ob] for ob in functor.dom.obs}
    queue = deque(reachable)
    while queue:
        ob = queue.popleft()
        for h in codom.homs_from(ob):
            if h.codom not in reachable:
                reachable.add(h.codom)
                queue.append(h.codom)

    free = [h for h in codom.homs if h.name not in used and h.dom in reachable]
    out: Dict[str, List] = {}
    for h in free:
        out.setdefault(h.dom, []).append(h)

    # Depth-first search for a back edge
    state: Dict[str, int] = {}
    trail: List[str] = []

    def visit(ob: str) -> Optional[List[str]]:
        state[ob] = 1
        for h in out.get(ob, []):
            trail.append(h.name)
            if state.get(h.codom) == 1:
                return list(trail)
            if h.codom not in state:
                found = visit(h.codom)
                if found:
                    return found
            trail.pop()
        state[ob] = 2
        return None

    for ob in out:
        if ob not in state:
            found = visit(ob)
            if found:
                return found
    return None


class _Chase:
    """Mutable state of one Sigma evaluation."""

    def __init__(self, schema: Schema, max_rows: int):
        self.schema = schema
        self.max_rows = max_rows
        self.uf = UnionFind()
        self.elem_ob: List[str] = []
        self.members: Dict[str, List[int]] = {ob: [] for ob in schema.obs}
        self.homs: Dict[str, Dict[int, int]] = {h.name: {} for h in schema.homs}
        self.attrs: Dict[str, Dict[int, Any]] = {a.name: {} for a in schema.attrs}
        self.generated = 0
        self.version = 0

    def new(self, ob: str, seed: bool = False) -> int:
        """Add an element of ``ob``; only non-seed elements count against ``max_rows``."""
        if not seed:
            if self.generated >= self.max_rows:
                raise UnreachableMorphism(
                    f"Pushforward into '{self.schema.name}' generated more than {self.max_rows} rows; "
                    f"some morphism is generated without bound",
                    details={"object": ob, "max_rows": self.max_rows},
                )
            self.generated += 1
        element = self.uf.add()
        self.elem_ob.append(ob)
        self.members[ob].append(element)
        self.version += 1
        return element

    def get(self, hom: str, element: int) -> Optional[int]:
        value = self.homs[hom].get(self.uf.find(element))
        return None if value is None else self.uf.find(value)

    def set_hom(self, hom: str, element: int, value: int) -> None:
        root = self.uf.find(element)
        current = self.homs[hom].get(root)
        if current is None:
            self.homs[hom][root] = value
            self.version += 1
        else:
            self.merge(current, value)

    def set_attr(self, attr: str, element: int, value: Any) -> None:
        root = self.uf.find(element)
        table = self.attrs[attr]
        if root not in table:
            table[root] = value
            self.version += 1
        elif table[root] != value:
            raise NonFunctorial(
                f"Attribute '{attr}' receives both {table[root]!r} and {value!r} for one row "
                f"of '{self.elem_ob[root]}'",
                details={"attribute": attr, "values": [table[root], value]},
            )

    def merge(self, a: int, b: int) -> None:
        """Identify two elements and close the morphism tables under congruence."""
        pending = deque([(a, b)])
        while pending:
            x, y = pending.popleft()
            merged = self.uf.union(x, y)
            if merged is None:
                continue
            root, absorbed = merged
            self.version += 1
            for table in self.homs.values():
                if absorbed in table:
                    value = table.pop(absorbed)
                    if root in table:
                        pending.append((table[root], value))
                    else:
                        table[root] = value
            for name, table in self.attrs.items():
                if absorbed in table:
                    value = table.pop(absorbed)
                    if root in table and table[root] != value:
                        raise NonFunctorial(
                            f"Attribute '{name}' receives both {table[root]!r} and {value!r} "
                            f"after identifying rows of '{self.elem_ob[root]}'",
                            details={"attribute": name, "values": [table[root], value]},
                        )
                    table[root] = value

    def follow(self, element: int, steps) -> int:
        """Walk morphism steps from ``element``, generating missing targets."""
        current = element
        for step in steps:
            nxt = self.get(step, current)
            if nxt is None:
                nxt = self.new(self.schema.hom(step).codom)
                self.set_hom(step, current, nxt)
            current = nxt
        return current

    def roots(self, ob: str) -> List[int]:
        return [e for e in list(self.members[ob]) if self.uf.find(e) == e]

    def apply_equation(self, lhs: Path, rhs: Path, element: int) -> None:
        if self.schema.ends_in_attr(lhs):
            left = self.follow(element, lhs.steps[:-1])
            right = self.follow(element, rhs.steps[:-1])
            lattr, rattr = lhs.steps[-1], rhs.steps[-1]
            lroot, rroot = self.uf.find(left), self.uf.find(right)
            if lroot in self.attrs[lattr]:
                self.set_attr(rattr, right, self.attrs[lattr][lroot])
            if rroot in self.attrs[rattr]:
                self.set_attr(lattr, left, self.attrs[rattr][rroot])
            return
        left = self.follow(element, lhs.steps)
        right = self.follow(element, rhs.steps)
        if self.uf.find(left) != self.uf.find(right):
            self.merge(left, right)


class SigmaMigration:
    """
    Left Kan extension along a functor ``F: C -> D``.

    Turns an instance over ``C`` into an instance over ``D``. The functor is
    validated once at construction, including preservation of the
    equations of ``C``.
    """

    def __init__(self, functor: Functor, max_rows: Optional[int] = None):
        self.functor = validate_functor(functor)
        self.max_rows = max_rows or get_settings().sigma_max_rows
        cycle = free_cycle(self.functor)
        if cycle:
            raise UnreachableMorphism(
                f"Morphisms {cycle} of '{self.codom.name}' are outside the image of the functor "
                f"and would generate infinitely many rows",
                details={"morphisms": cycle},
            )

    @property
    def dom(self):
        return self.functor.dom

    @property
    def codom(self):
        return self.functor.codom

    def _seed(self, chase: _Chase, instance: Instance) -> Dict[str, List[int]]:
        seeded = {}
        for ob in self.dom.obs:
            target = self.functor.ob_map[ob]
            seeded[ob] = [chase.new(target, seed=True) for _ in instance.parts(ob)]
        return seeded

    def _propagate(self, chase: _Chase, instance: Instance, seeded: Dict[str, List[int]]) -> None:
        for h in self.dom.homs:
            path = self.functor.hom_map[h.name]
            sources, targets = seeded[h.dom], seeded[h.codom]
            for row, value in enumerate(instance[h.name]):
                if path.is_identity:
                    chase.merge(sources[row], targets[value])
                else:
                    last = chase.follow(sources[row], path.steps[:-1])
                    chase.set_hom(path.steps[-1], last, targets[value])
        for a in self.dom.attrs:
            path = self.functor.hom_map[a.name]
            sources = seeded[a.dom]
            for row, value in enumerate(instance[a.name]):
                last = chase.follow(sources[row], path.steps[:-1])
                chase.set_attr(path.steps[-1], last, value)

    def _saturate(self, chase: _Chase) -> int:
        """Apply equations and generate missing morphism values until nothing changes."""
        rounds = 0
        while True:
            rounds += 1
            before = chase.version
            for eq in self.codom.equations:
                ob, _ = self.codom.path_type(eq.lhs)
                for element in chase.roots(ob):
                    chase.apply_equation(eq.lhs, eq.rhs, element)
            for h in self.codom.homs:
                for element in chase.roots(h.dom):
                    chase.follow(element, (h.name,))
            if chase.version == before:
                return rounds

    def _build(self, chase: _Chase) -> Instance:
        find = chase.uf.find
        numbering: Dict[int, int] = {}
        counts: Dict[str, int] = {}
        for ob in self.codom.obs:
            n = 0
            for element in chase.members[ob]:
                root = find(element)
                if root not in numbering:
                    numbering[root] = n
                    n += 1
            counts[ob] = n

        columns: Dict[str, List[Any]] = {}
        for h in self.codom.homs:
            column = [0] * counts[h.dom]
            for root in chase.roots(h.dom):
                column[numbering[root]] = numbering[chase.get(h.name, root)]
            columns[h.name] = column
        for a in self.codom.attrs:
            column = [None] * counts[a.dom]
            for root in chase.roots(a.dom):
                column[numbering[root]] = chase.attrs[a.name].get(root)
            columns[a.name] = column
        return Instance.from_columns(self.codom, counts, columns)

    def __call__(self, instance: Instance) -> Instance:
        """
        Push ``instance`` forward into a fresh instance over ``F.codom``.

        Args:
            instance: Instance over ``F.dom``

        Returns:
            New instance over ``F.codom``

        Raises:
            NonFunctorial: If identified rows carry different attribute values
            UnreachableMorphism: If free generation exceeds the row limit
        """
        if instance.schema != self.dom:
            raise SchemaMismatch(
                f"Sigma migration expects an instance of '{self.dom.name}', "
                f"got '{instance.schema.name}'"
            )
        start = time.time()
        chase = _Chase(self.codom, self.max_rows)
        seeded = self._seed(chase, instance)
        self._propagate(chase, instance, seeded)
        rounds = self._saturate(chase)
        result = self._build(chase)
        logger.debug(
            f"  Chase settled after {rounds} rounds over {len(chase.uf)} elements "
            f"({chase.generated} generated)"
        )
        logger.info(
            f"Sigma migration {self.dom.name} -> {self.codom.name} completed: "
            f"{result} in {time.time() - start:.3f}s"
        )
        return result

    def migrate_into(self, target: Instance, instance: Instance) -> Instance:
        """Append the pushed-forward rows to ``target`` as a disjoint union."""
        if target.schema != self.codom:
            raise SchemaMismatch(
                f"Cannot merge an instance of '{self.codom.name}' into one of '{target.schema.name}'"
            )
        target.add_instance(self(instance))
        return target

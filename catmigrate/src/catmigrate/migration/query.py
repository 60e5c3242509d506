"""Conjunctive (join) and agglomerative (case) migrations.

A query mapping sends every object of its domain to a plain object, to the
limit of a diagram (a join) or to the colimit of a diagram (a tagged
union). Each object is evaluated against the frozen source instance into
an ``ObjectTable``; morphisms are then evaluated by projecting or
dispatching on those tables and looking the results up in the table of
their codomain.
"""

import time
from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

import numpy as np
import pandas as pd

from catmigrate.config.logging import get_logger
from catmigrate.config.settings import get_settings
from catmigrate.errors import MalformedMapping, NonFunctorial, SchemaMismatch
from catmigrate.instance.instance import Instance
from catmigrate.mapping.models import (
    Cases,
    Diagram,
    Functor,
    Inject,
    JoinOb,
    ObImage,
    PlainOb,
    Project,
    SchemaMapping,
    TupleOf,
)
from catmigrate.mapping.validators import validate_mapping
from catmigrate.migration.unionfind import UnionFind

logger = get_logger(__name__)

CaseRow = namedtuple("CaseRow", ["case", "row"])

RowAccessor = Callable[[Optional[str]], np.ndarray]


@dataclass
class ObjectTable:
    """Evaluated image of one object of the mapping's domain.

    For join objects ``frame`` has one column per diagram vertex and one
    row per result row. For case objects ``frame`` lists every member as
    ``(case, row, id)``, where ``id`` is the result row it belongs to.
    """

    name: str
    image: ObImage
    size: int
    frame: Optional[pd.DataFrame] = None
    row_type: Optional[type] = None

    def rows(self) -> List[Any]:
        """Tabular view of the rows: ints, named tuples or ``CaseRow``s."""
        if isinstance(self.image, PlainOb):
            return list(range(self.size))
        if isinstance(self.image, JoinOb):
            return [
                self.row_type(*(int(v) for v in values))
                for values in self.frame.itertuples(index=False, name=None)
            ]
        firsts = self.frame.drop_duplicates("id", keep="first").sort_values("id")
        return [CaseRow(case, int(row)) for case, row in zip(firsts["case"], firsts["row"])]

    def index(self) -> Dict[Any, int]:
        """Result row id of every row, including each member of a glued case row."""
        if isinstance(self.image, (PlainOb, JoinOb)):
            return {row: i for i, row in enumerate(self.rows())}
        return {
            CaseRow(case, int(row)): int(i)
            for case, row, i in zip(self.frame["case"], self.frame["row"], self.frame["id"])
        }


def evaluate_join(diagram: Diagram, instance: Instance) -> pd.DataFrame:
    """
    Enumerate all assignments of rows to vertices that satisfy every edge.

    Vertices are added one at a time: along a forward edge the new column is
    computed directly, along a backward edge by a hash join, and only a
    vertex with no edge to the ones already placed costs a cross join.
    Remaining edges then filter the partial result.

    Args:
        diagram: Validated join diagram
        instance: Source instance

    Returns:
        DataFrame with one int64 column per vertex, sorted by the vertex columns
    """
    names = list(diagram.vertices)
    if not names:
        return pd.DataFrame()

    def all_rows(vertex: str) -> np.ndarray:
        return np.arange(instance.nparts(diagram.vertices[vertex]), dtype=np.int64)

    pending = list(diagram.edges)
    frame = pd.DataFrame({names[0]: all_rows(names[0])})
    placed = {names[0]}

    while True:
        # Filter by every edge whose ends are both placed
        remaining = []
        for edge in pending:
            if edge.src in placed and edge.tgt in placed:
                image = instance.evaluate(edge.path, frame[edge.src].to_numpy())
                frame = frame[image == frame[edge.tgt].to_numpy()]
            else:
                remaining.append(edge)
        pending = remaining
        if len(placed) == len(names):
            break

        forward = next((e for e in pending if e.src in placed), None)
        backward = next((e for e in pending if e.tgt in placed), None)
        if forward is not None:
            frame = frame.assign(**{
                forward.tgt: instance.evaluate(forward.path, frame[forward.src].to_numpy())
            })
            pending.remove(forward)
            placed.add(forward.tgt)
        elif backward is not None:
            rows = all_rows(backward.src)
            right = pd.DataFrame({
                backward.src: rows,
                "_key": instance.evaluate(backward.path, rows),
            })
            frame = frame.merge(right, left_on=backward.tgt, right_on="_key").drop(columns="_key")
            pending.remove(backward)
            placed.add(backward.src)
        else:
            vertex = next(v for v in names if v not in placed)
            frame = frame.merge(pd.DataFrame({vertex: all_rows(vertex)}), how="cross")
            placed.add(vertex)

    frame = frame[names].sort_values(names, kind="stable").reset_index(drop=True)
    return frame.astype(np.int64)


def evaluate_cases(diagram: Diagram, instance: Instance) -> pd.DataFrame:
    """
    Tagged union of the vertices' rows, quotiented by the diagram's edges.

    Args:
        diagram: Validated case diagram
        instance: Source instance

    Returns:
        DataFrame of members with columns ``case``, ``row`` and ``id``
    """
    cases: List[str] = []
    rows: List[int] = []
    offsets: Dict[str, int] = {}
    for vertex, ob in diagram.vertices.items():
        offsets[vertex] = len(rows)
        n = instance.nparts(ob)
        cases.extend([vertex] * n)
        rows.extend(range(n))

    if diagram.edges:
        uf = UnionFind(len(rows))
        for edge in diagram.edges:
            n = instance.nparts(diagram.vertices[edge.src])
            images = instance.evaluate(edge.path, np.arange(n, dtype=np.int64))
            for r, t in enumerate(images.tolist()):
                uf.union(offsets[edge.src] + r, offsets[edge.tgt] + t)
        numbering = uf.classes()
        ids = [numbering[uf.find(i)] for i in range(len(rows))]
    else:
        ids = list(range(len(rows)))

    return pd.DataFrame({
        "case": pd.Series(cases, dtype=object),
        "row": np.asarray(rows, dtype=np.int64),
        "id": np.asarray(ids, dtype=np.int64),
    })


class TabularInstance:
    """
    Result of a query migration with rows exposed as their components.

    Join rows are named tuples of component row ids, case rows are
    ``CaseRow(case, row)`` and plain rows are ints.
    """

    def __init__(self, instance: Instance, tables: Dict[str, ObjectTable]):
        self.instance = instance
        self.schema = instance.schema
        self._rows = {name: table.rows() for name, table in tables.items()}
        self._index = {name: table.index() for name, table in tables.items()}

    def ob(self, name: str) -> List[Any]:
        if name not in self._rows:
            raise SchemaMismatch(f"Schema '{self.schema.name}' has no object '{name}'")
        return list(self._rows[name])

    def hom(self, name: str) -> Callable[[Any], Any]:
        """Function from rows of the morphism's domain to rows (or values) of its codomain."""
        gen = self.schema.generator(name)
        column = self.instance[name]
        index = self._index[gen.dom]

        def locate(row):
            if row not in index:
                raise SchemaMismatch(
                    f"{row!r} is not a row of '{gen.dom}'",
                    details={"object": gen.dom, "morphism": name},
                )
            return column[index[row]]

        if self.schema.has_attr(name):
            return locate
        targets = self._rows[gen.codom]
        return lambda row: targets[locate(row)]

    def table(self, name: str) -> pd.DataFrame:
        """Rows of ``name`` with their components and outgoing columns."""
        rows = self.ob(name)
        frame = self.instance.to_frames()[name]
        if rows and isinstance(rows[0], tuple):
            components = pd.DataFrame([r._asdict() for r in rows], index=frame.index)
            frame = pd.concat([components, frame], axis=1)
        return frame


class QueryMigration:
    """Migration along a query mapping with join and case objects."""

    def __init__(self, mapping: Union[SchemaMapping, Functor], max_workers: Optional[int] = None):
        self.mapping = validate_mapping(mapping)
        self.max_workers = max_workers or get_settings().max_workers

    @property
    def dom(self):
        return self.mapping.dom

    @property
    def codom(self):
        return self.mapping.codom

    def _evaluate_ob(self, name: str, instance: Instance) -> ObjectTable:
        image = self.mapping.obs[name]
        if isinstance(image, PlainOb):
            return ObjectTable(name=name, image=image, size=instance.nparts(image.ob))
        if isinstance(image, JoinOb):
            frame = evaluate_join(image.diagram, instance)
            row_type = namedtuple("Row", list(image.diagram.vertices))
            return ObjectTable(name=name, image=image, size=len(frame), frame=frame, row_type=row_type)
        frame = evaluate_cases(image.diagram, instance)
        size = int(frame["id"].max()) + 1 if len(frame) else 0
        return ObjectTable(name=name, image=image, size=size, frame=frame)

    def evaluate_tables(self, instance: Instance) -> Dict[str, ObjectTable]:
        """Evaluate the image of every object, in parallel if configured."""
        tables: Dict[str, ObjectTable] = {}
        if self.max_workers > 1 and len(self.dom.obs) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = {
                    executor.submit(self._evaluate_ob, name, instance): name
                    for name in self.dom.obs
                }
                for future in as_completed(futures):
                    tables[futures[future]] = future.result()
        else:
            for name in self.dom.obs:
                tables[name] = self._evaluate_ob(name, instance)
        for name in self.dom.obs:
            logger.debug(f"  {name} ({self.mapping.obs[name].kind}): {tables[name].size} rows")
        return tables

    # Morphisms

    def _project(self, image: Project, rows_of: RowAccessor, instance: Instance) -> np.ndarray:
        return instance.evaluate(image.path, rows_of(image.vertex))

    def _address(self, image, rows_of: RowAccessor, instance: Instance):
        if isinstance(image, Project):
            return self._project(image, rows_of, instance)
        if isinstance(image, TupleOf):
            return pd.DataFrame({
                vertex: self._project(component, rows_of, instance)
                for vertex, component in image.components.items()
            })
        if isinstance(image, Inject):
            rows = self._project(image.image, rows_of, instance)
            return pd.DataFrame({
                "case": pd.Series([image.case] * len(rows), dtype=object),
                "row": rows,
            })
        raise MalformedMapping(f"Unexpected image {type(image).__name__}")

    def _resolve(self, addresses, target: Optional[ObjectTable], where: str) -> np.ndarray:
        """Turn projected addresses into row ids of the target table."""
        if target is None or isinstance(target.image, PlainOb):
            return addresses
        if isinstance(target.image, JoinOb):
            keys = list(target.image.diagram.vertices)
            if not keys:
                if len(addresses):
                    raise MalformedMapping(
                        f"{where}: the empty join has no rows to land in",
                        details={"morphism": where, "target": target.name},
                    )
                return np.zeros(0, dtype=np.int64)
            lookup = target.frame.assign(_id=np.arange(target.size, dtype=np.int64))
            merged = addresses[keys].astype(np.int64).merge(lookup, on=keys, how="left")
        else:
            lookup = target.frame.rename(columns={"id": "_id"})
            merged = addresses.merge(lookup, on=["case", "row"], how="left")
        if merged["_id"].isna().any():
            bad = addresses[merged["_id"].isna().to_numpy()].head(1).to_dict("records")
            raise MalformedMapping(
                f"{where}: produced row {bad[0]} is not a row of '{target.name}'",
                details={"morphism": where, "target": target.name},
            )
        return merged["_id"].to_numpy(dtype=np.int64)

    def _evaluate_hom(self, name: str, tables: Dict[str, ObjectTable], instance: Instance) -> List[Any]:
        gen = self.dom.generator(name)
        image = self.mapping.homs[name]
        source = tables[gen.dom]
        target = tables.get(gen.codom)  # None for attributes

        if isinstance(image, Cases):
            members = source.frame
            values = np.empty(len(members), dtype=object)
            for case, arm in image.arms.items():
                mask = (members["case"] == case).to_numpy()
                rows = members["row"].to_numpy()[mask]
                addresses = self._address(arm, lambda vertex, rows=rows: rows, instance)
                resolved = self._resolve(addresses, target, f"{name}[{case}]")
                for i, v in zip(np.flatnonzero(mask), resolved.tolist()):
                    values[i] = v
            return self._collapse(name, values, members["id"].to_numpy(), source.size)

        if isinstance(source.image, JoinOb):
            frame = source.frame

            def rows_of(vertex):
                return frame[vertex].to_numpy(dtype=np.int64)
        else:
            all_rows = np.arange(source.size, dtype=np.int64)

            def rows_of(vertex):
                return all_rows

        addresses = self._address(image, rows_of, instance)
        return self._resolve(addresses, target, name).tolist()

    def _collapse(self, name: str, values: np.ndarray, ids: np.ndarray, size: int) -> List[Any]:
        """Values per result row; identified members must agree."""
        result: List[Any] = [None] * size
        seen = [False] * size
        for value, row in zip(values.tolist(), ids.tolist()):
            if not seen[row]:
                result[row] = value
                seen[row] = True
            elif result[row] != value:
                raise NonFunctorial(
                    f"'{name}' sends identified members of row {row} to {result[row]!r} and {value!r}",
                    details={"morphism": name, "row": row},
                )
        return result

    def _check_equations(self, result: Instance) -> None:
        for eq in self.dom.equations:
            lhs, rhs = result.evaluate(eq.lhs), result.evaluate(eq.rhs)
            if len(lhs) and not all(a == b for a, b in zip(lhs.tolist(), rhs.tolist())):
                raise NonFunctorial(
                    f"Migrated instance violates {eq.lhs} = {eq.rhs} of '{self.dom.name}'",
                    details={"lhs": str(eq.lhs), "rhs": str(eq.rhs)},
                )

    def __call__(self, instance: Instance, tabular: bool = False) -> Union[Instance, TabularInstance]:
        """
        Migrate ``instance`` along the query.

        Args:
            instance: Instance over the mapping's codomain
            tabular: Return a ``TabularInstance`` exposing row components

        Returns:
            New instance over the mapping's domain (or its tabular view)
        """
        if instance.schema != self.codom:
            raise SchemaMismatch(
                f"Query migration expects an instance of '{self.codom.name}', "
                f"got '{instance.schema.name}'"
            )
        start = time.time()
        tables = self.evaluate_tables(instance)
        columns = {
            gen.name: self._evaluate_hom(gen.name, tables, instance)
            for gen in self.dom.homs + self.dom.attrs
        }
        result = Instance.from_columns(
            self.dom, {name: table.size for name, table in tables.items()}, columns
        )
        self._check_equations(result)
        logger.info(
            f"Query migration {self.codom.name} -> {self.dom.name} completed: "
            f"{result} in {time.time() - start:.3f}s"
        )
        if tabular:
            return TabularInstance(result, tables)
        return result

    def migrate_into(self, target: Instance, instance: Instance) -> Instance:
        """Append the migrated rows to ``target`` as a disjoint union."""
        if target.schema != self.dom:
            raise SchemaMismatch(
                f"Cannot merge an instance of '{self.dom.name}' into one of '{target.schema.name}'"
            )
        target.add_instance(self(instance))
        return target

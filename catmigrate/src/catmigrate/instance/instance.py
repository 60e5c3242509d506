"""Mutable finite instances of a schema."""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from catmigrate.errors import AritySizeMismatch, SchemaMismatch
from catmigrate.schema.presentation import Path, Schema


class Instance:
    """
    Finite, total population of a schema.

    Rows of each object are numbered ``0..n-1``. Every morphism and
    attribute out of an object stores one value per row, so a row can only
    be added together with all of its outgoing values.
    """

    def __init__(self, schema: Schema):
        self.schema = schema
        self._counts: Dict[str, int] = {ob: 0 for ob in schema.obs}
        self._columns: Dict[str, List[Any]] = {h.name: [] for h in schema.homs}
        self._columns.update({a.name: [] for a in schema.attrs})

    @classmethod
    def from_columns(
        cls,
        schema: Schema,
        counts: Mapping[str, int],
        columns: Mapping[str, Sequence[Any]],
    ) -> "Instance":
        """
        Build an instance from full row counts and columns in one step.

        Unlike ``add_parts`` this accepts morphisms between objects in any
        order, including cycles between different objects.

        Args:
            schema: Schema the instance conforms to
            counts: Number of rows per object (missing objects get zero rows)
            columns: Values per morphism/attribute name

        Returns:
            New instance

        Raises:
            SchemaMismatch: If an object or column is not declared by the schema
            AritySizeMismatch: If a column has the wrong length or dangling values
        """
        inst = cls(schema)
        for ob in counts:
            if not schema.has_ob(ob):
                raise SchemaMismatch(f"Schema '{schema.name}' has no object '{ob}'")
        for name in columns:
            schema.generator(name)
        new_counts = {ob: int(counts.get(ob, 0)) for ob in schema.obs}
        new_columns = {}
        for name in inst._columns:
            gen = schema.generator(name)
            values = list(columns.get(name, []))
            new_columns[name] = inst._check_column(name, values, new_counts[gen.dom], new_counts)
        inst._counts = new_counts
        inst._columns = new_columns
        return inst

    def _check_column(
        self, name: str, values: List[Any], expected: int, counts: Mapping[str, int]
    ) -> List[Any]:
        if len(values) != expected:
            raise AritySizeMismatch(
                f"Column '{name}' has {len(values)} values for {expected} rows",
                details={"column": name, "values": len(values), "rows": expected},
            )
        if self.schema.has_attr(name):
            return values
        codom = self.schema.hom(name).codom
        checked = []
        for v in values:
            row = int(v)
            if row < 0 or row >= counts[codom]:
                raise AritySizeMismatch(
                    f"Morphism '{name}' points to row {row} of '{codom}', "
                    f"which has {counts[codom]} rows",
                    details={"column": name, "row": row},
                )
            checked.append(row)
        return checked

    # Rows

    def _check_ob(self, ob: str) -> None:
        if ob not in self._counts:
            raise SchemaMismatch(f"Schema '{self.schema.name}' has no object '{ob}'")

    def nparts(self, ob: str) -> int:
        self._check_ob(ob)
        return self._counts[ob]

    def parts(self, ob: str) -> range:
        return range(self.nparts(ob))

    def add_parts(self, ob: str, n: int, **columns: Sequence[Any]) -> range:
        """
        Add ``n`` rows to ``ob`` together with all of their outgoing values.

        Args:
            ob: Object receiving the rows
            n: Number of rows
            **columns: One sequence of length ``n`` per morphism/attribute out of ``ob``

        Returns:
            Range of the new row ids

        Raises:
            SchemaMismatch: If ``ob`` or a column name is unknown or not out of ``ob``
            AritySizeMismatch: If a column is missing, has the wrong length or dangles
        """
        self._check_ob(ob)
        if n < 0:
            raise AritySizeMismatch(f"Cannot add {n} rows to '{ob}'")
        required = self.schema.columns_of(ob)
        for name in columns:
            if name not in required:
                raise SchemaMismatch(
                    f"'{name}' is not a morphism or attribute out of '{ob}'",
                    details={"object": ob, "column": name},
                )
        missing = [name for name in required if name not in columns]
        if n > 0 and missing:
            raise AritySizeMismatch(
                f"Rows of '{ob}' need values for {missing}",
                details={"object": ob, "missing": missing},
            )

        counts = dict(self._counts)
        counts[ob] += n
        checked = {
            name: self._check_column(name, list(columns.get(name, [])), n, counts)
            for name in required
        }

        start = self._counts[ob]
        self._counts = counts
        for name, values in checked.items():
            self._columns[name].extend(values)
        return range(start, start + n)

    def add_part(self, ob: str, **values: Any) -> int:
        """Add a single row and return its id."""
        return self.add_parts(ob, 1, **{k: [v] for k, v in values.items()})[0]

    # Columns

    def subpart(self, row: int, name: str) -> Any:
        return self._column(name)[row]

    def __getitem__(self, name: str) -> List[Any]:
        return list(self._column(name))

    def _column(self, name: str) -> List[Any]:
        if name not in self._columns:
            raise SchemaMismatch(
                f"Schema '{self.schema.name}' has no morphism or attribute '{name}'"
            )
        return self._columns[name]

    def column_array(self, name: str) -> np.ndarray:
        """Column as a numpy array: int64 for morphisms, object for attributes."""
        values = self._column(name)
        if self.schema.has_hom(name):
            return np.asarray(values, dtype=np.int64)
        arr = np.empty(len(values), dtype=object)
        for i, v in enumerate(values):
            arr[i] = v
        return arr

    def evaluate(self, path: Path, rows: Optional[Iterable[int]] = None) -> np.ndarray:
        """
        Apply a path to rows by folding its generators over the columns.

        Args:
            path: Path whose first generator starts at the rows' object
            rows: Row ids to start from (all rows of the path's domain if omitted)

        Returns:
            Array of resulting row ids, or of values if the path ends in an attribute
        """
        dom, _ = self.schema.path_type(path)
        if rows is None:
            current = np.arange(self.nparts(dom), dtype=np.int64)
        else:
            current = np.asarray(rows if isinstance(rows, np.ndarray) else list(rows),
                                 dtype=np.int64)
        for step in path.steps:
            current = self.column_array(step)[current]
        return current

    # Whole-instance operations

    def copy(self) -> "Instance":
        other = Instance(self.schema)
        other._counts = dict(self._counts)
        other._columns = {name: list(values) for name, values in self._columns.items()}
        return other

    def add_instance(self, other: "Instance") -> Dict[str, int]:
        """
        Append ``other`` as a disjoint union (coproduct) in place.

        Args:
            other: Instance over the same schema

        Returns:
            Offset added to the row ids of ``other`` for each object
        """
        if other.schema != self.schema:
            raise SchemaMismatch(
                f"Cannot add an instance of '{other.schema.name}' to one of '{self.schema.name}'"
            )
        if other is self:
            other = other.copy()
        offsets = dict(self._counts)
        for h in self.schema.homs:
            shift = offsets[h.codom]
            self._columns[h.name].extend(v + shift for v in other._columns[h.name])
        for a in self.schema.attrs:
            self._columns[a.name].extend(other._columns[a.name])
        for ob in self.schema.obs:
            self._counts[ob] += other._counts[ob]
        return offsets

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Instance):
            return NotImplemented
        return (
            self.schema == other.schema
            and self._counts == other._counts
            and self._columns == other._columns
        )

    __hash__ = None

    def __repr__(self) -> str:
        counts = ", ".join(f"{ob}={n}" for ob, n in self._counts.items())
        return f"Instance({self.schema.name}: {counts})"

    # Tabular views

    def to_frames(self) -> Dict[str, pd.DataFrame]:
        """One DataFrame per object, with a column per outgoing morphism/attribute."""
        frames = {}
        for ob in self.schema.obs:
            data = {name: list(self._columns[name]) for name in self.schema.columns_of(ob)}
            df = pd.DataFrame(data, index=pd.RangeIndex(self._counts[ob], name="id"))
            frames[ob] = df
        return frames

    @classmethod
    def from_frames(cls, schema: Schema, frames: Mapping[str, pd.DataFrame]) -> "Instance":
        """Inverse of ``to_frames``; objects without a frame get zero rows."""
        counts = {ob: len(df) for ob, df in frames.items()}
        columns = {}
        for ob, df in frames.items():
            for name in schema.columns_of(ob) if schema.has_ob(ob) else []:
                if name in df.columns:
                    columns[name] = df[name].tolist()
        return cls.from_columns(schema, counts, columns)


def coproduct(first: Instance, *rest: Instance) -> Instance:
    """Disjoint union of instances over the same schema."""
    result = first.copy()
    for inst in rest:
        result.add_instance(inst)
    return result

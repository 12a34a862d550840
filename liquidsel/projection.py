"""Leaf projection masks, the parquet field tree, and offset/limit on selections."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from liquidsel.selection import RowSelection, RowSelector

STRUCT = "struct"


@dataclass(frozen=True)
class ProjectionMask:
    """Which parquet leaf columns are projected; ``mask=None`` means all of them."""

    mask: tuple[bool, ...] | None = None

    @classmethod
    def all(cls) -> ProjectionMask:
        return cls(None)

    @classmethod
    def leaves(cls, num_leaves: int, indices: Iterable[int]) -> ProjectionMask:
        chosen = set(indices)
        out_of_range = sorted(i for i in chosen if not 0 <= i < num_leaves)
        if out_of_range:
            raise IndexError(f"leaf indices {out_of_range} out of bounds 0..{num_leaves}")
        return cls(tuple(i in chosen for i in range(num_leaves)))

    def _paired(self, other: ProjectionMask) -> zip:
        assert self.mask is not None and other.mask is not None
        if len(self.mask) != len(other.mask):
            raise ValueError(
                f"projection masks differ in length: {len(self.mask)} and {len(other.mask)}"
            )
        return zip(self.mask, other.mask)

    def union(self, other: ProjectionMask) -> ProjectionMask:
        """Leaves included by either mask."""
        if self.mask is None or other.mask is None:
            return ProjectionMask(None)
        return ProjectionMask(tuple(a or b for a, b in self._paired(other)))

    def intersect(self, other: ProjectionMask) -> ProjectionMask:
        """Leaves included by both masks."""
        if self.mask is None:
            return other
        if other.mask is None:
            return self
        return ProjectionMask(tuple(a and b for a, b in self._paired(other)))

    def leaf_included(self, leaf_idx: int) -> bool:
        return True if self.mask is None else self.mask[leaf_idx]

    def predicate_column_id(self) -> int:
        """The single leaf a predicate projection selects."""
        if self.mask is None:
            raise ValueError("predicate projection can't select all")
        selected = [idx for idx, included in enumerate(self.mask) if included]
        if not selected:
            raise ValueError("one column must be selected")
        if len(selected) > 1:
            raise ValueError(f"predicate projection selects several columns: {selected}")
        return selected[0]


@dataclass(frozen=True)
class ListType:
    """Data type of a list whose items are named ``item_name``."""

    item_name: str
    item_type: object
    item_nullable: bool = False


@dataclass(frozen=True)
class ParquetField:
    """A parquet schema element described in terms of its in-memory type.

    Primitive fields carry ``col_idx``; group fields carry ``group_children``.
    """

    name: str
    rep_level: int
    def_level: int
    nullable: bool
    data_type: object
    col_idx: int | None = None
    group_children: tuple[ParquetField, ...] | None = None

    @classmethod
    def primitive(cls, name: str, col_idx: int, data_type: object, nullable: bool) -> ParquetField:
        return cls(
            name=name,
            rep_level=0,
            def_level=1 if nullable else 0,
            nullable=nullable,
            data_type=data_type,
            col_idx=col_idx,
        )

    @classmethod
    def group(cls, name: str, children: Iterable[ParquetField], nullable: bool) -> ParquetField:
        return cls(
            name=name,
            rep_level=0,
            def_level=1 if nullable else 0,
            nullable=nullable,
            data_type=STRUCT,
            group_children=tuple(children),
        )

    @property
    def is_primitive(self) -> bool:
        return self.group_children is None

    @property
    def is_struct(self) -> bool:
        return not self.is_primitive and self.data_type == STRUCT

    def into_list(self, name: str) -> ParquetField:
        """Wrap this field as the element of a non-nullable list."""
        return ParquetField(
            name=self.name,
            rep_level=self.rep_level,
            def_level=self.def_level,
            nullable=False,
            data_type=ListType(name, self.data_type, False),
            group_children=(self,),
        )

    def children(self) -> tuple[ParquetField, ...] | None:
        return self.group_children


def trim_row_selection(selection: RowSelection) -> RowSelection:
    """Drop trailing skipped runs."""
    selectors = selection.selectors()
    while selectors and selectors[-1].skip:
        selectors.pop()
    return RowSelection(selectors)


def offset_row_selection(selection: RowSelection, offset: int) -> RowSelection:
    """Skip the first ``offset`` selected rows."""
    if offset < 0:
        raise ValueError(f"offset must not be negative, got {offset}")
    if offset == 0:
        return selection

    selectors = selection.selectors()
    selected = skipped = 0
    for idx, selector in enumerate(selectors):
        if selector.skip:
            skipped += selector.row_count
            continue
        selected += selector.row_count
        if selected > offset:
            break
    else:
        return RowSelection()

    return RowSelection(
        [
            RowSelector.skipping(skipped + offset),
            RowSelector.selecting(selected - offset),
            *selectors[idx + 1 :],
        ]
    )


def limit_row_selection(selection: RowSelection, limit: int) -> RowSelection:
    """Keep at most ``limit`` selected rows, cutting the selection after the last one."""
    if limit < 0:
        raise ValueError(f"limit must not be negative, got {limit}")
    if limit == 0:
        return RowSelection()

    kept: list[RowSelector] = []
    for selector in selection:
        if selector.skip:
            kept.append(selector)
        elif selector.row_count >= limit:
            kept.append(RowSelector.selecting(limit))
            break
        else:
            limit -= selector.row_count
            kept.append(selector)
    return RowSelection(kept)
"""Row selections held as one boolean per row."""

from __future__ import annotations

from itertools import chain
from typing import Iterable, Iterator

from liquidsel.selection import RowSelection, RowSelector

_AND_THEN_MISMATCH = "The 'other' selection must have exactly as many set bits as 'self'."


class BooleanSelection:
    """A selection of rows as a fixed sequence of booleans."""

    __slots__ = ("_bits",)

    def __init__(self, bits: Iterable[bool] = ()) -> None:
        self._bits: tuple[bool, ...] = tuple(bool(bit) for bit in bits)

    @classmethod
    def from_filters(cls, filters: Iterable[Iterable[bool | None]]) -> BooleanSelection:
        """Concatenate boolean filters; null entries count as unselected."""
        return cls(bool(value) for value in chain.from_iterable(filters))

    @classmethod
    def new_unselected(cls, row_count: int) -> BooleanSelection:
        return cls([False] * row_count)

    @classmethod
    def new_selected(cls, row_count: int) -> BooleanSelection:
        return cls([True] * row_count)

    @classmethod
    def from_consecutive_ranges(
        cls, ranges: Iterable[range], total_rows: int
    ) -> BooleanSelection:
        """Select the rows in ``ranges`` (in ascending order) out of ``total_rows``."""
        bits: list[bool] = []
        last_end = 0
        for rows in ranges:
            length = rows.stop - rows.start
            if length <= 0:
                continue
            if rows.start > last_end:
                bits.extend([False] * (rows.start - last_end))
            bits.extend([True] * length)
            last_end = rows.stop
        if last_end > total_rows:
            raise ValueError(f"ranges end at row {last_end}, beyond total_rows {total_rows}")
        bits.extend([False] * (total_rows - last_end))
        return cls(bits)

    @classmethod
    def from_row_selection(cls, selection: Iterable[RowSelector]) -> BooleanSelection:
        return cls(
            chain.from_iterable([not s.skip] * s.row_count for s in selection)
        )

    def to_row_selection(self) -> RowSelection:
        return RowSelection.from_filters([self._bits])

    def as_inverted(self) -> BooleanSelection:
        return BooleanSelection(not bit for bit in self._bits)

    def __len__(self) -> int:
        return len(self._bits)

    def is_empty(self) -> bool:
        return not self._bits

    def row_count(self) -> int:
        """Number of selected rows."""
        return sum(self._bits)

    def _check_same_length(self, other: BooleanSelection) -> None:
        if len(self) != len(other):
            raise ValueError(f"selections differ in length: {len(self)} and {len(other)}")

    def union(self, other: BooleanSelection) -> BooleanSelection:
        self._check_same_length(other)
        return BooleanSelection(a or b for a, b in zip(self._bits, other._bits))

    def intersection(self, other: BooleanSelection) -> BooleanSelection:
        self._check_same_length(other)
        return BooleanSelection(a and b for a, b in zip(self._bits, other._bits))

    def and_then(self, other: BooleanSelection) -> BooleanSelection:
        """Keep the selected rows of ``self`` whose verdict in ``other`` is true.

        ``other`` holds one verdict per selected row of ``self``.
        """
        if self.row_count() != len(other):
            raise ValueError(_AND_THEN_MISMATCH)
        if len(self) == len(other):
            return self.intersection(other)
        verdicts = iter(other._bits)
        return BooleanSelection(next(verdicts) if bit else False for bit in self._bits)

    def positive_iter(self) -> Iterator[int]:
        """Indices of the selected rows."""
        return (idx for idx, bit in enumerate(self._bits) if bit)

    def selects_any(self) -> bool:
        return any(self._bits)

    def slice(self, offset: int, length: int) -> list[bool]:
        """The booleans for rows ``offset`` to ``offset + length``."""
        if offset < 0 or length < 0 or offset + length > len(self._bits):
            raise IndexError(
                f"slice {offset}..{offset + length} out of bounds 0..{len(self._bits)}"
            )
        return list(self._bits[offset : offset + length])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BooleanSelection):
            return NotImplemented
        return self._bits == other._bits

    def __hash__(self) -> int:
        return hash(self._bits)

    def __repr__(self) -> str:
        return "BooleanSelection(" + "".join("Y" if b else "N" for b in self._bits) + ")"
"""Row selections: runs of selected and skipped rows."""

from __future__ import annotations

from dataclasses import dataclass
from itertools import chain, groupby
from typing import Iterable, Iterator, Protocol


@dataclass(frozen=True)
class RowSelector:
    """A run of ``row_count`` consecutive rows that are either selected or skipped."""

    row_count: int
    skip: bool

    def __post_init__(self) -> None:
        if self.row_count < 0:
            raise ValueError(f"row_count must not be negative, got {self.row_count}")

    @classmethod
    def selecting(cls, row_count: int) -> RowSelector:
        return cls(row_count, False)

    @classmethod
    def skipping(cls, row_count: int) -> RowSelector:
        return cls(row_count, True)


class PageLocationLike(Protocol):
    offset: int
    compressed_page_size: int
    first_row_index: int


def _normalise(selectors: Iterable[RowSelector]) -> list[RowSelector]:
    """Drop empty runs and merge neighbouring runs of the same kind."""
    merged: list[RowSelector] = []
    for selector in selectors:
        if selector.row_count == 0:
            continue
        if merged and merged[-1].skip == selector.skip:
            merged[-1] = RowSelector(merged[-1].row_count + selector.row_count, selector.skip)
        else:
            merged.append(selector)
    return merged


class RowSelection:
    """An ordered sequence of :class:`RowSelector` runs, kept in canonical form."""

    __slots__ = ("_selectors",)

    def __init__(self, selectors: Iterable[RowSelector] = ()) -> None:
        self._selectors = _normalise(selectors)

    @classmethod
    def from_filters(cls, filters: Iterable[Iterable[bool | None]]) -> RowSelection:
        """Build a selection from boolean filters laid end to end; nulls are rejected."""
        values = list(chain.from_iterable(filters))
        if any(value is None for value in values):
            raise ValueError("filters must not contain nulls")
        return cls(
            RowSelector(sum(1 for _ in group), not selected)
            for selected, group in groupby(bool(value) for value in values)
        )

    def row_count(self) -> int:
        """Number of selected rows."""
        return sum(s.row_count for s in self._selectors if not s.skip)

    def total_rows(self) -> int:
        """Number of rows covered, selected or skipped."""
        return sum(s.row_count for s in self._selectors)

    def selects_any(self) -> bool:
        return any(not s.skip for s in self._selectors)

    def split_off(self, row_count: int) -> RowSelection:
        """Remove and return the first ``row_count`` rows; this selection keeps the rest."""
        if row_count < 0:
            raise ValueError(f"row_count must not be negative, got {row_count}")
        total = 0
        for idx, selector in enumerate(self._selectors):
            total += selector.row_count
            if total > row_count:
                break
        else:
            head, self._selectors = self._selectors, []
            return RowSelection(head)

        overflow = total - row_count
        head = self._selectors[:idx]
        if selector.row_count != overflow:
            head.append(RowSelector(selector.row_count - overflow, selector.skip))
        self._selectors = [RowSelector(overflow, selector.skip), *self._selectors[idx + 1 :]]
        return RowSelection(head)

    def scan_ranges(self, page_locations: Iterable[PageLocationLike]) -> list[range]:
        """Byte ranges of the pages that hold at least one selected row."""
        ranges: list[range] = []
        pages = iter(page_locations)
        page = next(pages, None)
        next_page = next(pages, None)
        selectors = iter(self._selectors)
        current = next(selectors, None)
        remaining = current.row_count if current is not None else 0
        row_offset = 0
        page_included = False

        while current is not None and page is not None:
            if not (current.skip or page_included):
                ranges.append(range(page.offset, page.offset + page.compressed_page_size))
                page_included = True

            if next_page is not None:
                boundary = next_page.first_row_index
                if row_offset + remaining > boundary:
                    in_page = boundary - row_offset
                    remaining -= in_page
                    row_offset += in_page
                    page, next_page = next_page, next(pages, None)
                    page_included = False
                    continue
                if row_offset + remaining == boundary:
                    page, next_page = next_page, next(pages, None)
                    page_included = False
                row_offset += remaining

            current = next(selectors, None)
            remaining = current.row_count if current is not None else 0

        return ranges

    def selectors(self) -> list[RowSelector]:
        return list(self._selectors)

    def __iter__(self) -> Iterator[RowSelector]:
        return iter(self._selectors)

    def __len__(self) -> int:
        return len(self._selectors)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RowSelection):
            return NotImplemented
        return self._selectors == other._selectors

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"RowSelection({self._selectors!r})"
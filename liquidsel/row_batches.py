"""Batch-level helpers over row selectors and boolean selection buffers."""

from __future__ import annotations

from collections import deque
from dataclasses import replace
from itertools import chain, repeat
from typing import Iterable

from liquidsel.selection import RowSelection, RowSelector


def consolidate_selection_to_batch_granularity(
    selection: Iterable[RowSelector], batch_size: int
) -> RowSelection:
    """Widen a selection so that any batch with a selected row is selected whole.

    The last batch may be partial so the total row count stays the same.
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    selectors = list(selection)
    total_rows = sum(s.row_count for s in selectors)
    batch_mask = [False] * -(-total_rows // batch_size)

    row = 0
    for selector in selectors:
        if not selector.skip:
            start = row // batch_size * batch_size
            for batch_row in range(start, row + selector.row_count, batch_size):
                batch_mask[batch_row // batch_size] = True
        row += selector.row_count

    consolidated = []
    batch_start = 0
    for chosen in batch_mask:
        count = min(batch_size, total_rows - batch_start)
        consolidated.append(RowSelector(count, not chosen))
        batch_start += count
    return RowSelection(consolidated)


def take_next_batch(selection: deque[RowSelector], batch_size: int) -> list[RowSelector] | None:
    """Pop selectors covering exactly ``batch_size`` rows (fewer at the end) off the queue.

    Returns None once the queue holds no more rows.
    """
    taken = 0
    batch: list[RowSelector] = []
    while selection:
        front = selection.popleft()
        if front.row_count + taken > batch_size:
            to_take = batch_size - taken
            if to_take > 0:
                batch.append(replace(front, row_count=to_take))
            selection.appendleft(replace(front, row_count=front.row_count - to_take))
            taken += to_take
            break
        batch.append(front)
        taken += front.row_count
    return batch if taken else None


def boolean_buffer_and_then(left: Iterable[bool], right: Iterable[bool]) -> list[bool]:
    """Refine ``left`` with ``right``, which holds one verdict per set bit of ``left``."""
    left = list(left)
    right = list(right)
    if sum(map(bool, left)) != len(right):
        raise ValueError(
            "the right selection must have the same number of set bits as the left selection"
        )
    if len(left) == len(right):
        return [bool(bit) for bit in right]
    verdicts = iter(right)
    return [bool(next(verdicts)) if bit else False for bit in left]


def row_selector_to_boolean_buffer(selection: Iterable[RowSelector]) -> list[bool]:
    """Expand selectors into one boolean per row."""
    return list(chain.from_iterable(repeat(not s.skip, s.row_count) for s in selection))
"""In-memory cache of column batches, organised by file, row group and column."""

from __future__ import annotations

import threading
from typing import Iterable, Protocol

from liquidsel.coalesce import RecordBatch


class CacheFullError(Exception):
    """Raised when an array does not fit in the cache budget.

    The rejected array is kept on ``array`` so the caller can hold on to it.
    """

    def __init__(self, array: list) -> None:
        super().__init__(f"cache is full, cannot insert array of {len(array)} values")
        self.array = array


class _Predicate(Protocol):
    def evaluate(self, batch: RecordBatch) -> Iterable[bool | None]: ...


def _estimate_bytes(values: Iterable[object]) -> int:
    """Rough memory estimate: byte and string values by length, others 8 bytes each."""
    return sum(len(v) if isinstance(v, (bytes, bytearray, str)) else 8 for v in values)


class _Budget:
    """A byte budget shared by every column of a file cache."""

    def __init__(self, max_bytes: int | None) -> None:
        if max_bytes is not None and max_bytes < 0:
            raise ValueError(f"max_cache_bytes must not be negative, got {max_bytes}")
        self.max_bytes = max_bytes
        self.used = 0
        self._lock = threading.Lock()

    def reserve(self, size: int) -> bool:
        with self._lock:
            if self.max_bytes is not None and self.used + size > self.max_bytes:
                return False
            self.used += size
            return True

    def release(self, size: int) -> None:
        with self._lock:
            self.used -= size


class ColumnCache:
    """Cached batches of one column, keyed by the first row of each batch."""

    def __init__(self, batch_size: int, budget: _Budget | None = None) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.batch_size = batch_size
        self._budget = budget if budget is not None else _Budget(None)
        self._arrays: dict[int, list] = {}
        self._sizes: dict[int, int] = {}
        self._lock = threading.Lock()

    def _check_row_id(self, row_id: int) -> None:
        if row_id < 0 or row_id % self.batch_size:
            raise ValueError(
                f"row_id {row_id} is not a multiple of the batch size {self.batch_size}"
            )

    def is_cached(self, row_id: int) -> bool:
        return row_id in self._arrays

    def insert_array(self, row_id: int, array: Iterable[object]) -> None:
        """Cache the batch starting at ``row_id``; an existing entry is left as is."""
        self._check_row_id(row_id)
        values = list(array)
        if len(values) > self.batch_size:
            raise ValueError(
                f"array of {len(values)} values exceeds the batch size {self.batch_size}"
            )
        size = _estimate_bytes(values)
        with self._lock:
            if row_id in self._arrays:
                return
            if not self._budget.reserve(size):
                raise CacheFullError(values)
            self._arrays[row_id] = values
            self._sizes[row_id] = size

    def get_array(self, row_id: int) -> list | None:
        array = self._arrays.get(row_id)
        return None if array is None else list(array)

    def get_array_with_filter(self, row_id: int, mask: Iterable[bool | None]) -> list | None:
        """The cached values whose mask entry is true; the mask covers a prefix of the batch."""
        array = self._arrays.get(row_id)
        if array is None:
            return None
        mask = list(mask)
        if len(mask) > len(array):
            raise ValueError(f"mask of {len(mask)} rows is longer than batch of {len(array)}")
        return [value for value, keep in zip(array, mask) if keep]

    def eval_selection_with_predicate(
        self, row_id: int, selection: Iterable[bool], predicate: _Predicate
    ) -> list[bool] | None:
        """Evaluate ``predicate`` on the selected cached rows.

        Returns one verdict per selected row (nulls count as false), or None when
        the batch is not cached.
        """
        array = self._arrays.get(row_id)
        if array is None:
            return None
        selection = list(selection)
        if len(selection) > len(array):
            raise ValueError(
                f"selection of {len(selection)} rows is longer than batch of {len(array)}"
            )
        values = [value for value, keep in zip(array, selection) if keep]
        verdicts = [bool(v) for v in predicate.evaluate(RecordBatch({"_": values}))]
        if len(verdicts) != len(values):
            raise ValueError(
                f"predicate returned {len(verdicts)} verdicts for {len(values)} rows"
            )
        return verdicts

    def memory_usage(self) -> int:
        return sum(self._sizes.values())

    def reset(self) -> None:
        with self._lock:
            self._budget.release(sum(self._sizes.values()))
            self._arrays.clear()
            self._sizes.clear()


class RowGroupCache:
    """The column caches of one row group."""

    def __init__(self, batch_size: int, budget: _Budget | None = None) -> None:
        self.batch_size = batch_size
        self._budget = budget if budget is not None else _Budget(None)
        self._columns: dict[int, ColumnCache] = {}
        self._lock = threading.Lock()

    def get_column(self, column_id: int) -> ColumnCache | None:
        return self._columns.get(column_id)

    def get_column_or_create(self, column_id: int) -> ColumnCache:
        with self._lock:
            column = self._columns.get(column_id)
            if column is None:
                column = self._columns[column_id] = ColumnCache(self.batch_size, self._budget)
            return column

    def memory_usage(self) -> int:
        return sum(column.memory_usage() for column in list(self._columns.values()))

    def reset(self) -> None:
        for column in list(self._columns.values()):
            column.reset()


class FileCache:
    """The row group caches of one file, sharing one byte budget.

    ``max_cache_bytes=None`` means no limit.
    """

    def __init__(self, batch_size: int, max_cache_bytes: int | None = None) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.batch_size = batch_size
        self._budget = _Budget(max_cache_bytes)
        self._row_groups: dict[int, RowGroupCache] = {}
        self._lock = threading.Lock()

    @property
    def max_cache_bytes(self) -> int | None:
        return self._budget.max_bytes

    def row_group(self, row_group_id: int) -> RowGroupCache:
        with self._lock:
            group = self._row_groups.get(row_group_id)
            if group is None:
                group = self._row_groups[row_group_id] = RowGroupCache(
                    self.batch_size, self._budget
                )
            return group

    def memory_usage(self) -> int:
        return sum(group.memory_usage() for group in list(self._row_groups.values()))

    def reset(self) -> None:
        for group in list(self._row_groups.values()):
            group.reset()
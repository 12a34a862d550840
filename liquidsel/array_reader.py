"""Column readers that read through a batch-granular column cache."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Mapping

from liquidsel.coalesce import RecordBatch
from liquidsel.column_cache import CacheFullError, ColumnCache, RowGroupCache
from liquidsel.projection import ParquetField, ProjectionMask
from liquidsel.row_batches import row_selector_to_boolean_buffer
from liquidsel.selection import RowSelector


class ArrayReader(ABC):
    """Reads records in order; read records accumulate until :meth:`consume_batch`."""

    @abstractmethod
    def read_records(self, request_size: int) -> int: ...

    @abstractmethod
    def skip_records(self, to_skip: int) -> int: ...

    @abstractmethod
    def consume_batch(self): ...


class ListArrayReader(ArrayReader):
    """Reads values of an in-memory column; counts the read and skip calls."""

    def __init__(self, values: Iterable[object]) -> None:
        self._values = list(values)
        self._position = 0
        self._output: list = []
        self.read_calls = 0
        self.skip_calls = 0

    def read_records(self, request_size: int) -> int:
        end = min(self._position + request_size, len(self._values))
        self._output.extend(self._values[self._position : end])
        read = end - self._position
        self._position = end
        self.read_calls += 1
        return read

    def skip_records(self, to_skip: int) -> int:
        end = min(self._position + to_skip, len(self._values))
        skipped = end - self._position
        self._position = end
        self.skip_calls += 1
        return skipped

    def consume_batch(self) -> list:
        output, self._output = self._output, []
        return output


class CachedArrayReader(ArrayReader):
    """Wraps a column reader and caches its rows at batch granularity.

    With batch size 32 and an empty cache: reading rows 0..32 caches 0..32;
    reading 32..35 then skipping 35..64 caches 32..64; skipping 64..96 caches
    nothing. The inner reader is only advanced when a batch must be fetched.
    """

    def __init__(self, inner: ArrayReader, column_cache: ColumnCache) -> None:
        self._inner = inner
        self._cache = column_cache
        self._current_row = 0
        self._inner_row = 0
        self._selection: list[RowSelector] = []
        self._local: dict[int, list] = {}

    @property
    def inner(self) -> ArrayReader:
        return self._inner

    @property
    def batch_size(self) -> int:
        return self._cache.batch_size

    def _fetch_batch(self, row_id: int) -> None:
        if self._inner_row < row_id:
            to_skip = row_id - self._inner_row
            skipped = self._inner.skip_records(to_skip)
            if skipped != to_skip:
                raise RuntimeError(f"inner reader skipped {skipped} of {to_skip} rows")
            self._inner_row = row_id
        read = self._inner.read_records(self.batch_size)
        array = self._inner.consume_batch()
        try:
            self._cache.insert_array(row_id, array)
        except CacheFullError as full:
            self._local[row_id] = full.array
        self._inner_row += read

    def _is_cached(self, row_id: int) -> bool:
        return self._cache.is_cached(row_id) or row_id in self._local

    def _read_chunk(self, request_size: int) -> int:
        batch_size = self.batch_size
        self._selection.append(RowSelector.selecting(request_size))
        first = self._current_row // batch_size * batch_size
        last = (self._current_row + request_size - 1) // batch_size * batch_size
        if not self._is_cached(first):
            self._fetch_batch(first)
        if last != first and not self._is_cached(last):
            self._fetch_batch(last)
        self._current_row += request_size
        return request_size

    def read_records(self, request_size: int) -> int:
        read = 0
        while read < request_size:
            read += self._read_chunk(min(self.batch_size, request_size - read))
        return read

    def skip_records(self, to_skip: int) -> int:
        # The inner reader is skipped lazily, when a later batch is fetched.
        skipped = 0
        while skipped < to_skip:
            size = min(self.batch_size, to_skip - skipped)
            self._selection.append(RowSelector.skipping(size))
            self._current_row += size
            skipped += size
        return skipped

    def consume_batch(self) -> list:
        selection, self._selection = self._selection, []
        row_count = sum(s.row_count for s in selection)
        if row_count == 0:
            return []
        batch_size = self.batch_size
        start_row = self._current_row - row_count
        end_row = start_row + row_count
        selected = row_selector_to_boolean_buffer(selection)

        output: list = []
        for batch_id in range(start_row // batch_size, (end_row - 1) // batch_size + 1):
            batch_start = batch_id * batch_size
            low = max(start_row, batch_start)
            high = min(end_row, batch_start + batch_size)
            if low >= high:
                continue
            part = selected[low - start_row : high - start_row]
            if not any(part):
                continue
            mask = [False] * (low - batch_start) + part
            values = self._cache.get_array_with_filter(batch_start, mask)
            if values is None:
                local = self._local.get(batch_start)
                if local is None:
                    raise LookupError(f"batch at row {batch_start} was never fetched")
                values = [value for value, keep in zip(local, mask) if keep]
            output.extend(values)
        return output


class StructArrayReader(ArrayReader):
    """Reads several named columns in lock step into record batches."""

    def __init__(self, children: Mapping[str, ArrayReader]) -> None:
        self._children = dict(children)

    @property
    def children(self) -> dict[str, ArrayReader]:
        return dict(self._children)

    def _all_agree(self, counts: list[int], action: str) -> int:
        if len(set(counts)) > 1:
            raise RuntimeError(f"children {action} different row counts: {counts}")
        return counts[0] if counts else 0

    def read_records(self, request_size: int) -> int:
        counts = [child.read_records(request_size) for child in self._children.values()]
        return self._all_agree(counts, "read")

    def skip_records(self, to_skip: int) -> int:
        counts = [child.skip_records(to_skip) for child in self._children.values()]
        return self._all_agree(counts, "skipped")

    def consume_batch(self) -> RecordBatch:
        return RecordBatch(
            {name: list(child.consume_batch()) for name, child in self._children.items()}
        )


def get_column_ids(field: ParquetField | None, projection: ProjectionMask) -> list[int]:
    """Leaf column indices of a struct of primitives that the projection includes."""
    if field is None:
        return []
    if not field.is_struct:
        raise ValueError("We only support primitives and structs")
    column_ids = []
    for child in field.children() or ():
        if not child.is_primitive:
            raise ValueError("We only support primitives and structs")
        if projection.leaf_included(child.col_idx):
            column_ids.append(child.col_idx)
    return column_ids


def build_cached_array_reader(
    field: ParquetField | None,
    projection: ProjectionMask,
    reader: ArrayReader,
    row_group_cache: RowGroupCache,
) -> ArrayReader:
    """Wrap each column of a struct reader in a :class:`CachedArrayReader`."""
    column_ids = get_column_ids(field, projection)
    if not column_ids:
        return reader
    if not isinstance(reader, StructArrayReader):
        raise TypeError("The reader must be a StructArrayReader")
    children = reader.children
    if len(children) != len(column_ids):
        raise ValueError(
            f"reader has {len(children)} columns but projection selects {len(column_ids)}"
        )
    return StructArrayReader(
        {
            name: CachedArrayReader(child, row_group_cache.get_column_or_create(column_id))
            for column_id, (name, child) in zip(column_ids, children.items())
        }
    )
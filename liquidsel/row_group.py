"""Column chunks of one row group, fetched into memory for decoding."""

from __future__ import annotations

import threading
from bisect import bisect_left
from dataclasses import dataclass
from typing import Iterable, Protocol, Sequence, Union

from liquidsel.page_cache import PredicatePageCache
from liquidsel.projection import ProjectionMask
from liquidsel.selection import RowSelection


@dataclass(frozen=True)
class PageLocation:
    """Where a data page lies in the file and the first row it holds."""

    offset: int
    compressed_page_size: int
    first_row_index: int


@dataclass(frozen=True)
class ColumnChunkMeta:
    """Byte extent of one column chunk in the file."""

    start: int
    length: int

    @property
    def byte_range(self) -> tuple[int, int]:
        return (self.start, self.length)


@dataclass(frozen=True)
class RowGroupMeta:
    columns: tuple[ColumnChunkMeta, ...]
    num_rows: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", tuple(self.columns))


class ByteSource(Protocol):
    def get_byte_ranges(self, ranges: Sequence[range]) -> list[bytes]: ...


Source = Union[bytes, bytearray, memoryview, ByteSource]


def _read_ranges(source: Source, ranges: Sequence[range]) -> list[bytes]:
    if isinstance(source, (bytes, bytearray, memoryview)):
        chunks = []
        for rng in ranges:
            if rng.start < 0 or rng.stop > len(source):
                raise ValueError(f"byte range {rng.start}..{rng.stop} out of bounds 0..{len(source)}")
            chunks.append(bytes(source[rng.start : rng.stop]))
        return chunks
    chunks = [bytes(chunk) for chunk in source.get_byte_ranges(list(ranges))]
    if len(chunks) != len(ranges):
        raise ValueError(f"source returned {len(chunks)} chunks for {len(ranges)} ranges")
    return chunks


def _prefix(data: bytes, length: int) -> bytes:
    if length < 0 or length > len(data):
        raise ValueError(f"cannot take {length} bytes from {len(data)} available")
    return data[:length]


class SparseChunk:
    """A column chunk of which only some pages were fetched, keyed by file offset."""

    def __init__(self, length: int, data: Iterable[tuple[int, bytes]]) -> None:
        pages = sorted(((int(offset), bytes(chunk)) for offset, chunk in data), key=lambda p: p[0])
        self._length = length
        self._offsets = [offset for offset, _ in pages]
        self._pages = [chunk for _, chunk in pages]

    def get(self, start: int) -> bytes:
        """The fetched bytes that begin at file offset ``start``."""
        idx = bisect_left(self._offsets, start)
        if idx == len(self._offsets) or self._offsets[idx] != start:
            raise ValueError(f"Invalid offset in sparse column chunk data: {start}")
        return self._pages[idx]

    def get_bytes(self, start: int, length: int) -> bytes:
        return _prefix(self.get(start), length)

    def __len__(self) -> int:
        return self._length


class LazyChunk:
    """A whole column chunk, read from the source on first access."""

    def __init__(self, source: Source, offset: int, length: int) -> None:
        self._source = source
        self._offset = offset
        self._length = length
        self._data: bytes | None = None
        self._lock = threading.Lock()

    def _load(self) -> bytes:
        with self._lock:
            if self._data is None:
                rng = range(self._offset, self._offset + self._length)
                (self._data,) = _read_ranges(self._source, [rng])
            return self._data

    def get(self, start: int) -> bytes:
        """The chunk's bytes from file offset ``start`` to its end."""
        if not self._offset <= start <= self._offset + self._length:
            raise ValueError(
                f"offset {start} outside column chunk "
                f"{self._offset}..{self._offset + self._length}"
            )
        return self._load()[start - self._offset :]

    def get_bytes(self, start: int, length: int) -> bytes:
        return _prefix(self.get(start), length)

    def __len__(self) -> int:
        return self._length


ColumnChunk = Union[SparseChunk, LazyChunk]


class InMemoryRowGroup:
    """The fetched column chunks of one row group.

    With an offset index only the pages needed by a selection are fetched;
    without one, each column chunk is read whole on first access.
    """

    def __init__(
        self,
        metadata: RowGroupMeta,
        offset_index: Sequence[Sequence[PageLocation]] | None = None,
        projection_to_cache: ProjectionMask | None = None,
    ) -> None:
        self.metadata = metadata
        self.offset_index = [list(pages) for pages in offset_index] if offset_index else None
        self.projection_to_cache = projection_to_cache
        self.page_cache = PredicatePageCache()
        self._chunks: list[ColumnChunk | None] = [None] * len(metadata.columns)

    def num_rows(self) -> int:
        return self.metadata.num_rows

    def _pending(self, projection: ProjectionMask) -> list[int]:
        return [
            idx
            for idx, chunk in enumerate(self._chunks)
            if chunk is None and projection.leaf_included(idx)
        ]

    def fetch(self, source: Source, projection: ProjectionMask, selection: RowSelection) -> None:
        """Bring the projected columns that are not yet fetched into memory."""
        pending = self._pending(projection)
        if self.offset_index is None:
            for idx in pending:
                meta = self.metadata.columns[idx]
                self._chunks[idx] = LazyChunk(source, meta.start, meta.length)
            return

        per_column: list[list[range]] = []
        for idx in pending:
            start = self.metadata.columns[idx].start
            pages = self.offset_index[idx]
            ranges: list[range] = []
            # A first page past the chunk start means a dictionary page precedes it.
            if pages and pages[0].offset != start:
                ranges.append(range(start, pages[0].offset))
            ranges.extend(selection.scan_ranges(pages))
            per_column.append(ranges)

        fetched = iter(_read_ranges(source, [rng for ranges in per_column for rng in ranges]))
        for idx, ranges in zip(pending, per_column):
            self._chunks[idx] = SparseChunk(
                self.metadata.columns[idx].length,
                [(rng.start, next(fetched)) for rng in ranges],
            )

    def column_chunk(self, i: int) -> ColumnChunk:
        chunk = self._chunks[i]
        if chunk is None:
            raise LookupError(f"Invalid column index {i}, column was not fetched")
        return chunk

    def page_locations(self, i: int) -> list[PageLocation] | None:
        return None if self.offset_index is None else list(self.offset_index[i])

    def uses_page_cache(self, i: int) -> bool:
        """Whether column ``i`` is read both by a predicate and by the projection."""
        if self.projection_to_cache is None:
            return False
        return self.projection_to_cache.leaf_included(i)
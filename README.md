# liquidsel

Building blocks for scanning columnar data with predicate pushdown: run-length
row selections, leaf projection masks, a batch-granular in-memory column cache
with a byte budget, and readers that read through that cache.

The package has no dependencies outside the standard library.

## Install

```
pip install liquidsel
pip install "liquidsel[test]"   # with pytest
```

## Modules

- `liquidsel.selection`
  - `RowSelector(row_count, skip)`, built with `RowSelector.selecting(n)` or
    `RowSelector.skipping(n)`.
  - `RowSelection`: an ordered run of selectors kept in canonical form (empty
    runs dropped, neighbouring runs of the same kind merged). It offers
    `from_filters` (boolean filters laid end to end; nulls raise `ValueError`),
    `row_count()`, `total_rows()`, `selects_any()`, `split_off(n)` (removes
    and returns the first `n` rows), `scan_ranges(page_locations)` (byte
    ranges of pages holding a selected row) and `selectors()`.
- `liquidsel.projection`
  - `ProjectionMask`: `all()`, `leaves(num_leaves, indices)`, `union`,
    `intersect`, `leaf_included` and `predicate_column_id` (the single leaf a
    predicate selects; raises `ValueError` otherwise).
  - `ParquetField`: `primitive(...)`, `group(...)`, `into_list(name)`,
    `children()`.
  - `trim_row_selection`, `offset_row_selection`, `limit_row_selection`.
- `liquidsel.row_batches`: `take_next_batch` (pops exactly one batch worth of
  rows off a deque of selectors), `boolean_buffer_and_then`,
  `row_selector_to_boolean_buffer` and
  `consolidate_selection_to_batch_granularity`.
- `liquidsel.boolean_selection`: `BooleanSelection`, one boolean per row, with
  `from_filters`, `new_selected`, `new_unselected`, `from_consecutive_ranges`,
  `from_row_selection`, `to_row_selection`, `as_inverted`, `union`,
  `intersection`, `and_then`, `positive_iter`, `selects_any`, `row_count`
  and `slice`.
- `liquidsel.dictionary`: `DictionaryArray` (keys into bytes or str values)
  and `CheckedDictionaryArray`, whose values are unique: `new_checked`
  re-encodes, `from_values` encodes plain values, `new_unchecked` raises
  `ValueError` if the values are not unique.
- `liquidsel.coalesce`: `RecordBatch` (equal-length named columns with
  `num_rows`, `column`, `project`, `concat`), the `StatsCollector` interface,
  and `FinalStream`, which merges incoming batches until the buffered rows
  exceed three quarters of the target batch size. Collectors are started when
  the stream is created and stopped by `close()` or on leaving a `with` block.
- `liquidsel.column_cache`: `FileCache(batch_size, max_cache_bytes=None)`,
  `RowGroupCache` and `ColumnCache`. Batches are keyed by their first row;
  inserting past the shared byte budget raises `CacheFullError`, which holds
  the rejected values on `.array`.
- `liquidsel.array_reader`: the `ArrayReader` interface, `ListArrayReader`
  (reads an in-memory list and counts read and skip calls),
  `CachedArrayReader`, `StructArrayReader`, `get_column_ids` and
  `build_cached_array_reader`.
- `liquidsel.page_cache`: `PageType`, `Page`, `PredicatePageCache` (at most one
  dictionary page and one data page per column, keyed by file offset) and
  `CachedPageReader`, which currently passes pages straight through from its
  inner source.
- `liquidsel.row_group`: `PageLocation`, `ColumnChunkMeta`, `RowGroupMeta`,
  `SparseChunk`, `LazyChunk` and `InMemoryRowGroup`, whose `fetch` reads only
  the pages a selection needs when an offset index is given, and otherwise
  reads each column chunk whole on first access.

## Examples

Taking one batch off a selection queue:

```python
from collections import deque

from liquidsel.row_batches import take_next_batch
from liquidsel.selection import RowSelector

queue = deque([RowSelector.selecting(10)])
batch = take_next_batch(queue, 8)
# batch == [RowSelector.selecting(8)]
# queue == deque([RowSelector.selecting(2)])
```

Reading through the column cache:

```python
from liquidsel.array_reader import CachedArrayReader, ListArrayReader
from liquidsel.column_cache import FileCache

cache = FileCache(batch_size=4)
column = cache.row_group(0).get_column_or_create(0)
reader = CachedArrayReader(ListArrayReader(range(12)), column)

reader.read_records(2)
reader.skip_records(4)
reader.read_records(2)
reader.consume_batch()   # [0, 1, 6, 7]
column.get_array(0)      # [0, 1, 2, 3]
column.get_array(8)      # None: rows 8..12 were never read
```

## What it does not do

- It does not open or decode parquet files. Readers work on values already in
  memory, and `InMemoryRowGroup` hands back raw bytes of column chunks.
- It has no driver that evaluates predicates over row groups and yields the
  resulting batches; the pieces above have to be combined by the caller.
- It runs no server and has no command-line program.

## Tests

```
pytest
```
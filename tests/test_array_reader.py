import pytest

from liquidsel.array_reader import (
    CachedArrayReader,
    ListArrayReader,
    StructArrayReader,
    build_cached_array_reader,
    get_column_ids,
)
from liquidsel.column_cache import FileCache
from liquidsel.projection import ParquetField, ProjectionMask

BATCH_SIZE = 32
TOTAL_ROWS = 96


def set_up_reader_with_cache(cache):
    return CachedArrayReader(ListArrayReader(range(TOTAL_ROWS)), cache)


def set_up_reader():
    file_cache = FileCache(BATCH_SIZE, None)
    column = file_cache.row_group(0).get_column_or_create(0)
    return set_up_reader_with_cache(column), column


def expected_cached_value(row_id):
    return list(range(row_id, row_id + BATCH_SIZE))


def assert_contains(cache, row_id):
    assert cache.get_array(row_id) == expected_cached_value(row_id)


def assert_not_contains(cache, row_id):
    assert cache.get_array(row_id) is None


def test_read_at_batch_boundary():
    reader, cache = set_up_reader()
    for i in range(0, 96, 32):
        assert reader.read_records(32) == 32
        consumed = reader.consume_batch()
        actual = cache.get_array(i)
        assert consumed == actual
        assert actual == expected_cached_value(i)

    reader, cache = set_up_reader()
    for _ in range(0, 96, 32):
        assert reader.read_records(32) == 32
    consumed = reader.consume_batch()
    assert len(consumed) == 96
    cached = []
    for i in range(0, 96, 32):
        array = cache.get_array(i)
        assert array == expected_cached_value(i)
        cached.extend(array)
    assert consumed == cached

    reader, cache = set_up_reader()
    reader.read_records(32)
    reader.skip_records(32)
    reader.read_records(32)
    consumed = reader.consume_batch()
    assert len(consumed) == 64
    assert_contains(cache, 0)
    assert_not_contains(cache, 32)
    assert_contains(cache, 64)


def test_edge_cases():
    reader, cache = set_up_reader()
    assert reader.consume_batch() == []
    assert cache.memory_usage() == 0


def test_large_skip_and_read():
    reader, cache = set_up_reader()
    reader.read_records(90)
    assert len(reader.consume_batch()) == 90
    assert_contains(cache, 0)
    assert_contains(cache, 32)
    assert_contains(cache, 64)

    reader, cache = set_up_reader()
    reader.skip_records(40)
    assert len(reader.consume_batch()) == 0
    assert_not_contains(cache, 0)
    reader.read_records(40)
    assert_contains(cache, 32)
    assert_contains(cache, 64)
    assert len(reader.consume_batch()) == 40


def test_skip_partial():
    reader, cache = set_up_reader()
    reader.read_records(20)
    reader.skip_records(20)
    reader.read_records(20)
    assert_contains(cache, 0)
    assert_contains(cache, 32)
    assert reader.consume_batch() == list(range(20)) + list(range(40, 60))


def test_read_partial_batch():
    reader, cache = set_up_reader()

    reader.read_records(20)
    assert_contains(cache, 0)
    assert len(reader.consume_batch()) == 20

    reader.read_records(20)
    assert_contains(cache, 32)
    assert len(reader.consume_batch()) == 20

    reader.read_records(32)
    assert_contains(cache, 64)
    assert len(reader.consume_batch()) == 32


def test_partial_batch_values_follow_row_positions():
    reader, _ = set_up_reader()
    reader.read_records(20)
    assert reader.consume_batch() == list(range(20))
    reader.read_records(20)
    assert reader.consume_batch() == list(range(20, 40))


def test_read_with_all_cached():
    reader, cache = set_up_reader()
    reader.read_records(96)
    assert len(reader.consume_batch()) == 96
    assert reader.inner.read_calls == 3
    assert reader.inner.skip_calls == 0
    for row_id in [0, 32, 64]:
        assert_contains(cache, row_id)

    reader = set_up_reader_with_cache(cache)
    reader.read_records(96)
    assert len(reader.consume_batch()) == 96
    assert reader.inner.read_calls == 0
    assert reader.inner.skip_calls == 0
    for row_id in [0, 32, 64]:
        assert_contains(cache, row_id)

    reader = set_up_reader_with_cache(cache)
    reader.read_records(20)
    reader.skip_records(20)
    reader.read_records(20)
    assert reader.inner.read_calls == 0
    assert reader.inner.skip_calls == 0
    assert len(reader.consume_batch()) == 40


def get_warm_cache():
    reader, cache = set_up_reader()
    reader.read_records(32)
    reader.skip_records(32)
    reader.read_records(32)
    assert len(reader.consume_batch()) == 64
    assert_contains(cache, 0)
    assert_not_contains(cache, 32)
    assert reader.inner.read_calls == 2
    assert reader.inner.skip_calls == 1
    return cache


def test_read_with_partial_cached():
    cache = get_warm_cache()
    reader = set_up_reader_with_cache(cache)
    reader.read_records(96)
    assert len(reader.consume_batch()) == 96
    assert reader.inner.read_calls == 1
    assert reader.inner.skip_calls == 1
    for row_id in [0, 32, 64]:
        assert_contains(cache, row_id)

    cache = get_warm_cache()
    reader = set_up_reader_with_cache(cache)
    reader.read_records(16)
    reader.skip_records(48)
    reader.read_records(16)
    reader.skip_records(16)
    assert len(reader.consume_batch()) == 32
    assert reader.inner.read_calls == 0
    assert reader.inner.skip_calls == 0
    assert_contains(cache, 0)
    assert_not_contains(cache, 32)
    assert_contains(cache, 64)


def test_full_cache_still_returns_values():
    file_cache = FileCache(BATCH_SIZE, max_cache_bytes=1)
    column = file_cache.row_group(0).get_column_or_create(0)
    reader = set_up_reader_with_cache(column)
    reader.read_records(40)
    reader.skip_records(10)
    reader.read_records(30)
    assert reader.consume_batch() == list(range(40)) + list(range(50, 80))
    assert file_cache.memory_usage() == 0


def test_list_reader_stops_at_end():
    reader = ListArrayReader(range(5))
    assert reader.skip_records(2) == 2
    assert reader.read_records(10) == 3
    assert reader.consume_batch() == [2, 3, 4]
    assert reader.consume_batch() == []
    assert (reader.read_calls, reader.skip_calls) == (1, 1)


def test_struct_reader_reads_columns_together():
    reader = StructArrayReader(
        {"a": ListArrayReader([1, 2, 3, 4]), "b": ListArrayReader(["w", "x", "y", "z"])}
    )
    assert reader.skip_records(1) == 1
    assert reader.read_records(2) == 2
    batch = reader.consume_batch()
    assert batch.column("a") == [2, 3]
    assert batch.column("b") == ["x", "y"]


def make_field():
    return ParquetField.group(
        "root",
        [
            ParquetField.primitive("a", 0, "int64", False),
            ParquetField.primitive("b", 1, "int64", True),
            ParquetField.primitive("c", 2, "utf8", False),
        ],
        False,
    )


def test_get_column_ids():
    field = make_field()
    assert get_column_ids(None, ProjectionMask.all()) == []
    assert get_column_ids(field, ProjectionMask.all()) == [0, 1, 2]
    assert get_column_ids(field, ProjectionMask.leaves(3, [0, 2])) == [0, 2]


def test_get_column_ids_rejects_unsupported_fields():
    primitive = ParquetField.primitive("a", 0, "int64", False)
    with pytest.raises(ValueError):
        get_column_ids(primitive, ProjectionMask.all())
    nested = ParquetField.group("root", [make_field()], False)
    with pytest.raises(ValueError):
        get_column_ids(nested, ProjectionMask.all())
    with pytest.raises(ValueError):
        get_column_ids(primitive.into_list("item"), ProjectionMask.all())


def test_build_cached_array_reader_wraps_columns():
    field = make_field()
    projection = ProjectionMask.leaves(3, [0, 2])
    row_group_cache = FileCache(BATCH_SIZE).row_group(0)
    struct = StructArrayReader(
        {
            "a": ListArrayReader(range(TOTAL_ROWS)),
            "c": ListArrayReader(range(100, 100 + TOTAL_ROWS)),
        }
    )
    wrapped = build_cached_array_reader(field, projection, struct, row_group_cache)
    assert all(isinstance(r, CachedArrayReader) for r in wrapped.children.values())

    wrapped.read_records(40)
    batch = wrapped.consume_batch()
    assert batch.column("a") == list(range(40))
    assert batch.column("c") == list(range(100, 140))
    assert row_group_cache.get_column(0).get_array(32) == list(range(32, 64))
    assert row_group_cache.get_column(2).get_array(0) == list(range(100, 132))
    assert row_group_cache.get_column(1) is None


def test_build_cached_array_reader_without_columns_returns_reader():
    struct = StructArrayReader({"a": ListArrayReader([1])})
    row_group_cache = FileCache(BATCH_SIZE).row_group(0)
    result = build_cached_array_reader(
        make_field(), ProjectionMask.leaves(3, []), struct, row_group_cache
    )
    assert result is struct
    assert build_cached_array_reader(None, ProjectionMask.all(), struct, row_group_cache) is struct


def test_build_cached_array_reader_errors():
    row_group_cache = FileCache(BATCH_SIZE).row_group(0)
    with pytest.raises(TypeError):
        build_cached_array_reader(
            make_field(), ProjectionMask.all(), ListArrayReader([1]), row_group_cache
        )
    with pytest.raises(ValueError):
        build_cached_array_reader(
            make_field(),
            ProjectionMask.all(),
            StructArrayReader({"a": ListArrayReader([1])}),
            row_group_cache,
        )
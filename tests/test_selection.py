from collections import namedtuple

import pytest

from liquidsel.row_batches import row_selector_to_boolean_buffer
from liquidsel.selection import RowSelection, RowSelector

Page = namedtuple("Page", "offset compressed_page_size first_row_index")

PAGES = [Page(100, 50, 0), Page(150, 50, 10), Page(200, 50, 20)]

PATTERN = [True, True, False, False, False, True, False, True, True, True, False]


def test_negative_row_count_rejected():
    with pytest.raises(ValueError):
        RowSelector.selecting(-1)


def test_factories_set_skip_flag():
    assert RowSelector.selecting(4) == RowSelector(4, False)
    assert RowSelector.skipping(4) == RowSelector(4, True)


def test_constructor_merges_and_drops_empty_runs():
    selection = RowSelection(
        [
            RowSelector.selecting(2),
            RowSelector.selecting(3),
            RowSelector.skipping(0),
            RowSelector.skipping(4),
        ]
    )
    expected = RowSelection.from_filters([[True] * 5 + [False] * 4])
    assert selection.selectors() == expected.selectors()
    assert all(s.row_count > 0 for s in selection)


@pytest.mark.parametrize(
    "filters",
    [
        [PATTERN],
        [PATTERN[:4], PATTERN[4:]],
        [[False, False]],
        [[]],
        [[True], [True], [False]],
    ],
)
def test_from_filters_round_trip(filters):
    flat = [value for flt in filters for value in flt]
    selection = RowSelection.from_filters(filters)
    assert row_selector_to_boolean_buffer(selection) == flat
    assert selection.row_count() == sum(flat)
    assert selection.total_rows() == len(flat)
    assert selection.selects_any() == any(flat)


def test_from_filters_rejects_nulls():
    with pytest.raises(ValueError):
        RowSelection.from_filters([[True, None]])


@pytest.mark.parametrize("n", [0, 1, 3, 5, 6, 10, 11])
def test_split_off_preserves_rows(n):
    selection = RowSelection.from_filters([PATTERN])
    head = selection.split_off(n)
    assert head.total_rows() == min(n, len(PATTERN))
    assert row_selector_to_boolean_buffer(head) + row_selector_to_boolean_buffer(
        selection
    ) == PATTERN


def test_split_off_past_end_takes_everything():
    selection = RowSelection.from_filters([PATTERN])
    original = selection.selectors()
    head = selection.split_off(len(PATTERN) + 5)
    assert head.selectors() == original
    assert len(selection) == 0


def test_split_off_negative_rejected():
    with pytest.raises(ValueError):
        RowSelection.from_filters([PATTERN]).split_off(-1)


def test_scan_ranges_middle_page_only():
    selection = RowSelection(
        [RowSelector.skipping(10), RowSelector.selecting(10), RowSelector.skipping(10)]
    )
    assert selection.scan_ranges(PAGES) == [range(150, 200)]


def test_scan_ranges_all_pages():
    selection = RowSelection([RowSelector.selecting(30)])
    assert selection.scan_ranges(PAGES) == [range(100, 150), range(150, 200), range(200, 250)]


def test_scan_ranges_first_page_only():
    selection = RowSelection([RowSelector.selecting(5), RowSelector.skipping(25)])
    assert selection.scan_ranges(PAGES) == [range(100, 150)]


def test_scan_ranges_selection_straddling_pages():
    selection = RowSelection(
        [RowSelector.skipping(5), RowSelector.selecting(10), RowSelector.skipping(15)]
    )
    assert selection.scan_ranges(PAGES) == [range(100, 150), range(150, 200)]


def test_scan_ranges_no_pages():
    assert RowSelection([RowSelector.selecting(30)]).scan_ranges([]) == []


def test_iteration_and_length_match_selectors():
    selection = RowSelection.from_filters([PATTERN])
    assert list(selection) == selection.selectors()
    assert len(selection) == len(selection.selectors())


def test_equality():
    a = RowSelection.from_filters([PATTERN])
    b = RowSelection(list(a))
    assert a == b
    assert (a == "not a selection") is False
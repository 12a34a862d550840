import pytest

from liquidsel.boolean_selection import BooleanSelection
from liquidsel.selection import RowSelection, RowSelector


def test_boolean_selection_and_then():
    self_selection = BooleanSelection.from_filters(
        [[False, False, True, False, True, True, False, True, False, True, False, True]]
    )
    other_selection = BooleanSelection.from_filters([[False, False, True, True, False, True]])
    result = self_selection.and_then(other_selection)
    expected = BooleanSelection.from_filters(
        [[False, False, False, False, False, True, False, True, False, False, False, True]]
    )
    assert result == expected


def test_and_then_mismatched_set_bits():
    self_selection = BooleanSelection.from_filters([[True, True, False]])
    other_selection = BooleanSelection.from_filters([[True, False, False]])
    with pytest.raises(
        ValueError, match="The 'other' selection must have exactly as many set bits as 'self'."
    ):
        self_selection.and_then(other_selection)


def test_and_then_fast_path_equal_lengths():
    full = BooleanSelection.new_selected(4)
    verdict = BooleanSelection([True, False, True, False])
    assert full.and_then(verdict) == verdict


def test_from_filters_concatenates_and_nulls_unselected():
    sel = BooleanSelection.from_filters([[True, None], [False, True]])
    assert sel.slice(0, len(sel)) == [True, False, False, True]


def test_new_selected_and_unselected():
    assert BooleanSelection.new_selected(5).row_count() == 5
    assert BooleanSelection.new_unselected(5).row_count() == 0
    assert not BooleanSelection.new_unselected(5).selects_any()
    assert BooleanSelection.new_selected(0).is_empty()


def test_as_inverted_is_involution():
    sel = BooleanSelection([True, False, False, True, True])
    inverted = sel.as_inverted()
    assert inverted.row_count() == len(sel) - sel.row_count()
    assert inverted.as_inverted() == sel


def test_union_and_intersection():
    a = BooleanSelection([False, False, True, True, True, True, False, False, True])
    b = BooleanSelection([False, True, False, False, False, False, False, False, True])
    assert a.union(b) == BooleanSelection([False, True, True, True, True, True, False, False, True])
    assert a.intersection(b) == BooleanSelection(
        [False, False, False, False, False, False, False, False, True]
    )


def test_union_length_mismatch_raises():
    with pytest.raises(ValueError):
        BooleanSelection([True]).union(BooleanSelection([True, False]))


def test_from_consecutive_ranges():
    sel = BooleanSelection.from_consecutive_ranges([range(2, 4), range(4, 4), range(6, 7)], 9)
    assert list(sel.positive_iter()) == [2, 3, 6]
    assert len(sel) == 9


def test_from_consecutive_ranges_beyond_total_raises():
    with pytest.raises(ValueError):
        BooleanSelection.from_consecutive_ranges([range(0, 5)], 3)


def test_row_selection_round_trip():
    selection = RowSelection(
        [RowSelector.skipping(3), RowSelector.selecting(2), RowSelector.skipping(1)]
    )
    sel = BooleanSelection.from_row_selection(selection)
    assert sel.slice(0, len(sel)) == [False, False, False, True, True, False]
    assert sel.to_row_selection() == selection


def test_slice_and_bounds():
    sel = BooleanSelection([True, False, True, True])
    assert sel.slice(1, 3) == [False, True, True]
    with pytest.raises(IndexError):
        sel.slice(2, 3)


def test_positive_iter_matches_row_count():
    sel = BooleanSelection([False, True, True, False, True])
    assert len(list(sel.positive_iter())) == sel.row_count()
    assert list(sel.positive_iter()) == [1, 2, 4]
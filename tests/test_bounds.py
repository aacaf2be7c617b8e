import numpy as np
import pytest

from cloud_studio.bounds import (
    HeightBounds,
    clamp_height_range,
    filter_by_height,
    height_filter_indices,
    merge_bounds,
    resolve_height_range,
)
from cloud_studio.delimited import parse_delimited_text
from cloud_studio.errors import EmptyPointCloudError


def test_merge_widens():
    assert merge_bounds(HeightBounds(-5, 5), -10, 3) == HeightBounds(-10, 5)


def test_merge_inside_leaves_bounds_unchanged():
    assert merge_bounds(HeightBounds(-10, 5), 0, 0) == HeightBounds(-10, 5)


def test_merge_never_narrows():
    bounds = HeightBounds.empty()
    for lo, hi in [(0, 1), (-3, 0.5), (0.2, 0.3), (2, 9)]:
        previous = bounds
        bounds = bounds.merge(lo, hi)
        assert bounds.min <= min(previous.min, lo)
        assert bounds.max >= max(previous.max, hi)
    assert bounds.as_tuple() == (-3, 9)


def test_empty_bounds():
    bounds = HeightBounds.empty()
    assert bounds.is_empty
    assert bounds.merge(2, 4) == HeightBounds(2, 4)
    assert not bounds.merge(2, 4).is_empty


def test_clamp_low_edge_above_high():
    assert clamp_height_range((0.0, 5.0), 0, 8.0) == (5.0, 5.0)
    assert clamp_height_range((0.0, 5.0), 0, 2.0) == (2.0, 5.0)


def test_clamp_high_edge_below_low():
    assert clamp_height_range((1.0, 5.0), 1, -3.0) == (1.0, 1.0)
    assert clamp_height_range((1.0, 5.0), 1, 7.0) == (1.0, 7.0)


def test_resolve_fills_missing_edges_from_bounds():
    bounds = HeightBounds(0, 10)
    assert resolve_height_range(bounds) == (0, 10)
    assert resolve_height_range(bounds, low=2) == (2, 10)
    assert resolve_height_range(bounds, high=4) == (0, 4)


def test_resolve_pins_single_edge_to_session_bounds():
    bounds = HeightBounds(0, 10)
    assert resolve_height_range(bounds, low=50) == (10, 10)
    assert resolve_height_range(bounds, high=-5) == (0, 0)


def test_resolve_keeps_explicit_range():
    assert resolve_height_range(HeightBounds(0, 10), 20, 30) == (20, 30)
    with pytest.raises(ValueError):
        resolve_height_range(HeightBounds(0, 10), 3, 1)


def test_clamp_bad_index():
    with pytest.raises(IndexError):
        clamp_height_range((0.0, 1.0), 2, 0.5)


@pytest.fixture
def column():
    return parse_delimited_text("0,0,0,10,10,10\n0,0,1,20,20,20\n0,0,2,30,30,30\n0,0,3,40,40,40")


def test_height_filter_is_inclusive(column):
    np.testing.assert_array_equal(height_filter_indices(column, 1, 2), [1, 2])


def test_filter_by_height_keeps_alignment(column):
    kept = filter_by_height(column, 1.5, 10)
    np.testing.assert_array_equal(kept.positions, [0, 0, 2, 0, 0, 3])
    np.testing.assert_array_equal(kept.z_values, [2, 3])
    np.testing.assert_array_equal(kept.source_rows[:, 3:], [[30] * 3, [40] * 3])
    assert kept.has_explicit_color
    # The source record is untouched
    assert column.point_count == 4


def test_filter_with_nothing_in_range(column):
    with pytest.raises(EmptyPointCloudError):
        filter_by_height(column, 10, 20)

"""Tests for parent-containment and sibling-priority clipping."""

import pytest

from fenceforge.clip import (
    CONTAINMENT_MESSAGE,
    clip_to_higher_priority_siblings,
    clip_to_parent,
    subtract_higher_priority,
)
from fenceforge.core.errors import ContainmentError
from fenceforge.core.geometry_utils import path_area, to_polygon
from fenceforge.core.models import GeofenceData, GeofenceRecord
from fenceforge.core.types import GeofenceType

COUNTRY = GeofenceType.COUNTRY
BRANCH = GeofenceType.BRANCH


def _box(lat0, lng0, lat1, lng1):
    return [(lat0, lng0), (lat0, lng1), (lat1, lng1), (lat1, lng0)]


def _country(path=None, clipped=None):
    path = path or _box(0, 0, 10, 10)
    clipped = path if clipped is None else clipped
    return GeofenceRecord('a', path, clipped, GeofenceData('A', COUNTRY))


def _branch(geofence_id, path, priority=0, clipped=None):
    clipped = path if clipped is None else clipped
    data = GeofenceData(geofence_id, BRANCH, priority, 'a')
    return GeofenceRecord(geofence_id, path, clipped, data)


class TestClipToParent:
    """Tests for clip_to_parent()."""

    def test_inside_keeps_drawn_path(self):
        child = _branch('b1', _box(1, 1, 9, 9))
        result = clip_to_parent(child, _country())
        assert result.clipped_path == child.original_path
        assert result.original_path == child.original_path

    def test_touching_parent_boundary_is_inside(self):
        child = _branch('b1', _box(0, 0, 10, 5))
        result = clip_to_parent(child, _country())
        assert result.clipped_path == child.original_path

    def test_partial_overlap_is_trimmed(self):
        child = _branch('b1', _box(5, 5, 15, 15))
        result = clip_to_parent(child, _country())
        assert path_area(result.clipped_path) == pytest.approx(25.0)
        assert to_polygon(result.clipped_path).equals(to_polygon(_box(5, 5, 10, 10)))
        # Drawn shape is never modified
        assert result.original_path == child.original_path

    def test_disjoint_rejected(self):
        child = _branch('b1', _box(20, 20, 30, 30))
        with pytest.raises(ContainmentError, match="completely within its parent"):
            clip_to_parent(child, _country())

    def test_custom_message(self):
        child = _branch('b1', _box(20, 20, 30, 30))
        with pytest.raises(ContainmentError) as excinfo:
            clip_to_parent(child, _country(), message="Nope.")
        assert str(excinfo.value) == "Nope."

    def test_edge_contact_only_rejected(self):
        child = _branch('b1', _box(0, 10, 10, 20))
        with pytest.raises(ContainmentError):
            clip_to_parent(child, _country())

    def test_uses_parent_clipped_path(self):
        parent = _country(clipped=_box(0, 0, 10, 5))
        child = _branch('b1', _box(1, 1, 9, 9))
        result = clip_to_parent(child, parent)
        assert path_area(result.clipped_path) == pytest.approx(32.0)

    def test_empty_parent_rejected(self):
        parent = _country(clipped=())
        child = _branch('b1', _box(1, 1, 9, 9))
        with pytest.raises(ContainmentError):
            clip_to_parent(child, parent)

    def test_multi_part_overlap_rejected(self):
        u_shape = [(0, 0), (0, 3), (8, 3), (8, 7), (0, 7), (0, 10), (10, 10), (10, 0)]
        parent = _country(path=u_shape)
        child = _branch('b1', _box(1, 1, 2, 9))
        with pytest.raises(ContainmentError):
            clip_to_parent(child, parent)

    def test_message_constant(self):
        assert CONTAINMENT_MESSAGE == (
            "The drawn polygon must be completely within its parent geofence."
        )


class TestClipToHigherPrioritySiblings:
    """Tests for clip_to_higher_priority_siblings()."""

    def test_higher_priority_area_removed(self):
        b1 = _branch('b1', _box(1, 1, 9, 9), priority=1)
        b2 = _branch('b2', _box(1, 5, 9, 10), priority=2)
        result = clip_to_higher_priority_siblings(b2, [b1])
        assert path_area(result.clipped_path) == pytest.approx(8.0)
        assert to_polygon(result.clipped_path).equals(to_polygon(_box(1, 9, 9, 10)))

    def test_lower_priority_sibling_ignored(self):
        b1 = _branch('b1', _box(1, 1, 9, 9), priority=1)
        b2 = _branch('b2', _box(1, 5, 9, 10), priority=2)
        assert clip_to_higher_priority_siblings(b1, [b2]) is b1

    def test_equal_priority_sibling_ignored(self):
        b1 = _branch('b1', _box(1, 1, 5, 5), priority=1)
        b2 = _branch('b2', _box(6, 6, 9, 9), priority=1)
        assert clip_to_higher_priority_siblings(b2, [b1]) is b2

    def test_subtracts_sibling_clipped_area(self):
        # b1's effective area no longer reaches b2
        b1 = _branch('b1', _box(1, 1, 9, 9), priority=1, clipped=_box(1, 1, 9, 4))
        b2 = _branch('b2', _box(1, 5, 9, 10), priority=2)
        result = clip_to_higher_priority_siblings(b2, [b1])
        assert result.clipped_path == b2.original_path

    def test_empty_sibling_skipped(self):
        b1 = _branch('b1', _box(1, 1, 9, 9), priority=1, clipped=())
        b2 = _branch('b2', _box(1, 5, 9, 10), priority=2)
        assert clip_to_higher_priority_siblings(b2, [b1]).clipped_path == b2.original_path

    def test_fully_consumed_becomes_empty(self):
        b1 = _branch('b1', _box(0, 0, 10, 10), priority=1)
        b2 = _branch('b2', _box(2, 2, 4, 4), priority=2)
        result = clip_to_higher_priority_siblings(b2, [b1])
        assert result.is_empty
        assert result.clipped_path == ()
        assert result.original_path == b2.original_path

    def test_split_result_becomes_empty(self):
        b1 = _branch('b1', _box(-1, 4, 3, 6), priority=1)
        b2 = _branch('b2', _box(0, 0, 2, 10), priority=2)
        assert clip_to_higher_priority_siblings(b2, [b1]).is_empty

    def test_hole_result_becomes_empty(self):
        b1 = _branch('b1', _box(4, 4, 6, 6), priority=1)
        b2 = _branch('b2', _box(0, 0, 10, 10), priority=2)
        assert clip_to_higher_priority_siblings(b2, [b1]).is_empty

    def test_already_empty_record_unchanged(self):
        b1 = _branch('b1', _box(1, 1, 9, 9), priority=1)
        b2 = _branch('b2', _box(1, 5, 9, 10), priority=2, clipped=())
        assert clip_to_higher_priority_siblings(b2, [b1]) is b2


class TestSubtractHigherPriority:
    """Tests for subtract_higher_priority()."""

    def test_none_short_circuits(self):
        b2 = _branch('b2', _box(1, 5, 9, 10), priority=2)
        assert subtract_higher_priority(None, b2, []) is None

    def test_several_siblings_in_turn(self):
        b1 = _branch('b1', _box(0, 0, 10, 3), priority=1)
        b2 = _branch('b2', _box(0, 7, 10, 10), priority=2)
        b3 = _branch('b3', _box(0, 0, 10, 10), priority=3)
        result = subtract_higher_priority(b3.original_polygon(), b3, [b1, b2])
        assert result.area == pytest.approx(40.0)

"""Tests for geofence mutations."""

import pytest

from fenceforge.core.config import EngineConfig, HierarchyRules
from fenceforge.core.errors import (
    ContainmentError,
    DownstreamClipWarning,
    GeofenceNotFoundError,
    GeometryError,
    PriorityConflictError,
    StructureError,
)
from fenceforge.core.geometry_utils import path_area, to_polygon
from fenceforge.core.models import GeofenceData
from fenceforge.core.types import GeofenceType, ParentRule
from fenceforge.engine import (
    UPDATE_CONTAINMENT_MESSAGE,
    create_geofence,
    delete_geofence,
    reshape_geofence,
    update_geofence_data,
)
from fenceforge.pipeline import PRIORITY_CONFLICT_MESSAGE

COUNTRY = GeofenceType.COUNTRY
BRANCH = GeofenceType.BRANCH
SUB_BRANCH = GeofenceType.SUB_BRANCH
FIELD_OFFICER = GeofenceType.FIELD_OFFICER


def _box(lat0, lng0, lat1, lng1):
    return [(lat0, lng0), (lat0, lng1), (lat1, lng1), (lat1, lng0)]


def _create(records, geofence_id, path, name, geofence_type, parent_id=None, priority=0):
    data = GeofenceData(name, geofence_type, priority, parent_id)
    return create_geofence(path, data, records, geofence_id=geofence_id).records


def _tree():
    """A (country) > B1 (p1), B2 (p2); B1 > S1 > F1."""
    records = _create([], 'a', _box(0, 0, 10, 10), 'A', COUNTRY)
    records = _create(records, 'b1', _box(1, 1, 9, 9), 'B1', BRANCH, 'a', 1)
    records = _create(records, 'b2', _box(1, 5, 9, 10), 'B2', BRANCH, 'a', 2)
    records = _create(records, 's1', _box(2, 2, 8, 8), 'S1', SUB_BRANCH, 'b1')
    records = _create(records, 'f1', _box(3, 3, 4, 4), 'F1', FIELD_OFFICER, 's1')
    return records


def _by_id(records):
    return {r.id: r for r in records}


class TestCreateGeofence:
    """Tests for create_geofence()."""

    def test_country_without_parent(self):
        result = create_geofence(_box(0, 0, 10, 10), GeofenceData('A', COUNTRY), [])
        record = result.record
        assert record.clipped_path == record.original_path
        assert record.original_path[0] == record.original_path[-1]
        assert len(record.id) == 32
        assert result.changed == [record.id]
        assert [s.name for s in result.history] == [
            'structure', 'priority', 'parent_clip', 'sibling_clip'
        ]

    def test_step_history_reports_changes(self):
        result = create_geofence(
            _box(1, 5, 9, 10), GeofenceData('B3', BRANCH, 3, 'a'), _tree()
        )
        steps = {s.name: s for s in result.history}
        assert not steps['structure'].changed
        assert not steps['parent_clip'].changed
        assert steps['sibling_clip'].changed
        assert steps['sibling_clip'].message == "fully covered by higher-priority siblings"
        assert result.record.is_empty

    def test_step_history_for_root(self):
        result = create_geofence(_box(20, 20, 30, 30), GeofenceData('C', COUNTRY), _tree())
        steps = {s.name: s for s in result.history}
        assert steps['parent_clip'].message == "no parent"
        assert not steps['sibling_clip'].changed
        assert steps['sibling_clip'].message == ""

    def test_country_parent_cleared(self):
        result = create_geofence(
            _box(0, 0, 10, 10), GeofenceData('A', COUNTRY, parent_id='x'), []
        )
        assert result.record.parent_id is None

    def test_branch_inside_keeps_drawn_path(self):
        records = _by_id(_tree())
        assert records['b1'].clipped_path == records['b1'].original_path

    def test_lower_priority_branch_clipped(self):
        b2 = _by_id(_tree())['b2']
        assert b2.original_path == tuple(
            (float(lat), float(lng)) for lat, lng in _box(1, 5, 9, 10) + [(1, 5)]
        )
        assert path_area(b2.clipped_path) == pytest.approx(8.0)
        assert to_polygon(b2.clipped_path).equals(to_polygon(_box(1, 9, 9, 10)))

    def test_same_priority_overlap_rejected(self):
        records = _tree()
        with pytest.raises(PriorityConflictError) as excinfo:
            _create(records, 'b3', _box(2, 2, 3, 3), 'B3', BRANCH, 'a', 1)
        assert str(excinfo.value) == PRIORITY_CONFLICT_MESSAGE
        assert [r.id for r in records] == ['a', 'b1', 'b2', 's1', 'f1']

    def test_outside_parent_rejected(self):
        with pytest.raises(ContainmentError, match="drawn polygon"):
            _create(_tree(), 'b3', _box(20, 20, 30, 30), 'B3', BRANCH, 'a', 3)

    def test_partially_outside_parent_clipped(self):
        result = create_geofence(
            _box(5, 5, 15, 15), GeofenceData('B3', BRANCH, 9, 'a'), _tree()
        )
        assert result.record.original_path[2] == (15.0, 15.0)
        # Only the northern strip not owned by B1 or B2 remains
        assert path_area(result.record.clipped_path) == pytest.approx(5.0)

    def test_missing_parent_rejected(self):
        with pytest.raises(StructureError, match="Please select a parent geofence for Branch."):
            _create(_tree(), 'b3', _box(2, 2, 3, 3), 'B3', BRANCH)

    def test_wrong_parent_type_rejected(self):
        with pytest.raises(StructureError, match="must be of type"):
            _create(_tree(), 's2', _box(2, 2, 3, 3), 'S2', SUB_BRANCH, 'a')

    def test_ancestor_rule_allows_skipping_level(self):
        config = EngineConfig(rules=HierarchyRules.from_rule(ParentRule.ANCESTORS))
        result = create_geofence(
            _box(2, 2, 3, 3), GeofenceData('S2', SUB_BRANCH, 0, 'a'), _tree(), config
        )
        assert result.record.parent_id == 'a'

    def test_degenerate_path_rejected(self):
        with pytest.raises(GeometryError, match="at least 3 distinct points"):
            _create(_tree(), 'b3', [(1, 1), (2, 2), (1, 1)], 'B3', BRANCH, 'a', 3)

    def test_self_intersecting_path_rejected(self):
        with pytest.raises(GeometryError):
            _create(_tree(), 'b3', [(1, 1), (3, 3), (1, 3), (3, 1)], 'B3', BRANCH, 'a', 3)

    def test_duplicate_id_rejected(self):
        with pytest.raises(StructureError, match="already exists"):
            _create(_tree(), 'b1', _box(2, 2, 3, 3), 'B1', BRANCH, 'a', 3)

    def test_higher_priority_sibling_reclips_lower(self):
        records = _tree()
        result = create_geofence(
            _box(1, 9, 9, 10), GeofenceData('B0', BRANCH, 0, 'a'), records, geofence_id='b0'
        )
        by_id = _by_id(result.records)
        # B0 takes the strip B2 still held; B1 only touches B0
        assert by_id['b2'].is_empty
        assert by_id['b1'].clipped_path == by_id['b1'].original_path
        assert result.changed[0] == 'b0'
        assert 'b2' in result.changed

    def test_input_not_modified(self):
        records = _tree()
        snapshot = list(records)
        create_geofence(_box(1, 9, 9, 10), GeofenceData('B0', BRANCH, 0, 'a'), records)
        assert records == snapshot


class TestReshapeGeofence:
    """Tests for reshape_geofence()."""

    def test_shrinking_branch_reclips_children(self):
        result = reshape_geofence('b1', _box(1, 1, 9, 5), _tree())
        by_id = _by_id(result.records)
        assert path_area(by_id['s1'].clipped_path) == pytest.approx(18.0)
        assert by_id['s1'].original_path == _by_id(_tree())['s1'].original_path
        assert by_id['f1'].clipped_path == by_id['f1'].original_path
        # B2 no longer overlaps B1 and regains its whole drawn area
        assert by_id['b2'].clipped_path == by_id['b2'].original_path
        assert set(result.changed) == {'b1', 'b2', 's1'}
        assert result.changed[0] == 'b1'

    def test_dependents_dropped(self):
        with pytest.warns(DownstreamClipWarning):
            result = reshape_geofence('b1', _box(1, 1, 9, 1.5), _tree())
        by_id = _by_id(result.records)
        assert by_id['s1'].is_empty
        assert by_id['f1'].is_empty
        assert result.dropped == ['s1', 'f1']
        assert len(result.warnings) == 2
        assert result.warnings[0].startswith('Geofence "S1"')

    def test_outside_parent_uses_update_message(self):
        with pytest.raises(ContainmentError) as excinfo:
            reshape_geofence('b1', _box(20, 20, 30, 30), _tree())
        assert str(excinfo.value) == UPDATE_CONTAINMENT_MESSAGE

    def test_ignores_own_previous_shape(self):
        result = reshape_geofence('b1', _box(1, 1, 8, 8), _tree())
        assert result.record.clipped_path == result.record.original_path

    def test_priority_conflict_with_sibling(self):
        records = _create(_tree(), 'b3', _box(0, 0, 0.5, 0.5), 'B3', BRANCH, 'a', 1)
        with pytest.raises(PriorityConflictError):
            reshape_geofence('b3', _box(0, 0, 2, 2), records)

    def test_unknown_id(self):
        with pytest.raises(GeofenceNotFoundError):
            reshape_geofence('nope', _box(1, 1, 2, 2), _tree())

    def test_reshape_is_stable(self):
        records = _tree()
        b1 = _by_id(records)['b1']
        result = reshape_geofence('b1', b1.original_path, records)
        assert result.records == records


class TestUpdateGeofenceData:
    """Tests for update_geofence_data()."""

    def test_rename_keeps_geometry(self):
        records = _tree()
        b2 = _by_id(records)['b2']
        result = update_geofence_data('b2', b2.data.evolve(name='Renamed'), records)
        assert result.record.name == 'Renamed'
        assert result.record.clipped_path == b2.clipped_path
        assert result.changed == ['b2']

    def test_type_change_rejected(self):
        records = _tree()
        b1 = _by_id(records)['b1']
        with pytest.raises(StructureError, match="type of an existing geofence"):
            update_geofence_data('b1', b1.data.evolve(type=SUB_BRANCH), records)

    def test_priority_swap(self):
        records = _tree()
        b2 = _by_id(records)['b2']
        result = update_geofence_data('b2', b2.data.evolve(priority=0), records)
        by_id = _by_id(result.records)
        assert by_id['b2'].clipped_path == by_id['b2'].original_path
        # B1 loses its east side to B2 and is re-clipped with its children
        assert path_area(by_id['b1'].clipped_path) == pytest.approx(32.0)
        assert path_area(by_id['s1'].clipped_path) == pytest.approx(18.0)
        assert [r.id for r in result.records] == ['a', 'b1', 'b2', 's1', 'f1']

    def test_priority_conflict_rejected(self):
        records = _tree()
        b2 = _by_id(records)['b2']
        with pytest.raises(PriorityConflictError):
            update_geofence_data('b2', b2.data.evolve(priority=1), records)

    def test_move_to_new_parent(self):
        records = _create(_tree(), 's2', _box(1.5, 1.5, 3.5, 3.5), 'S2', SUB_BRANCH, 'b1', -1)
        f1 = _by_id(records)['f1']
        # S2 outranks S1, so F1 already lost the corner it shares with S2
        assert path_area(f1.clipped_path) == pytest.approx(0.75)

        result = update_geofence_data('f1', f1.data.evolve(parent_id='s2'), records)
        moved = _by_id(result.records)['f1']
        assert moved.parent_id == 's2'
        assert path_area(moved.clipped_path) == pytest.approx(0.25)
        assert moved.original_path == f1.original_path

    def test_move_outside_new_parent_rejected(self):
        records = _create(_tree(), 'b3', _box(0, 0, 0.5, 0.5), 'B3', BRANCH, 'a', 3)
        s1 = _by_id(records)['s1']
        with pytest.raises(ContainmentError):
            update_geofence_data('s1', s1.data.evolve(parent_id='b3'), records)

    def test_cycle_rejected(self):
        config = EngineConfig(rules=HierarchyRules({
            COUNTRY: (),
            BRANCH: (COUNTRY, SUB_BRANCH),
            SUB_BRANCH: (BRANCH,),
            FIELD_OFFICER: (SUB_BRANCH,),
        }))
        records = _tree()
        b1 = _by_id(records)['b1']
        with pytest.raises(StructureError, match="inside itself"):
            update_geofence_data('b1', b1.data.evolve(parent_id='s1'), records, config)

    def test_unknown_id(self):
        with pytest.raises(GeofenceNotFoundError):
            update_geofence_data('nope', GeofenceData('X', BRANCH, 0, 'a'), _tree())


class TestDeleteGeofence:
    """Tests for delete_geofence()."""

    def test_cascades_to_descendants(self):
        result = delete_geofence('b1', _tree())
        assert result.removed == ['b1', 's1', 'f1']
        assert [r.id for r in result.records] == ['a', 'b2']
        assert result.record is None

    def test_lower_priority_sibling_regains_area(self):
        result = delete_geofence('b1', _tree())
        b2 = _by_id(result.records)['b2']
        assert b2.clipped_path == b2.original_path
        assert result.changed == ['b2']

    def test_delete_leaf(self):
        result = delete_geofence('f1', _tree())
        assert result.removed == ['f1']
        assert result.changed == []

    def test_delete_country_removes_everything(self):
        result = delete_geofence('a', _tree())
        assert result.records == []
        assert result.removed == ['a', 'b1', 's1', 'f1', 'b2']

    def test_unknown_id(self):
        with pytest.raises(GeofenceNotFoundError):
            delete_geofence('nope', _tree())

"""
Tests for the targeting grid (shot game) adapter.

Tests:
- Fleet setup: bounds, overlaps, readiness
- Shots: one target, never twice
"""

import pytest

from ..engine_core.action import ProvisionalMove, ResourceRef
from ..engine_core.state import Phase
from ..errors import OccupiedError, OutOfBoundsError, ResourceUnavailableError
from ..games.targeting import FLEET, SHOT, segment_cells
from .conftest import LOCAL_PLAYER, targeting_state


def segment(i: int) -> ResourceRef:
    return ResourceRef("segment", i)


def full_fleet(adapter, session) -> ProvisionalMove:
    """Every segment horizontal, one per row."""
    move = ProvisionalMove()
    for i in range(len(FLEET)):
        move = adapter.place_at(session, move, segment(i), (i * 2, 0), choice=True)
    return move


class TestSetup:
    """Placing the fleet of lengths [5, 4, 3, 3, 2]."""

    def test_setup_session(self, targeting, setup_session):
        assert setup_session.phase == Phase.SETUP
        assert not setup_session.ready
        assert setup_session.is_my_turn
        assert targeting.in_setup(setup_session)

    def test_full_fleet_is_ready(self, targeting, setup_session):
        move = full_fleet(targeting, setup_session)

        assert [length for _, length in FLEET] == [5, 4, 3, 3, 2]
        assert targeting.is_ready(setup_session, move)

    def test_partial_fleet_is_not_ready(self, targeting, setup_session):
        move = targeting.place_at(setup_session, ProvisionalMove(), segment(0), (0, 0))

        result = targeting.is_locally_legal(setup_session, move)
        assert not result.legal
        assert "1 placed" in result.reason

    def test_sixth_placement_rejected(self, targeting, setup_session):
        move = full_fleet(targeting, setup_session)

        for i in range(len(FLEET)):
            with pytest.raises(ResourceUnavailableError):
                targeting.place_at(setup_session, move, segment(i), (9, 9 - i), choice=False)
        with pytest.raises(ResourceUnavailableError):
            targeting.place_at(setup_session, move, segment(5), (9, 0))

    def test_overlap_rejected(self, targeting, setup_session):
        move = targeting.place_at(setup_session, ProvisionalMove(), segment(0), (2, 0), choice=True)

        # Vertical cruiser from (0, 3) crosses the carrier at (2, 3)
        with pytest.raises(OccupiedError):
            targeting.place_at(setup_session, move, segment(2), (0, 3), choice=False)

    def test_segment_leaving_grid(self, targeting, setup_session):
        with pytest.raises(OutOfBoundsError):
            targeting.place_at(setup_session, ProvisionalMove(), segment(0), (0, 6), choice=True)

        move = targeting.place_at(setup_session, ProvisionalMove(), segment(0), (5, 0), choice=False)
        assert targeting.covered_cells(move) == set(segment_cells((5, 0), False, 5))

    @pytest.mark.parametrize("choice", ["vertical", "horizontal", 1, 0])
    def test_orientation_must_be_a_flag(self, targeting, setup_session, choice):
        with pytest.raises(OutOfBoundsError):
            targeting.place_at(setup_session, ProvisionalMove(), segment(4), (0, 0), choice=choice)

    def test_toggle_start_cell_removes_segment(self, targeting, setup_session):
        move = targeting.place_at(setup_session, ProvisionalMove(), segment(1), (4, 4))
        move = targeting.place_at(setup_session, move, segment(2), (4, 4))

        assert move.is_empty

    def test_remove_covering(self, targeting, setup_session):
        move = targeting.place_at(setup_session, ProvisionalMove(), segment(0), (3, 1), choice=True)

        assert targeting.remove_covering(move, (3, 4)).is_empty
        assert targeting.remove_covering(move, (4, 4)) == move

    def test_setup_payload(self, targeting, setup_session):
        move = full_fleet(targeting, setup_session)
        payload = targeting.to_commit_payload(setup_session, move)

        assert payload.action == "ships"
        assert payload.body["ships"][0] == {
            "type": "carrier",
            "start_row": 0,
            "start_col": 0,
            "horizontal": True,
            "size": 5,
        }
        assert [s["size"] for s in payload.body["ships"]] == [5, 4, 3, 3, 2]

    def test_ready_side_waits(self, targeting):
        """After our fleet is in, the opponent holds the setup turn."""
        session = targeting.parse_session("42", targeting_state(ships_ready=True), LOCAL_PLAYER)

        assert session.ready
        assert not session.is_my_turn
        assert not targeting.in_setup(session)


class TestShots:
    @pytest.fixture
    def active_session(self, targeting):
        enemy = [["unknown"] * 10 for _ in range(10)]
        enemy[0][0] = "miss"
        enemy[1][1] = "hit"
        payload = targeting_state(phase="active", ships_ready=True, enemy_board=enemy)
        return targeting.parse_session("42", payload, LOCAL_PLAYER)

    def test_fire_payload(self, targeting, active_session):
        move = targeting.place_at(active_session, ProvisionalMove(), None, (4, 5))

        assert targeting.is_locally_legal(active_session, move).legal
        payload = targeting.to_commit_payload(active_session, move)
        assert payload.action == "fire"
        assert payload.body == {"row": 4, "col": 5}

    def test_cannot_fire_twice_at_cell(self, targeting, active_session):
        with pytest.raises(OccupiedError):
            targeting.place_at(active_session, ProvisionalMove(), SHOT, (0, 0))
        with pytest.raises(OccupiedError):
            targeting.place_at(active_session, ProvisionalMove(), SHOT, (1, 1))

    def test_one_target_per_turn(self, targeting, active_session):
        move = targeting.place_at(active_session, ProvisionalMove(), SHOT, (4, 5))

        with pytest.raises(ResourceUnavailableError):
            targeting.place_at(active_session, move, SHOT, (4, 6))

    def test_fired_cells_are_occupied_slots(self, targeting, active_session):
        slots = {slot.position: slot for slot in targeting.describe_slots(active_session)}

        assert slots[(0, 0)].occupied
        assert slots[(1, 1)].content == "hit"
        assert not slots[(5, 5)].occupied

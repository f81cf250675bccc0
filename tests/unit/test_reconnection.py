"""Unit tests for page-state inference on (re)connect."""

from __future__ import annotations

import pytest

from mmg.server.reconnection import PageState, ReconnectionReconciler
from mmg.server.room_registry import RoomRegistry, RoomStatus


@pytest.fixture
def registry():
    registry = RoomRegistry(starting_cash=100.0, strike_price=100.0)
    registry.open_room("r1", "admin1")
    registry.join_room("r1", "alice", "p1")
    return registry


@pytest.fixture
def reconciler(registry):
    return ReconnectionReconciler(registry)


class TestReconnectionReconciler:

    def test_unknown_player_has_no_room(self, reconciler):
        result = reconciler.reconcile("stranger")
        assert result.page_state == PageState.NO_ROOM
        assert not result.may_be_stale
        assert result.room_id is None

    def test_admin_in_lobby(self, reconciler):
        result = reconciler.reconcile("admin1")
        assert result.page_state == PageState.ADMIN_LOBBY
        assert not result.may_be_stale
        assert result.room_id == "r1"
        assert result.is_admin

    def test_player_in_lobby(self, reconciler):
        result = reconciler.reconcile("p1")
        assert result.page_state == PageState.PLAYER_LOBBY
        assert not result.may_be_stale
        assert not result.is_admin

    def test_admin_in_active_game_may_be_stale(self, registry, reconciler):
        registry.start_room(registry.get_room("r1"))
        result = reconciler.reconcile("admin1")
        assert result.page_state == PageState.ADMIN_ACTIVE
        assert result.may_be_stale

    def test_player_in_active_game_may_be_stale(self, registry, reconciler):
        registry.start_room(registry.get_room("r1"))
        result = reconciler.reconcile("p1")
        assert result.page_state == PageState.PLAYER_ACTIVE
        assert result.may_be_stale

    def test_finished_game_reports_active_view(self, registry, reconciler):
        registry.get_room("r1").status = RoomStatus.OVER
        result = reconciler.reconcile("p1")
        assert result.page_state == PageState.PLAYER_ACTIVE
        assert result.may_be_stale

    def test_admin_role_wins_over_player_role(self, registry, reconciler):
        registry.open_room("r2", "p1")
        result = reconciler.reconcile("p1")
        assert result.page_state == PageState.ADMIN_LOBBY
        assert result.room_id == "r2"

    def test_closed_room_forgets_members(self, registry, reconciler):
        registry.remove_room("r1")
        assert reconciler.reconcile("p1").page_state == PageState.NO_ROOM
        assert reconciler.reconcile("admin1").page_state == PageState.NO_ROOM

    def test_wire_values(self):
        assert [state.value for state in PageState] == [
            "NoRoom", "AdminLobby", "AdminActive", "PlayerLobby", "PlayerActive",
        ]

"""Reconnection inference.

On every (re)connect the server works out which screen the client should be
showing from the registry alone, since the client's own memory may be stale.
"""

from __future__ import annotations

import dataclasses
import logging
from enum import Enum

from mmg.server.room_registry import Room, RoomRegistry
from mmg.utils.typing import PlayerID, RoomID

logger = logging.getLogger(__name__)


class PageState(Enum):
    """Screen a connecting client should show.

    - NO_ROOM: entry screen
    - ADMIN_LOBBY: admin waiting for players, may start the game
    - ADMIN_ACTIVE: admin game controls; re-sync from the next server push
    - PLAYER_LOBBY: player waiting for the admin to start
    - PLAYER_ACTIVE: player trading view; discard local portfolio until the
      next positionsUpdated
    """
    NO_ROOM = "NoRoom"
    ADMIN_LOBBY = "AdminLobby"
    ADMIN_ACTIVE = "AdminActive"
    PLAYER_LOBBY = "PlayerLobby"
    PLAYER_ACTIVE = "PlayerActive"


@dataclasses.dataclass(frozen=True)
class Reconciliation:
    page_state: PageState
    # Set whenever the resumed room has already started.
    may_be_stale: bool = False
    room_id: RoomID | None = None

    @property
    def is_admin(self) -> bool:
        return self.page_state in (PageState.ADMIN_LOBBY, PageState.ADMIN_ACTIVE)


class ReconnectionReconciler:

    def __init__(self, registry: RoomRegistry):
        self.registry = registry

    def reconcile(self, player_id: PlayerID) -> Reconciliation:
        room = self.registry.room_for_admin(player_id)
        if room is not None:
            result = self._infer(room, PageState.ADMIN_LOBBY, PageState.ADMIN_ACTIVE)
        else:
            room = self.registry.room_for_player(player_id)
            if room is None:
                return Reconciliation(page_state=PageState.NO_ROOM)
            result = self._infer(room, PageState.PLAYER_LOBBY, PageState.PLAYER_ACTIVE)

        logger.info(
            f"[Reconnect] {player_id} -> {result.page_state.value} in room {result.room_id} "
            f"(may_be_stale={result.may_be_stale})"
        )
        return result

    @staticmethod
    def _infer(room: Room, lobby_state: PageState, active_state: PageState) -> Reconciliation:
        if room.has_started:
            return Reconciliation(page_state=active_state, may_be_stale=True, room_id=room.room_id)
        return Reconciliation(page_state=lobby_state, room_id=room.room_id)

"""
Socket.IO handlers for the game clients.

Translates the client's event contract into MarketGameService calls and
manages socket membership of the room and admin channels. User-facing
errors are reported to the originating socket only; every other malformed
request is dropped.
"""
from __future__ import annotations

import functools
import logging

import flask
from flask_socketio import Namespace, emit, join_room

from mmg.configurations.configuration_constants import (Channels,
                                                        ClientEvents,
                                                        ServerEvents)
from mmg.server import thread_safe_collections
from mmg.server.errors import MarketGameError
from mmg.server.game_service import MarketGameService

logger = logging.getLogger(__name__)


def reports_errors(handler):
    """Emit a MarketGameError's event back to the sender instead of raising."""

    @functools.wraps(handler)
    def wrapper(self, *args, **kwargs):
        try:
            return handler(self, *args, **kwargs)
        except MarketGameError as e:
            logger.info(f"[Namespace] {handler.__name__} rejected: {type(e).__name__}({e})")
            if e.event is not None:
                emit(e.event)
            return None

    return wrapper


class MarketGameNamespace(Namespace):
    """Handles every client connection on the default namespace."""

    # Client event name -> handler suffix, for names that are not identifiers.
    EVENT_HANDLERS = {
        ClientEvents.HeartbeatResponse: "heartbeat_response",
        ClientEvents.RoomStart: "room_start",
        ClientEvents.TryRoom: "try_room",
        ClientEvents.JoinRoom: "join_room",
        ClientEvents.StartGame: "start_game",
        ClientEvents.RoundUpdate: "round_update",
        ClientEvents.SubmitBid: "submit_bid",
        ClientEvents.FinalizeGame: "finalize_game",
        ClientEvents.ReturnToLobby: "return_to_lobby",
        ClientEvents.CloseRoom: "close_room",
    }

    def __init__(self, namespace: str, service: MarketGameService):
        super().__init__(namespace)
        self.service = service
        # socket id -> player id, for disconnect logging
        self.socket_players = thread_safe_collections.ThreadSafeDict()

    def trigger_event(self, event, *args):
        return super().trigger_event(self.EVENT_HANDLERS.get(event, event), *args)

    def on_connect(self, auth=None):
        session_id = auth.get("sessionID") if isinstance(auth, dict) else None
        session, reconciliation = self.service.connect(session_id)
        self.socket_players[flask.request.sid] = session.player_id

        # Personal channel, so every tab of the same player receives direct pushes.
        join_room(session.player_id)
        if reconciliation.room_id is not None:
            join_room(reconciliation.room_id)
            if reconciliation.is_admin:
                join_room(Channels.Admins)

        emit(
            ServerEvents.Session,
            {
                "sessionID": session.session_id,
                "userID": session.player_id,
                "pageState": reconciliation.page_state.value,
                "clientBehind": reconciliation.may_be_stale,
            },
        )

    def on_disconnect(self, *args):
        player_id = self.socket_players.pop(flask.request.sid, None)
        # Rooms survive disconnects; only the heartbeat tears them down.
        logger.info(f"[Namespace] Socket {flask.request.sid} of player {player_id} disconnected")

    def on_heartbeat_response(self, admin_id=None):
        self.service.acknowledge_heartbeat(admin_id)

    @reports_errors
    def on_room_start(self, room_id=None, admin_id=None):
        room = self.service.open_room(room_id, admin_id)
        if room is None:
            return
        join_room(room.room_id)
        join_room(Channels.Admins)
        emit(ServerEvents.RoomStartSuccess)

    def on_try_room(self, room_id=None):
        if self.service.probe_room(room_id):
            emit(ServerEvents.RoomExists)
        else:
            emit(ServerEvents.NoSuchRoom)

    @reports_errors
    def on_join_room(self, room_id=None, username=None, player_id=None):
        room = self.service.join_room(room_id, username, player_id)
        join_room(room.room_id)
        self.service.announce_roster(room)
        emit(ServerEvents.JoinApproved)

    def on_start_game(self, admin_id=None):
        self.service.start_game(admin_id)

    def on_round_update(self, admin_id=None):
        self.service.advance_round(admin_id)

    @reports_errors
    def on_submit_bid(self, price=None, player_id=None):
        self.service.submit_bid(player_id, price)

    def on_finalize_game(self, admin_id=None, final_underlying_price=None):
        self.service.finalize_game(admin_id, final_underlying_price)

    def on_return_to_lobby(self, admin_id=None, room_id=None):
        self.service.return_to_lobby(admin_id, room_id)

    def on_close_room(self, admin_id=None):
        self.service.close_admin_room(admin_id)

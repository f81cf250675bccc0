from __future__ import annotations

import logging
import typing

import eventlet

from mmg.configurations.configuration_constants import ServerEvents
from mmg.configurations.game_config import GameConfig
from mmg.server import thread_safe_collections
from mmg.server.auction_engine import (AuctionEngine, RoundOutcome,
                                       prompt_type_for_round, validate_price)
from mmg.server.errors import InvalidPrice, RoomNameTaken
from mmg.server.game_data import GameDataExporter
from mmg.server.heartbeat_monitor import HeartbeatMonitor
from mmg.server.reconnection import Reconciliation, ReconnectionReconciler
from mmg.server.room_registry import Room, RoomRegistry, RoomStatus
from mmg.server.session_store import Session, SessionStore
from mmg.utils.typing import PlayerID, RoomID, SessionID

if typing.TYPE_CHECKING:
    import flask_socketio

logger = logging.getLogger(__name__)


class MarketGameService:
    """
    The MarketGameService owns every room, session and timer of one server
    process and runs the round engine. Socket handlers call into it; it
    pushes state to the room channels through ``socketio``.

    All mutation of a room happens under ``room.lock``, so a round advance
    and a bid submission for the same room never interleave.
    """

    def __init__(
        self,
        config: GameConfig,
        socketio: flask_socketio.SocketIO,
        exporter: GameDataExporter | None = None,
    ):
        self.config = config
        self.socketio = socketio

        self.sessions = SessionStore()
        self.registry = RoomRegistry(
            starting_cash=config.starting_cash,
            strike_price=config.strike_price,
        )
        self.auction = AuctionEngine()
        self.reconciler = ReconnectionReconciler(self.registry)
        self.heartbeat = HeartbeatMonitor(
            socketio=socketio,
            on_timeout=self._on_admin_timeout,
            interval_s=config.heartbeat_interval_s,
            timeout_s=config.heartbeat_timeout_s,
        )

        if exporter is None and config.save_game_data:
            exporter = GameDataExporter(data_dir=config.data_dir)
        self.exporter = exporter

        # room_id -> pending re-announcement of the first prompt
        self._prompt_timers = thread_safe_collections.ThreadSafeDict()

    def start(self) -> None:
        self.heartbeat.start()

    def shutdown(self) -> None:
        self.heartbeat.stop()
        for room_id in list(self.registry.rooms.snapshot()):
            self.close_room(room_id)

    ##############
    # Connection #
    ##############

    def connect(self, session_id: SessionID | None) -> tuple[Session, Reconciliation]:
        session = self.sessions.resume_or_mint(session_id)
        return session, self.reconciler.reconcile(session.player_id)

    def acknowledge_heartbeat(self, admin_id: PlayerID) -> None:
        if self.registry.room_for_admin(admin_id) is None:
            logger.debug(f"[Heartbeat] Ignoring ack from {admin_id}, who owns no room")
            return
        self.heartbeat.acknowledge(admin_id)

    ###################
    # Room lifecycle  #
    ###################

    def open_room(self, room_id: RoomID, admin_id: PlayerID) -> Room | None:
        if not room_id:
            logger.debug(f"[Room] Ignoring empty room name from admin {admin_id}")
            return None

        if self.registry.probe_room(room_id):
            raise RoomNameTaken(room_id)

        previous = self.registry.room_for_admin(admin_id)
        if previous is not None:
            logger.info(
                f"[Room] Admin {admin_id} opening {room_id} while owning {previous.room_id}; "
                f"closing {previous.room_id}"
            )
            self.close_room(previous.room_id)

        room = self.registry.open_room(room_id, admin_id)
        self.heartbeat.arm(admin_id)
        return room

    def probe_room(self, room_id: RoomID) -> bool:
        return self.registry.probe_room(room_id)

    def join_room(self, room_id: RoomID, username: str, player_id: PlayerID) -> Room:
        return self.registry.join_room(room_id, username, player_id)

    def announce_roster(self, room: Room) -> None:
        with room.lock:
            roster = room.roster_display()
        self.socketio.emit(ServerEvents.UpdateUserDisplay, roster, room=room.room_id)

    def close_room(self, room_id: RoomID) -> bool:
        """Evict every member of the room and release all of its mappings."""
        room = self.registry.get_room(room_id)
        if room is None:
            return False

        # Waits for any round advance or bid in flight on this room.
        with room.lock:
            # Another close may have finished while this one waited.
            if self.registry.get_room(room_id) is not room:
                return False
            self.registry.remove_room(room_id)

            timer = self._prompt_timers.pop(room_id, None)
            if timer is not None:
                timer.cancel()
            self.heartbeat.disarm(room.admin_id)

            self.socketio.emit(ServerEvents.RoomClosed, room_id, room=room_id)
            self.socketio.close_room(room_id)

        logger.info(f"[Room] Closed room {room_id}")
        return True

    def close_admin_room(self, admin_id: PlayerID) -> bool:
        room = self.registry.room_for_admin(admin_id)
        if room is None:
            logger.debug(f"[Room] Close requested by {admin_id}, who owns no room")
            return False
        return self.close_room(room.room_id)

    def return_to_lobby(self, admin_id: PlayerID, room_id: RoomID | None = None) -> bool:
        room = self.registry.room_for_admin(admin_id)
        if room is None or (room_id is not None and room.room_id != room_id):
            logger.debug(f"[Room] returnToLobby from {admin_id} does not match a room they own")
            return False
        if room.status != RoomStatus.OVER:
            logger.warning(f"[Room] returnToLobby for room {room.room_id} before the game is over")
            return False

        self.socketio.emit(ServerEvents.ReturnToLobby, room.room_id, room=room.room_id)
        return self.close_room(room.room_id)

    def _on_admin_timeout(self, admin_id: PlayerID) -> None:
        room = self.registry.room_for_admin(admin_id)
        if room is None:
            return
        self.close_room(room.room_id)

    ###############
    # Round flow  #
    ###############

    def start_game(self, admin_id: PlayerID) -> Room | None:
        room = self.registry.room_for_admin(admin_id)
        if room is None:
            logger.debug(f"[Game] startGame from unknown admin {admin_id}")
            return None

        with room.lock:
            if room.status != RoomStatus.LOBBY:
                logger.warning(f"[Game] Room {room.room_id} already started")
                return None

            self.registry.start_room(room)
            room.ledger.record_initial_valuations(room.market_price)
            room.round_index = 1
            room.prompt_type = prompt_type_for_round(room.round_index)

            self.socketio.emit(ServerEvents.GameStartedPlayer, room=room.room_id)
            self.socketio.emit(
                ServerEvents.GameStartedAdmin,
                self.config.get_display_config(),
                room=admin_id,
            )
            self._emit_prompt(room)

        logger.info(
            f"[Game] Room {room.room_id} started with {len(room.ledger)} players"
        )

        # Clients still mounting their game view can miss the first prompt.
        self._prompt_timers[room.room_id] = eventlet.spawn_after(
            self.config.prompt_reannounce_delay_s,
            self._reannounce_prompt,
            room.room_id,
        )
        return room

    def advance_round(self, admin_id: PlayerID) -> RoundOutcome | None:
        """Close the open round: match its bids, value every position, open the next."""
        room = self.registry.room_for_admin(admin_id)
        if room is None:
            logger.debug(f"[Game] roundUpdate from unknown admin {admin_id}")
            return None

        with room.lock:
            if not room.is_active:
                logger.warning(
                    f"[Game] roundUpdate for room {room.room_id} in state {room.status.value}"
                )
                return None

            outcome = self.auction.match(room)
            room.ledger.apply_round_valuation(room.market_price, self.config.rf_step)

            self.socketio.emit(
                ServerEvents.TradeResults, outcome.trades_dict(), room=room.room_id
            )
            self.socketio.emit(
                ServerEvents.PositionsUpdated,
                room.ledger.snapshot(room.market_price),
                room=room.room_id,
            )

            room.round_index += 1
            room.prompt_type = prompt_type_for_round(room.round_index)
            self._emit_prompt(room)

        return outcome

    def submit_bid(self, player_id: PlayerID, price) -> bool:
        """Record a bid for the player's open round.

        Returns False, without raising, when the player has no room or the
        room is not active. Raises InvalidPrice for a malformed price.
        """
        room = self.registry.room_for_player(player_id)
        if room is None:
            logger.debug(f"[Bid] Dropping bid from {player_id}, who is in no room")
            return False

        with room.lock:
            if not room.is_active:
                logger.debug(
                    f"[Bid] Dropping bid from {player_id}, room {room.room_id} is {room.status.value}"
                )
                return False
            price = self.auction.record_bid(room, player_id, price)

        logger.debug(f"[Bid] {player_id} bid {price} in room {room.room_id} round {room.round_index}")
        return True

    def finalize_game(self, admin_id: PlayerID, final_underlying_price) -> dict | None:
        """Settle every position at intrinsic value and end the game."""
        room = self.registry.room_for_admin(admin_id)
        if room is None:
            logger.debug(f"[Game] finalizeGame from unknown admin {admin_id}")
            return None

        try:
            final_underlying_price = validate_price(final_underlying_price)
        except InvalidPrice:
            logger.warning(
                f"[Game] Ignoring finalizeGame for room {room.room_id} with "
                f"invalid price {final_underlying_price!r}"
            )
            return None

        with room.lock:
            if not room.is_active:
                logger.warning(
                    f"[Game] finalizeGame for room {room.room_id} in state {room.status.value}"
                )
                return None

            settlements = room.ledger.finalize(
                final_underlying_price, room.strike_price, self.config.rf_step
            )
            room.status = RoomStatus.OVER
            room.bids.clear()

            results = {
                player_id: {
                    "username": room.roster.get(player_id),
                    "finalCash": settlement.final_cash,
                    "sharpe": settlement.sharpe,
                    "optionCount": settlement.option_count,
                    "intrinsicValue": settlement.intrinsic_value,
                    "valuationHistory": settlement.valuation_history,
                    "finalUnderlyingPrice": settlement.final_underlying_price,
                }
                for player_id, settlement in settlements.items()
            }

            self.socketio.emit(
                ServerEvents.GameOver,
                {"message": f"Game over. Final underlying price {final_underlying_price}"},
                room=room.room_id,
            )
            self.socketio.emit(ServerEvents.FinalResults, results, room=room.room_id)

        logger.info(
            f"[Game] Room {room.room_id} finalized at {final_underlying_price} "
            f"(strike {room.strike_price}, intrinsic "
            f"{max(0.0, final_underlying_price - room.strike_price)})"
        )

        if self.exporter is not None:
            # File writes are not cooperative under eventlet; keep them off the handler.
            eventlet.spawn(self._export_results, room, results)

        return results

    def _export_results(self, room: Room, results: dict) -> None:
        try:
            out_dir = self.exporter.export(
                room, results, game_settings=self.config.get_display_config()
            )
        except (OSError, ValueError) as e:
            logger.error(f"[GameData] Failed to save results for room {room.room_id}: {e}")
            return
        logger.info(f"[GameData] Saved results for room {room.room_id} to {out_dir}")

    def _emit_prompt(self, room: Room) -> None:
        self.socketio.emit(
            ServerEvents.NewTradePrompt,
            {
                "promptType": room.prompt_type,
                "round": room.round_index,
                "strikePrice": room.strike_price,
            },
            room=room.room_id,
        )

    def _reannounce_prompt(self, room_id: RoomID) -> None:
        self._prompt_timers.pop(room_id, None)
        room = self.registry.get_room(room_id)
        if room is None:
            return
        with room.lock:
            if room.is_active:
                logger.debug(f"[Game] Re-announcing round {room.round_index} prompt for {room_id}")
                self._emit_prompt(room)

    def status(self) -> dict:
        rooms = self.registry.rooms.snapshot()
        return {
            "rooms": len(rooms),
            "active_rooms": sum(1 for room in rooms.values() if room.is_active),
            "sessions": len(self.sessions),
        }

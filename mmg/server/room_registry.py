from __future__ import annotations

import dataclasses
import logging
import threading
import time
from enum import Enum

from mmg.configurations.configuration_constants import PromptTypes
from mmg.server import thread_safe_collections
from mmg.server.errors import (GameAlreadyStarted, NoSuchRoom, RoomNameTaken,
                               UsernameTaken)
from mmg.server.portfolio_ledger import PortfolioLedger
from mmg.utils.typing import PlayerID, RoomID

logger = logging.getLogger(__name__)


class RoomStatus(Enum):
    """Room lifecycle.

    - LOBBY: open for joins, no rounds yet
    - ACTIVE: rounds are being played
    - OVER: final settlement done, terminal
    """
    LOBBY = "lobby"
    ACTIVE = "active"
    OVER = "over"


@dataclasses.dataclass
class Room:
    room_id: RoomID
    admin_id: PlayerID
    ledger: PortfolioLedger
    strike_price: float
    status: RoomStatus = RoomStatus.LOBBY
    started_at: float | None = None
    round_index: int = 0
    prompt_type: str = PromptTypes.SellCall
    market_price: float = 0.0
    # player_id -> username
    roster: dict[PlayerID, str] = dataclasses.field(default_factory=dict)
    # player_id -> price for the currently open round
    bids: dict[PlayerID, float] = dataclasses.field(default_factory=dict)
    # Serializes every mutation of this room's state.
    lock: threading.Lock = dataclasses.field(default_factory=threading.Lock, repr=False)

    @property
    def is_active(self) -> bool:
        return self.status == RoomStatus.ACTIVE

    @property
    def has_started(self) -> bool:
        return self.status in (RoomStatus.ACTIVE, RoomStatus.OVER)

    def username_taken(self, username: str, player_id: PlayerID) -> bool:
        return any(
            name == username and uid != player_id for uid, name in self.roster.items()
        )

    def roster_display(self) -> list[list[str]]:
        return [[uid, name] for uid, name in self.roster.items()]


class RoomRegistry:
    """
    Owns every live room and the player/admin -> room maps.

    The registry maps are the only state shared across rooms; creation and
    removal run under ``self.lock``. Everything inside a room is guarded by
    that room's own lock.
    """

    def __init__(self, starting_cash: float, strike_price: float):
        self.starting_cash = starting_cash
        self.strike_price = strike_price
        self.lock = threading.Lock()

        self.rooms: dict[RoomID, Room] = thread_safe_collections.ThreadSafeDict()
        self.admin_rooms: dict[PlayerID, RoomID] = thread_safe_collections.ThreadSafeDict()
        self.player_rooms: dict[PlayerID, RoomID] = thread_safe_collections.ThreadSafeDict()

    def open_room(self, room_id: RoomID, admin_id: PlayerID) -> Room:
        with self.lock:
            if room_id in self.rooms:
                logger.info(f"[Registry] Room name {room_id} taken")
                raise RoomNameTaken(room_id)

            room = Room(
                room_id=room_id,
                admin_id=admin_id,
                ledger=PortfolioLedger(starting_cash=self.starting_cash),
                strike_price=self.strike_price,
            )
            self.rooms[room_id] = room
            self.admin_rooms[admin_id] = room_id

        logger.info(f"[Registry] Opened room {room_id} for admin {admin_id}")
        return room

    def probe_room(self, room_id: RoomID) -> bool:
        return room_id in self.rooms

    def get_room(self, room_id: RoomID) -> Room | None:
        return self.rooms.get(room_id)

    def room_for_admin(self, admin_id: PlayerID) -> Room | None:
        room_id = self.admin_rooms.get(admin_id)
        if room_id is None:
            return None
        return self.rooms.get(room_id)

    def room_for_player(self, player_id: PlayerID) -> Room | None:
        room_id = self.player_rooms.get(player_id)
        if room_id is None:
            return None
        return self.rooms.get(room_id)

    def join_room(self, room_id: RoomID, username: str, player_id: PlayerID) -> Room:
        """Add a player to a room's roster and seed their position.

        Raises:
            NoSuchRoom: the room is not registered or the username is empty
            GameAlreadyStarted: the room's game is over
            UsernameTaken: another player in the room holds the username
        """
        room = self.rooms.get(room_id)
        if not username or room is None:
            raise NoSuchRoom(room_id)

        with room.lock:
            # The room may have been closed while this join waited for the lock.
            if self.rooms.get(room_id) is not room:
                raise NoSuchRoom(room_id)

            if room.status == RoomStatus.OVER:
                raise GameAlreadyStarted(room_id)

            if room.username_taken(username, player_id):
                raise UsernameTaken(username)

            previous_room_id = self.player_rooms.get(player_id)
            if previous_room_id is not None and previous_room_id != room_id:
                logger.info(
                    f"[Registry] Player {player_id} moving from room {previous_room_id} to {room_id}"
                )

            room.roster[player_id] = username
            self.player_rooms[player_id] = room_id

            is_new_position = player_id not in room.ledger
            position = room.ledger.seed(player_id)
            if is_new_position and room.is_active:
                # Late joiner: start their history from the current mark.
                position.valuation_history.append(
                    position.mark_to_market(room.market_price)
                )

        logger.info(f"[Registry] {username} ({player_id}) joined room {room_id}")
        return room

    def start_room(self, room: Room) -> None:
        room.status = RoomStatus.ACTIVE
        room.started_at = time.time()

    def remove_room(self, room_id: RoomID) -> Room | None:
        """Drop the room and every mapping that references it."""
        with self.lock:
            room = self.rooms.pop(room_id, None)
            if room is None:
                return None

            for player_id in list(room.roster):
                if self.player_rooms.get(player_id) == room_id:
                    del self.player_rooms[player_id]

            if self.admin_rooms.get(room.admin_id) == room_id:
                del self.admin_rooms[room.admin_id]

        logger.info(f"[Registry] Removed room {room_id}")
        return room

    def __len__(self) -> int:
        return len(self.rooms)

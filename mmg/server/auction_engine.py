"""Per-round call auction between the players and the computer counterparty.

Eligibility is decided by a common threshold, the upper median of the
round's bids, but every executed trade settles at the bidder's own price.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import numbers

from mmg.configurations.configuration_constants import PromptTypes
from mmg.server.errors import InvalidPrice
from mmg.server.room_registry import Room
from mmg.utils.typing import PlayerID

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class TradeResult:
    executed: bool
    price: float | None = None

    def to_dict(self) -> dict:
        if self.executed:
            return {"executed": True, "price": self.price}
        return {"executed": False}


@dataclasses.dataclass
class RoundOutcome:
    round_index: int
    prompt_type: str
    trades: dict[PlayerID, TradeResult] = dataclasses.field(default_factory=dict)
    clearing_index: int | None = None
    clearing_price: float | None = None

    @property
    def matched(self) -> bool:
        return self.clearing_price is not None

    def trades_dict(self) -> dict[PlayerID, dict]:
        return {player_id: trade.to_dict() for player_id, trade in self.trades.items()}


def prompt_type_for_round(round_index: int) -> str:
    """Round 1 is always a sell; afterwards even rounds sell and odd rounds buy."""
    if round_index <= 1 or round_index % 2 == 0:
        return PromptTypes.SellCall
    return PromptTypes.BuyCall


def clearing_index(num_bids: int) -> int:
    """Upper-median position in a list of ``num_bids`` sorted bids."""
    return math.ceil(num_bids / 2) - 1


def validate_price(price) -> float:
    """Coerce a client-supplied price to a finite, non-negative float."""
    if isinstance(price, bool):
        raise InvalidPrice(price)

    if isinstance(price, str):
        try:
            price = float(price.strip())
        except ValueError:
            raise InvalidPrice(price)
    elif not isinstance(price, numbers.Real):
        raise InvalidPrice(price)

    price = float(price)
    if not math.isfinite(price) or price < 0:
        raise InvalidPrice(price)
    return price


class AuctionEngine:
    """Collects one bid per player per round and matches them when the round closes.

    The bid book lives on the room; callers hold ``room.lock``.
    """

    def record_bid(self, room: Room, player_id: PlayerID, price) -> float:
        price = validate_price(price)
        # Last write wins within a round.
        room.bids[player_id] = price
        return price

    def match(self, room: Room) -> RoundOutcome:
        """Match the open round's bids against the room's ledger.

        Sets ``room.market_price`` to the clearing price when there was at
        least one bid, and always empties the bid book.
        """
        outcome = RoundOutcome(round_index=room.round_index, prompt_type=room.prompt_type)

        if not room.bids:
            logger.info(f"[Auction] Room {room.room_id} round {room.round_index}: no bids")
            room.bids.clear()
            return outcome

        selling = room.prompt_type == PromptTypes.SellCall
        # Computer selling: highest buy offers first. Computer buying: lowest asks first.
        ranked = sorted(room.bids.items(), key=lambda item: item[1], reverse=selling)

        index = clearing_index(len(ranked))
        clearing_price = ranked[index][1]
        outcome.clearing_index = index
        outcome.clearing_price = clearing_price

        logger.info(
            f"[Auction] Room {room.room_id} round {room.round_index}: "
            f"type={room.prompt_type}, bids={len(ranked)}, "
            f"clearing_index={index}, clearing_price={clearing_price}"
        )

        for player_id, price in ranked:
            if selling:
                execute = price >= clearing_price
            else:
                execute = price <= clearing_price

            if not execute:
                outcome.trades[player_id] = TradeResult(executed=False)
                continue

            if selling:
                room.ledger.buy(player_id, price)
            else:
                room.ledger.sell(player_id, price)
            outcome.trades[player_id] = TradeResult(executed=True, price=price)

        room.market_price = clearing_price
        room.bids.clear()
        return outcome

from __future__ import annotations

import dataclasses
import logging

from mmg.server import risk_metrics
from mmg.utils.typing import PlayerID

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class Position:
    cash: float
    option_count: int = 0
    valuation_history: list[float] = dataclasses.field(default_factory=list)
    sharpe: float = 0.0

    def mark_to_market(self, market_price: float) -> float:
        return self.cash + self.option_count * market_price

    def to_dict(self, market_price: float) -> dict:
        return {
            "cash": self.cash,
            "optionCount": self.option_count,
            "valuationHistory": list(self.valuation_history),
            "marketPrice": market_price,
            "sharpe": self.sharpe,
        }


@dataclasses.dataclass
class Settlement:
    """Terminal settlement of one position against the final underlying price."""

    player_id: PlayerID
    final_cash: float
    option_count: int
    intrinsic_value: float
    sharpe: float
    valuation_history: list[float]
    final_underlying_price: float


def intrinsic_value(underlying_price: float, strike_price: float) -> float:
    return max(0.0, underlying_price - strike_price)


class PortfolioLedger:
    """
    Cash and option balances of every player that has joined one room.

    Positions are created on join and are never removed while the room
    exists, so a player who disconnects keeps being valued each round.
    """

    def __init__(self, starting_cash: float):
        self.starting_cash = starting_cash
        self.positions: dict[PlayerID, Position] = {}

    def seed(self, player_id: PlayerID) -> Position:
        """Create the player's position if it does not exist yet."""
        position = self.positions.get(player_id)
        if position is None:
            position = Position(cash=self.starting_cash)
            self.positions[player_id] = position
            logger.debug(f"[Ledger] Seeded position for {player_id} with {self.starting_cash}")
        return position

    def get(self, player_id: PlayerID) -> Position | None:
        return self.positions.get(player_id)

    def buy(self, player_id: PlayerID, price: float) -> None:
        position = self.seed(player_id)
        position.cash -= price
        position.option_count += 1

    def sell(self, player_id: PlayerID, price: float) -> None:
        position = self.seed(player_id)
        position.cash += price
        position.option_count -= 1

    def record_initial_valuations(self, market_price: float) -> None:
        for position in self.positions.values():
            position.valuation_history.append(position.mark_to_market(market_price))

    def apply_round_valuation(self, market_price: float, rf_step: float) -> None:
        """Compound cash at the risk-free step, then mark every position to market.

        Runs every round, traded or not, for every known position.
        """
        for position in self.positions.values():
            position.cash *= 1 + rf_step
            position.valuation_history.append(position.mark_to_market(market_price))
            position.sharpe = risk_metrics.sharpe_ratio(position.valuation_history, rf_step)

    def finalize(
        self,
        final_underlying_price: float,
        strike_price: float,
        rf_step: float,
    ) -> dict[PlayerID, Settlement]:
        """Settle every option at intrinsic value and record the terminal valuation."""
        call_value = intrinsic_value(final_underlying_price, strike_price)
        settlements = {}
        for player_id, position in self.positions.items():
            final_cash = position.cash + position.option_count * call_value
            position.valuation_history.append(final_cash)
            position.sharpe = risk_metrics.sharpe_ratio(position.valuation_history, rf_step)
            settlements[player_id] = Settlement(
                player_id=player_id,
                final_cash=final_cash,
                option_count=position.option_count,
                intrinsic_value=call_value,
                sharpe=position.sharpe,
                valuation_history=list(position.valuation_history),
                final_underlying_price=final_underlying_price,
            )
        return settlements

    def snapshot(self, market_price: float) -> dict[PlayerID, dict]:
        return {
            player_id: position.to_dict(market_price)
            for player_id, position in self.positions.items()
        }

    def __len__(self) -> int:
        return len(self.positions)

    def __contains__(self, player_id) -> bool:
        return player_id in self.positions

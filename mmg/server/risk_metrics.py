"""Risk-adjusted performance of a player's valuation history."""

from __future__ import annotations

import typing

import numpy as np

# Below this the return series is treated as flat and the ratio as undefined.
STDEV_THRESHOLD = 1e-10


def step_returns(history: typing.Sequence[float]) -> np.ndarray:
    values = np.asarray(history, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.diff(values) / values[:-1]


def sharpe_ratio(history: typing.Sequence[float], rf_step: float) -> float:
    """Per-round Sharpe ratio of a valuation history.

    Returns 0 for fewer than two valuations, for a (near) zero standard
    deviation of returns, and when a zero valuation makes a return undefined.

    :param history: Ordered portfolio valuations, oldest first.
    :param rf_step: Risk-free return per round.
    """
    if history is None or len(history) < 2:
        return 0.0

    returns = step_returns(history)
    if not np.all(np.isfinite(returns)):
        return 0.0

    mean_return = returns.mean()
    # Sample deviation; a single return divides by 1 rather than 0.
    divisor = max(len(returns) - 1, 1)
    stdev = float(np.sqrt(np.sum((returns - mean_return) ** 2) / divisor))

    if stdev < STDEV_THRESHOLD:
        return 0.0

    return float((mean_return - rf_step) / stdev)

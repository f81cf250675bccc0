"""Unit tests for the Sharpe ratio computation."""

from __future__ import annotations

import math

import pytest

from mmg.server.risk_metrics import sharpe_ratio

RF_STEP = 0.05 / 60


class TestSharpeRatio:

    @pytest.mark.parametrize("history", [None, [], [100.0]])
    def test_fewer_than_two_points_is_zero(self, history):
        assert sharpe_ratio(history, RF_STEP) == 0.0

    def test_constant_history_is_zero(self):
        """Flat returns have zero deviation, which is treated as undefined."""
        assert sharpe_ratio([100.0, 100.0, 100.0, 100.0], RF_STEP) == 0.0

    def test_single_return_is_zero(self):
        """One return deviates from its own mean by nothing, divisor floored to 1."""
        assert sharpe_ratio([100.0, 110.0], RF_STEP) == 0.0

    def test_constant_growth_is_near_zero_variance(self):
        history = [100.0 * (1 + RF_STEP) ** i for i in range(10)]
        assert sharpe_ratio(history, RF_STEP) == 0.0

    def test_matches_hand_computation(self):
        history = [100.0, 110.0, 99.0, 108.9]
        returns = [0.1, -0.1, 0.1]
        mean = sum(returns) / 3
        stdev = math.sqrt(sum((r - mean) ** 2 for r in returns) / 2)
        expected = (mean - RF_STEP) / stdev

        assert sharpe_ratio(history, RF_STEP) == pytest.approx(expected)

    def test_sample_deviation_uses_n_minus_one(self):
        # Step returns are 0.2 and -0.1.
        history = [100.0, 120.0, 108.0]
        mean = 0.05
        sample_stdev = math.sqrt(((0.2 - mean) ** 2 + (-0.1 - mean) ** 2) / 1)

        assert sharpe_ratio(history, RF_STEP) == pytest.approx((mean - RF_STEP) / sample_stdev)

    def test_losing_history_is_negative(self):
        assert sharpe_ratio([100.0, 90.0, 85.0, 70.0], RF_STEP) < 0

    def test_zero_valuation_gives_zero(self):
        assert sharpe_ratio([0.0, 10.0, 20.0], RF_STEP) == 0.0

    def test_returns_plain_float(self):
        assert isinstance(sharpe_ratio([100.0, 110.0, 99.0], RF_STEP), float)

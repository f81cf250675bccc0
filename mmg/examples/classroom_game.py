from __future__ import annotations

import eventlet

eventlet.monkey_patch()

import argparse

from mmg.configurations import game_config
from mmg.server import app

if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--port", type=int, default=4000, help="Port number to listen on"
    )
    parser.add_argument(
        "--mode",
        choices=["development", "production"],
        default="development",
        help="Selects the allowed client origin",
    )
    parser.add_argument(
        "--strike", type=float, default=100.0, help="Strike price of the traded call"
    )
    args = parser.parse_args()

    config = (
        game_config.GameConfig()
        .hosting(port=args.port, host="0.0.0.0", mode=args.mode)
        .market(strike_price=args.strike, starting_cash=100.0, annual_risk_free_rate=0.05)
        # 60 rounds of 30 seconds make up one simulated year.
        .rounds(round_duration_s=30, simulated_year_s=30 * 60, price_tick_s=15)
        .heartbeat(interval_s=5, timeout_s=60)
        .data(save_game_data=True, data_dir="data/classroom")
    )

    app.run(config)

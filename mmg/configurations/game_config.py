from __future__ import annotations

import logging
import os

from mmg.configurations.configuration_constants import Defaults
from mmg.utils.sentinels import NotProvided

logger = logging.getLogger(__name__)


class GameConfig:
    def __init__(self):

        # Hosting
        self.host = None
        self.port = int(os.environ.get("PORT", Defaults.Port))
        self.mode = os.getenv("FLASK_ENV", "production")
        self.cors_origins: list[str] | None = None

        # Contract and market
        self.strike_price: float = Defaults.StrikePrice
        self.starting_cash: float = Defaults.StartingCash
        self.annual_risk_free_rate: float = Defaults.AnnualRiskFreeRate

        # Round timing
        self.round_duration_s: float = Defaults.RoundDurationSeconds
        self.simulated_year_s: float = Defaults.SimulatedYearSeconds
        self.price_tick_s: float = Defaults.PriceTickSeconds

        # Admin liveness
        self.heartbeat_interval_s: float = Defaults.HeartbeatIntervalSeconds
        self.heartbeat_timeout_s: float = Defaults.HeartbeatTimeoutSeconds

        # Prompts
        self.prompt_reannounce_delay_s: float = Defaults.PromptReannounceDelaySeconds

        # Game data
        self.save_game_data = True
        self.data_dir = "data"

    def hosting(
        self,
        host: str | None = NotProvided,
        port: int = NotProvided,
        mode: str = NotProvided,
        cors_origins: list[str] | None = NotProvided,
    ) -> GameConfig:
        """Configure where the server listens and which origin may connect.

        :param host: Interface to bind, None lets Flask-SocketIO decide.
        :type host: str, optional
        :param port: Listening port. Defaults to the PORT env var, then 4000.
        :type port: int, optional
        :param mode: "development" or "production". Defaults to the FLASK_ENV env var.
        :type mode: str, optional
        :param cors_origins: Explicit allowed origins. When unset the origin is
            picked from the mode.
        :type cors_origins: list[str], optional
        :return: The GameConfig instance (self)
        :rtype: GameConfig
        """
        if host is not NotProvided:
            self.host = host

        if port is not NotProvided:
            assert isinstance(port, int) and port > 0, "port must be a positive integer"
            self.port = port

        if mode is not NotProvided:
            assert mode in ["development", "production"], \
                "mode must be 'development' or 'production'"
            self.mode = mode

        if cors_origins is not NotProvided:
            self.cors_origins = cors_origins

        return self

    def market(
        self,
        strike_price: float = NotProvided,
        starting_cash: float = NotProvided,
        annual_risk_free_rate: float = NotProvided,
    ) -> GameConfig:
        if strike_price is not NotProvided:
            assert strike_price >= 0, "strike_price must be non-negative"
            self.strike_price = float(strike_price)

        if starting_cash is not NotProvided:
            assert starting_cash > 0, "starting_cash must be positive"
            self.starting_cash = float(starting_cash)

        if annual_risk_free_rate is not NotProvided:
            self.annual_risk_free_rate = float(annual_risk_free_rate)

        return self

    def rounds(
        self,
        round_duration_s: float = NotProvided,
        simulated_year_s: float = NotProvided,
        price_tick_s: float = NotProvided,
    ) -> GameConfig:
        """Configure round timing.

        The risk-free step is sized from ``round_duration_s`` and
        ``simulated_year_s``. ``price_tick_s`` only drives the admin display's
        cosmetic price path and never enters the server's valuation.
        """
        if round_duration_s is not NotProvided:
            assert round_duration_s > 0, "round_duration_s must be positive"
            self.round_duration_s = round_duration_s

        if simulated_year_s is not NotProvided:
            assert simulated_year_s > 0, "simulated_year_s must be positive"
            self.simulated_year_s = simulated_year_s

        if price_tick_s is not NotProvided:
            assert price_tick_s > 0, "price_tick_s must be positive"
            self.price_tick_s = price_tick_s

        return self

    def heartbeat(
        self,
        interval_s: float = NotProvided,
        timeout_s: float = NotProvided,
    ) -> GameConfig:
        if interval_s is not NotProvided:
            self.heartbeat_interval_s = interval_s

        if timeout_s is not NotProvided:
            self.heartbeat_timeout_s = timeout_s

        if self.heartbeat_timeout_s <= self.heartbeat_interval_s:
            logger.warning(
                f"Heartbeat timeout ({self.heartbeat_timeout_s}s) does not exceed the "
                f"ping interval ({self.heartbeat_interval_s}s); live admins may be dropped."
            )

        return self

    def prompts(self, reannounce_delay_s: float = NotProvided) -> GameConfig:
        if reannounce_delay_s is not NotProvided:
            self.prompt_reannounce_delay_s = reannounce_delay_s

        return self

    def data(
        self,
        save_game_data: bool = NotProvided,
        data_dir: str = NotProvided,
    ) -> GameConfig:
        if save_game_data is not NotProvided:
            self.save_game_data = save_game_data

        if data_dir is not NotProvided:
            self.data_dir = data_dir

        return self

    @property
    def debug(self) -> bool:
        return self.mode == "development"

    @property
    def rounds_per_year(self) -> float:
        return self.simulated_year_s / self.round_duration_s

    @property
    def rf_step(self) -> float:
        """Per-round fraction of the annual risk-free rate."""
        return self.annual_risk_free_rate / self.rounds_per_year

    @property
    def cors_allowed_origins(self) -> list[str]:
        if self.cors_origins is not None:
            return self.cors_origins
        if self.debug:
            return [Defaults.DevelopmentOrigin]
        return [Defaults.ProductionOrigin]

    def get_display_config(self) -> dict:
        """Constants the admin display needs, sent once the game starts."""
        return {
            "strikePrice": self.strike_price,
            "roundDurationSeconds": self.round_duration_s,
            "priceTickSeconds": self.price_tick_s,
            "simulatedYearSeconds": self.simulated_year_s,
            "annualRiskFreeRate": self.annual_risk_free_rate,
        }

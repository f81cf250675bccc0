"""Errors raised by the game service.

User-facing errors carry the name of the event that reports them back to
the originating connection. Handlers catch ``MarketGameError`` and emit
``error.event`` to that socket only.
"""

from __future__ import annotations

from mmg.configurations.configuration_constants import ServerEvents


class MarketGameError(Exception):
    event: str | None = None


class RoomNameTaken(MarketGameError):
    event = ServerEvents.RoomNameTaken


class NoSuchRoom(MarketGameError):
    event = ServerEvents.NoSuchRoom


class UsernameTaken(MarketGameError):
    event = ServerEvents.UsernameTaken


class GameAlreadyStarted(MarketGameError):
    event = ServerEvents.GameAlreadyStarted


class InvalidPrice(MarketGameError):
    event = ServerEvents.BidRejected


class AdminHeartbeatTimeout(MarketGameError):
    """Internal: an admin stopped acknowledging heartbeats. Never sent to clients."""

from __future__ import annotations

import typing

RoomID = typing.NewType("RoomID", str)
PlayerID = typing.NewType("PlayerID", str)
SessionID = typing.NewType("SessionID", str)

from __future__ import annotations

import dataclasses


@dataclasses.dataclass(frozen=True)
class PromptTypes:
    # Computer sells a call; players submit buy prices.
    SellCall = "sell-call"
    # Computer buys a call; players submit sell prices.
    BuyCall = "buy-call"


@dataclasses.dataclass(frozen=True)
class Channels:
    """Socket.IO rooms that are not tied to a single game room."""

    Admins = "adminRoom"


@dataclasses.dataclass(frozen=True)
class ClientEvents:
    """Events the browser client sends to the server."""

    HeartbeatResponse = "heartbeatResponse"
    RoomStart = "room-start"
    TryRoom = "tryRoom"
    JoinRoom = "join-room"
    StartGame = "startGame"
    RoundUpdate = "roundUpdate"
    SubmitBid = "submitBid"
    FinalizeGame = "finalizeGame"
    ReturnToLobby = "returnToLobby"
    CloseRoom = "close-room"


@dataclasses.dataclass(frozen=True)
class ServerEvents:
    """Events the server pushes to clients."""

    Session = "session"
    Heartbeat = "heartbeat"
    RoomStartSuccess = "roomStartSuccess"
    RoomNameTaken = "roomNameTaken"
    RoomExists = "roomExists"
    NoSuchRoom = "noSuchRoom"
    JoinApproved = "joinApproved"
    UsernameTaken = "usernameTaken"
    GameAlreadyStarted = "gameAlreadyStarted"
    UpdateUserDisplay = "updateUserDisp"
    GameStartedPlayer = "gameStartedPlayer"
    GameStartedAdmin = "gameStartedAdmin"
    NewTradePrompt = "newTradePrompt"
    TradeResults = "tradeResults"
    PositionsUpdated = "positionsUpdated"
    BidRejected = "bidRejected"
    GameOver = "gameOver"
    FinalResults = "finalResults"
    ReturnToLobby = "returnToLobby"
    RoomClosed = "roomClosed"


@dataclasses.dataclass(frozen=True)
class Defaults:
    StrikePrice = 100.0
    StartingCash = 100.0
    AnnualRiskFreeRate = 0.05
    # A 30 minute game stands in for one year of trading.
    SimulatedYearSeconds = 30 * 60
    RoundDurationSeconds = 30
    # Tick of the cosmetic price path on the admin display. Independent of
    # RoundDurationSeconds, which sizes the risk-free step.
    PriceTickSeconds = 15
    HeartbeatIntervalSeconds = 5
    HeartbeatTimeoutSeconds = 60
    PromptReannounceDelaySeconds = 1.0
    Port = 4000
    DevelopmentOrigin = "http://localhost:3000"
    ProductionOrigin = "https://marketmakinggame.netlify.app"

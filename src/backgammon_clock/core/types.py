from __future__ import annotations

from enum import IntEnum, StrEnum
from typing import Literal

ONE_SECOND_IN_MS = 1000
TEN_MINUTES_IN_MS = 600_000
TEN_SECONDS_IN_MS = 10_000


class Player(IntEnum):
    NONE = 0
    ONE = 1
    TWO = 2

    @property
    def opponent(self) -> Player:
        if self is Player.ONE:
            return Player.TWO
        if self is Player.TWO:
            return Player.ONE
        return Player.NONE

    @property
    def repr(self) -> str:
        return "P1" if self is Player.ONE else "P2" if self is Player.TWO else "--"


class ActionKind(StrEnum):
    START = "START"
    ROLL = "ROLL"
    OFFER_DOUBLE = "OFFER_DOUBLE"
    TAKE_DOUBLE = "TAKE_DOUBLE"
    END_TURN = "END_TURN"
    END_GAME = "END_GAME"


StartPolicy = Literal[
    "ALWAYS_RANDOM",
    "FIRST_GAME_RANDOM",
    "CLICKER_STARTS",
]

MatchPhase = Literal[
    "NO_GAME",
    "PLAYER_ONE_TURN",
    "PLAYER_ONE_ROLLED",
    "PLAYER_TWO_TURN",
    "PLAYER_TWO_ROLLED",
    "DOUBLE_OFFERED_TO_ONE",
    "DOUBLE_OFFERED_TO_TWO",
]

GameStateField = Literal[
    "currentAction",
    "currentGameValue",
    "cubeOwner",
    "playerOneGames",
    "playerOneScore",
    "playerTwoGames",
    "playerTwoScore",
    "playerOneTotalTimeRemainingMs",
    "playerOneReserveTimeRemainingMs",
    "playerTwoTotalTimeRemainingMs",
    "playerTwoReserveTimeRemainingMs",
    "forceStopTimer",
    "isPaused",
]

MatchParameterField = Literal[
    "playerOneName",
    "playerTwoName",
    "useCube",
    "useDice",
    "useTimer",
    "startPolicy",
    "totalGameTimeMs",
    "reserveTimeMs",
    "scoreLimit",
]

Operation = Literal[
    "start",
    "roll",
    "offer_double",
    "take_double",
    "drop_double",
    "end_turn",
    "propose_concession",
    "accept_concession",
    "reject_concession",
    "concede_game",
    "handle_time_expiry",
    "undo",
    "redo",
]

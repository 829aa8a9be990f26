from backgammon_clock.core.actions import Action
from backgammon_clock.core.config import MatchParameters
from backgammon_clock.core.errors import (
    CorruptSnapshot,
    EmptyHistory,
    FeatureDisabled,
    InvalidTransition,
    MatchError,
)
from backgammon_clock.core.types import ActionKind, Player
from backgammon_clock.engine.match_engine import Concession, MatchEngine, Rejected
from backgammon_clock.engine.scheduling import AsyncioScheduler, VirtualScheduler

__all__ = [
    "Action",
    "ActionKind",
    "AsyncioScheduler",
    "Concession",
    "CorruptSnapshot",
    "EmptyHistory",
    "FeatureDisabled",
    "InvalidTransition",
    "MatchEngine",
    "MatchError",
    "MatchParameters",
    "Player",
    "Rejected",
    "VirtualScheduler",
]

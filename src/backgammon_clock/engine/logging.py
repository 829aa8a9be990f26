from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, override

from rich.highlighter import Highlighter
from rich.logging import RichHandler

from backgammon_clock.core.types import ActionKind

if TYPE_CHECKING:
    from rich.text import Text

    from backgammon_clock.engine.match_engine import MatchEngine

LOGGER_NAME = "backgammon_clock"

ACTION_PATTERN = re.compile(
    rf"\b({'|'.join(map(re.escape, (k.value for k in ActionKind)))})\b",
)
DICE_PATTERN = re.compile(r"\b[1-6]-[1-6]\b")

COLOR = {
    "action": "bold #29b8db",  # cyan
    "P1": "bold #23d18b",  # light green
    "P2": "bold #d670d6",  # magenta
    "cube": "bold #ffaf00",  # orange
    "dice": "bold #f5f543",  # yellow
    "warning": "bold bright_red",
    "prefix": "grey50",
}


@dataclass(slots=True)
class LogContext:
    """Per-engine logging state."""

    engine_id: int = 0
    game_number: int = 0
    action_count: int = 0
    turn_holder_repr: str = "--"

    def new_game(self) -> None:
        self.game_number += 1
        self.action_count = 0

    def record_action(self, turn_holder_repr: str) -> None:
        self.action_count += 1
        self.turn_holder_repr = turn_holder_repr

    def reset(self) -> None:
        self.game_number = 0
        self.action_count = 0
        self.turn_holder_repr = "--"


class ContextFilter(logging.Filter):
    """Inject per-engine match context into every log record."""

    def __init__(self, engine: MatchEngine, name: str = "") -> None:
        super().__init__(name)
        self.engine: MatchEngine = engine

    @override
    def filter(self, record: logging.LogRecord) -> bool:
        logctx = self.engine.log_context
        record.engine_id = logctx.engine_id
        record.game_number = logctx.game_number
        record.action_count = logctx.action_count
        record.turn_holder = logctx.turn_holder_repr
        return True


class RichMarkupFormatter(logging.Formatter):
    @override
    def format(self, record: logging.LogRecord) -> str:
        engine_id = getattr(record, "engine_id", 0)
        game_number = getattr(record, "game_number", 0)
        action_count = getattr(record, "action_count", 0)
        turn_holder = getattr(record, "turn_holder", "--")

        prefix = f"{engine_id} g{game_number}.{action_count} {turn_holder}"
        message = record.getMessage()

        # Escape markup brackets in the message; action reprs use [P1]-style tags.
        message = message.replace("[", r"\[")
        return f"[{COLOR['prefix']}]{prefix:<14}[/{COLOR['prefix']}]  {message}"


class MatchLogHighlighter(Highlighter):
    @override
    def highlight(self, text: Text) -> None:
        text.highlight_regex(ACTION_PATTERN, COLOR["action"])
        text.highlight_regex(r"\bP1\b", COLOR["P1"])
        text.highlight_regex(r"\bP2\b", COLOR["P2"])
        text.highlight_regex(r"\bcube\b[^|,]*", COLOR["cube"])
        text.highlight_regex(DICE_PATTERN, COLOR["dice"])
        text.highlight_regex(r"!!!", COLOR["warning"])
        text.highlight_regex(r"\bRejected\b", COLOR["warning"])


def configure_logging(level: int = logging.INFO) -> None:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    handler = RichHandler(
        markup=True,
        show_path=False,
        show_time=False,
        highlighter=MatchLogHighlighter(),
    )
    handler.setFormatter(RichMarkupFormatter())
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.propagate = False

from __future__ import annotations

from backgammon_clock.core.types import ONE_SECOND_IN_MS


def format_total_time(ms: int) -> str:
    """Main budget as `mm:ss`; negative values display as zero."""
    seconds = max(0, ms) // ONE_SECOND_IN_MS
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def format_reserve_time(ms: int) -> str:
    """Reserve as `(ss)`."""
    return f"({max(0, ms) // ONE_SECOND_IN_MS:02d})"


def format_games(games: int) -> str:
    return f"({games})"

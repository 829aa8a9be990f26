from __future__ import annotations

from typing import TYPE_CHECKING

from backgammon_clock.core.actions import EndGamePayload
from backgammon_clock.core.types import Player

if TYPE_CHECKING:
    from backgammon_clock.engine.match_engine import MatchEngine


def force_win_points(engine: MatchEngine, winner: Player) -> int:
    """Points that guarantee `winner` reaches the score limit (at least the cube value)."""
    state = engine.state
    return max(
        state.current_game_value,
        engine.params.score_limit - state.score(winner),
    )


def award_game(
    engine: MatchEngine,
    winner: Player,
    points: int,
    *,
    forced: bool = False,
) -> EndGamePayload:
    """
    Credits a finished game to `winner` and resets for the next one.
    If the score limit is reached the match counters reset as well.
    """
    state = engine.state
    engine.clock.disarm()
    engine.apply("forceStopTimer", True)

    engine.apply(state.field_for(winner, "Games"), state.games(winner) + 1)
    new_score = state.score(winner) + points
    engine.apply(state.field_for(winner, "Score"), new_score)

    match_winner = Player.NONE
    if new_score >= engine.params.score_limit:
        match_winner = winner
        log_match_result(engine, winner)
        reset_match_counters(engine)

    reset_game_counters(engine)
    return EndGamePayload(points=points, forced=forced, match_winner=match_winner)


def reset_game_counters(engine: MatchEngine) -> None:
    """Cube back to the centre at 1, both reserves full."""
    params = engine.params
    engine.apply("currentGameValue", 1)
    engine.apply("cubeOwner", Player.NONE)
    engine.apply("playerOneReserveTimeRemainingMs", params.reserve_time_ms)
    engine.apply("playerTwoReserveTimeRemainingMs", params.reserve_time_ms)


def reset_match_counters(engine: MatchEngine) -> None:
    """Scores and main budgets back to their configured values; games won are kept."""
    params = engine.params
    engine.apply("playerOneScore", 0)
    engine.apply("playerTwoScore", 0)
    engine.apply("playerOneTotalTimeRemainingMs", params.total_game_time_ms)
    engine.apply("playerTwoTotalTimeRemainingMs", params.total_game_time_ms)


def log_match_result(engine: MatchEngine, winner: Player) -> None:
    if not engine.verbose:
        return
    state = engine.state
    engine.log_info(
        f"!!! {engine.player_name(winner)} ({winner.repr}) wins the match to "
        f"{engine.params.score_limit} !!!",
    )
    for player in (Player.ONE, Player.TWO):
        engine.log_info(
            f"{'':>2}{player.repr} {engine.player_name(player):<12} "
            f"Score: {state.score(player):<3} Games: {state.games(player)}",
        )

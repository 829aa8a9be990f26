"""Seeded end-to-end match simulation on virtual time."""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from backgammon_clock.ai.baseline_agent import BaselineAgent
from backgammon_clock.core.actions import EndGamePayload
from backgammon_clock.core.types import Player
from backgammon_clock.engine.match_engine import MatchEngine
from backgammon_clock.engine.scheduling import VirtualScheduler

if TYPE_CHECKING:
    from backgammon_clock.core.config import MatchParameters


@dataclass(slots=True)
class SimulationResult:
    """Outcome of one simulated match."""

    seed: int
    match_winner: Player
    action_count: int
    games_played: int
    timeouts: int
    virtual_time_ms: float
    execution_time_ms: float
    undo_count: int = 0
    final_games: dict[Player, int] = field(default_factory=dict)

    @property
    def aborted(self) -> bool:
        return self.match_winner is Player.NONE


def run_simulated_match(
    params: MatchParameters,
    seed: int,
    *,
    max_actions: int = 2000,
    max_think_ms: int = 20_000,
    undo_chance: float = 0.02,
    verbose: bool = True,
) -> SimulationResult:
    """
    Play one match to its score limit with a `BaselineAgent` on both sides.

    Between inputs virtual time advances by a random think time so the
    clock ticks, and with `undo_chance` the last action is undone and
    redone, exercising the history round trip.
    """
    start_time = time.perf_counter()
    rng = random.Random(seed)
    scheduler = VirtualScheduler()
    engine = MatchEngine(scheduler, params=params, rng=rng, verbose=verbose)
    agent = BaselineAgent(rng)

    match_winner = Player.NONE
    games_played = 0
    timeouts = 0
    undo_count = 0
    last_seen = engine.current_action

    def observe(*, during_clock: bool) -> None:
        nonlocal match_winner, games_played, timeouts, last_seen
        action = engine.current_action
        # Undo followed by redo lands on the same recorded object.
        if action is last_seen:
            return
        last_seen = action
        if isinstance(action.payload, EndGamePayload):
            games_played += 1
            timeouts += int(during_clock)
            match_winner = action.payload.match_winner

    actions = 0
    while match_winner is Player.NONE and actions < max_actions:
        result = agent.act(engine)
        actions += 1
        if not result:
            engine.log_error(f"Agent produced a rejected input: {result}")
            break
        observe(during_clock=False)

        if engine.can_undo() and rng.random() < undo_chance:
            _ = engine.undo()
            _ = engine.redo()
            engine.resume()
            undo_count += 1

        if match_winner is Player.NONE and engine.state.game_in_progress:
            _ = scheduler.advance(rng.randint(0, max_think_ms))
            observe(during_clock=True)

    return SimulationResult(
        seed=seed,
        match_winner=match_winner,
        action_count=actions,
        games_played=games_played,
        timeouts=timeouts,
        virtual_time_ms=scheduler.now_ms(),
        execution_time_ms=(time.perf_counter() - start_time) * 1000,
        undo_count=undo_count,
        final_games={
            Player.ONE: engine.state.player_one_games,
            Player.TWO: engine.state.player_two_games,
        },
    )

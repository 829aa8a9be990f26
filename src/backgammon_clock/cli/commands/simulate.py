"""CLI command for simulating a single match."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from pathlib import Path  # cappa needs this at runtime
from typing import Annotated

import cappa
import msgspec

from backgammon_clock.core.config import MatchParameters, PartialMatchParameters
from backgammon_clock.core.formatting import format_games
from backgammon_clock.core.types import Player, StartPolicy
from backgammon_clock.engine.logging import configure_logging
from backgammon_clock.simulation.runner import run_simulated_match

logger = logging.getLogger(__name__)


@cappa.command(
    name="simulate",
    help="Play a seeded match between two random agents on virtual time and log every action.",
)
@dataclass
class SimulateCommand:
    seed: Annotated[
        int | None,
        cappa.Arg(short="-s", long="--seed", help="RNG seed."),
    ] = None
    score_limit: Annotated[
        int | None,
        cappa.Arg(short="-l", long="--score-limit", help="Points needed to win the match."),
    ] = None
    start_policy: Annotated[
        StartPolicy | None,
        cappa.Arg(long="--start-policy", help="Who starts each game."),
    ] = None
    no_timer: Annotated[
        bool,
        cappa.Arg(long="--no-timer", help="Play without the clock."),
    ] = False
    config_file: Annotated[
        Path | None,
        cappa.Arg(short="-c", long="--config", help="Path to TOML match parameters."),
    ] = None
    max_actions: Annotated[
        int,
        cappa.Arg(long="--max-actions", help="Abort after this many inputs."),
    ] = 2000
    debug: Annotated[
        bool,
        cappa.Arg(long="--debug", help="Also log clock ticks."),
    ] = False

    def __call__(self) -> None:
        configure_logging(logging.DEBUG if self.debug else logging.INFO)

        params = MatchParameters()

        # 1. File
        if self.config_file:
            if not self.config_file.exists():
                msg = f"Config file not found: {self.config_file}"
                raise cappa.Exit(msg, code=1)
            try:
                params = PartialMatchParameters.from_toml(self.config_file).apply_to(params)
            except (msgspec.DecodeError, msgspec.ValidationError, ValueError) as e:
                msg = f"Invalid TOML config: {e}"
                raise cappa.Exit(msg, code=1)  # noqa: B904

        # 2. CLI args override the file
        overrides: dict[str, object] = {}
        if self.score_limit is not None:
            overrides["score_limit"] = self.score_limit
        if self.start_policy is not None:
            overrides["start_policy"] = self.start_policy
        if self.no_timer:
            overrides["use_timer"] = False
        try:
            params = params.updated(**overrides)
        except ValueError as e:
            raise cappa.Exit(str(e), code=1)  # noqa: B904

        seed = self.seed if self.seed is not None else random.randint(0, 1_000_000)
        logger.info(f"{params.repr} (Seed: {seed})")
        logger.info("-" * 20)

        result = run_simulated_match(params, seed, max_actions=self.max_actions)

        logger.info("-" * 20)
        if result.aborted:
            logger.error(f"Match abandoned after {result.action_count} inputs.")
            raise cappa.Exit(code=1)

        name = (
            params.player_one_name
            if result.match_winner is Player.ONE
            else params.player_two_name
        )
        logger.info(
            f"{name} won after {result.games_played} games and {result.action_count} inputs "
            f"({result.timeouts} on time, {result.undo_count} undo/redo round trips); "
            f"games {format_games(result.final_games[Player.ONE])} "
            f"{format_games(result.final_games[Player.TWO])}; "
            f"{result.virtual_time_ms / 1000:.0f}s virtual in {result.execution_time_ms:.1f}ms",
        )

"""CLI command for summarising a persisted match snapshot."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path  # cappa needs this at runtime
from typing import Annotated

import cappa
from rich.console import Console
from rich.table import Table

from backgammon_clock.core.errors import CorruptSnapshot
from backgammon_clock.core.formatting import (
    format_games,
    format_reserve_time,
    format_total_time,
)
from backgammon_clock.core.types import Player
from backgammon_clock.engine.persistence import decode_snapshot, loads


@cappa.command(
    name="inspect",
    help="Validate a persisted snapshot (JSON) and print the match it holds.",
)
@dataclass
class InspectCommand:
    path: Annotated[Path, cappa.Arg(help="Snapshot file written by a persistence store.")]

    def __call__(self) -> None:
        if not self.path.exists():
            msg = f"Snapshot not found: {self.path}"
            raise cappa.Exit(msg, code=1)

        try:
            persisted = decode_snapshot(loads(self.path.read_bytes()))
        except CorruptSnapshot as e:
            msg = f"Corrupt snapshot: {e}"
            raise cappa.Exit(msg, code=1)  # noqa: B904

        params = persisted.match_parameters
        state = persisted.game_state

        table = Table(title=params.repr)
        table.add_column("")
        table.add_column(params.player_one_name)
        table.add_column(params.player_two_name)
        table.add_row(
            "Score",
            *(f"{state.score(p)} {format_games(state.games(p))}" for p in _PLAYERS),
        )
        table.add_row(
            "Time",
            *(
                f"{format_total_time(state.total_ms(p))} {format_reserve_time(state.reserve_ms(p))}"
                for p in _PLAYERS
            ),
        )
        table.add_row(
            "Cube",
            *(
                str(state.current_game_value) if state.cube_owner is p else ""
                for p in _PLAYERS
            ),
        )

        console = Console()
        console.print(table)
        console.print(f"Phase: {state.phase}  Last action: {state.current_action.repr}", markup=False)
        if state.cube_owner is Player.NONE:
            console.print(f"Cube centred at {state.current_game_value}")


_PLAYERS = (Player.ONE, Player.TWO)

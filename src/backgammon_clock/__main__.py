from __future__ import annotations

from dataclasses import dataclass

import cappa

from backgammon_clock.cli.commands.inspect import InspectCommand  # noqa: TC001
from backgammon_clock.cli.commands.simulate import (
    SimulateCommand,  # noqa: TC001 # cappa needs this at runtime
)


@dataclass
class Main:
    subcommand: cappa.Subcommands[SimulateCommand | InspectCommand]


def main():
    cappa.invoke(Main)


if __name__ == "__main__":
    main()

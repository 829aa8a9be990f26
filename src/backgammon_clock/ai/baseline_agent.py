from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from backgammon_clock.core.types import Player

if TYPE_CHECKING:
    import random

    from backgammon_clock.core.actions import Action
    from backgammon_clock.engine.match_engine import Concession, MatchEngine, Rejected


@dataclass
class BaselineAgent:
    """
    Plays both sides with random but always-legal inputs.
    Serves as the driver for simulated matches.
    """

    rng: random.Random
    double_chance: float = 0.08
    take_chance: float = 0.75
    concede_chance: float = 0.01

    def acting_player(self, engine: MatchEngine) -> Player:
        """The player whose input the engine is waiting for."""
        match engine.phase:
            case "NO_GAME":
                return Player.ONE if self.rng.random() < 0.5 else Player.TWO
            case "DOUBLE_OFFERED_TO_ONE":
                return Player.ONE
            case "DOUBLE_OFFERED_TO_TWO":
                return Player.TWO
            case _:
                return engine.turn_holder

    def act(self, engine: MatchEngine) -> Action | Concession | Rejected:
        player = self.acting_player(engine)

        if engine.can_start(player):
            return engine.start(player)

        if engine.can_take_double(player):
            if self.rng.random() < self.take_chance:
                return engine.take_double(player)
            return engine.drop_double(player)

        if engine.can_concede(player) and self.rng.random() < self.concede_chance:
            points = self.rng.choice(engine.concession_options())
            _ = engine.propose_concession(player, points)
            if self.rng.random() < 0.5:
                return engine.accept_concession(player.opponent)
            _ = engine.reject_concession(player.opponent)

        if engine.can_offer_double(player) and self.rng.random() < self.double_chance:
            return engine.offer_double(player)

        # Rolling again from ROLLED is legal but would never end the turn.
        if engine.phase in ("PLAYER_ONE_TURN", "PLAYER_TWO_TURN") and engine.can_roll(player):
            return engine.roll(player)

        return engine.end_turn(player)

from __future__ import annotations

from typing import Annotated

import msgspec

from backgammon_clock.core.types import ActionKind, Player

DieValue = Annotated[int, msgspec.Meta(ge=1, le=6)]
Count = Annotated[int, msgspec.Meta(ge=0)]


def is_power_of_two(value: int) -> bool:
    return value >= 1 and value & (value - 1) == 0


class StateSnapshot(msgspec.Struct, frozen=True, kw_only=True, rename="camel"):
    """Frozen copy of every externally visible game fact at one instant."""

    current_game_value: int = 1
    cube_owner: Player = Player.NONE

    player_one_games: Count = 0
    player_one_score: Count = 0
    player_two_games: Count = 0
    player_two_score: Count = 0

    player_one_total_time_remaining_ms: Count = 0
    player_one_reserve_time_remaining_ms: Count = 0
    player_two_total_time_remaining_ms: Count = 0
    player_two_reserve_time_remaining_ms: Count = 0

    def __post_init__(self) -> None:
        if not is_power_of_two(self.current_game_value):
            msg = f"Cube value must be a power of two, got {self.current_game_value}"
            raise ValueError(msg)


class ActionPayload(msgspec.Struct, frozen=True, kw_only=True, tag_field="kind", rename="camel"):
    """Base of the per-kind payloads. The struct tag is the `ActionKind` value."""

    @property
    def kind(self) -> ActionKind:
        return ActionKind(self.__struct_config__.tag)


class StartPayload(ActionPayload, tag=ActionKind.START.value):
    player_to_start: Player

    def __post_init__(self) -> None:
        if self.player_to_start is Player.NONE:
            msg = "A game must be started by player ONE or TWO"
            raise ValueError(msg)


class RollPayload(ActionPayload, tag=ActionKind.ROLL.value):
    die_one: DieValue
    die_two: DieValue

    def __post_init__(self) -> None:
        if not (1 <= self.die_one <= 6 and 1 <= self.die_two <= 6):
            msg = f"Dice must be in [1, 6], got {self.die_one}/{self.die_two}"
            raise ValueError(msg)

    @property
    def is_double(self) -> bool:
        return self.die_one == self.die_two


class OfferDoublePayload(ActionPayload, tag=ActionKind.OFFER_DOUBLE.value):
    new_game_value: int


class TakeDoublePayload(ActionPayload, tag=ActionKind.TAKE_DOUBLE.value):
    player_taking: Player
    previous_game_value: int
    current_game_value: int


class EndTurnPayload(ActionPayload, tag=ActionKind.END_TURN.value): ...


class EndGamePayload(ActionPayload, tag=ActionKind.END_GAME.value):
    # Points awarded to the acting player; 0 for the history sentinel.
    points: Count = 0
    forced: bool = False
    match_winner: Player = Player.NONE


AnyPayload = (
    StartPayload
    | RollPayload
    | OfferDoublePayload
    | TakeDoublePayload
    | EndTurnPayload
    | EndGamePayload
)


class Action(msgspec.Struct, frozen=True, kw_only=True, rename="camel"):
    """
    Immutable record of one player input.

    `snapshot` is the game state as it stood once the action had been
    applied; undo and redo copy it back verbatim instead of re-deriving it.
    """

    acting_player: Player
    snapshot: StateSnapshot
    payload: AnyPayload

    @property
    def kind(self) -> ActionKind:
        return self.payload.kind

    @property
    def is_sentinel(self) -> bool:
        return (
            isinstance(self.payload, EndGamePayload)
            and self.acting_player is Player.NONE
            and self.payload.points == 0
        )

    @property
    def repr(self) -> str:
        match self.payload:
            case StartPayload(player_to_start=p):
                detail = f"{p.repr} starts"
            case RollPayload(die_one=a, die_two=b):
                detail = f"{a}-{b}"
            case OfferDoublePayload(new_game_value=v):
                detail = f"cube to {v}"
            case TakeDoublePayload(previous_game_value=old, current_game_value=new):
                detail = f"cube {old} -> {new}"
            case EndGamePayload(points=pts, match_winner=winner):
                detail = f"+{pts}" + (f", match to {winner.repr}" if winner else "")
            case _:
                detail = ""
        return f"{self.kind.value}[{self.acting_player.repr}] {detail}".rstrip()


def sentinel_action(snapshot: StateSnapshot) -> Action:
    """The EndGame record that sits at the bottom of a fresh history."""
    return Action(
        acting_player=Player.NONE,
        snapshot=snapshot,
        payload=EndGamePayload(points=0),
    )

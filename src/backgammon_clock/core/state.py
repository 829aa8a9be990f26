from __future__ import annotations

from typing import TYPE_CHECKING, Literal

import msgspec

from backgammon_clock.core.actions import (
    Action,
    EndGamePayload,
    EndTurnPayload,
    OfferDoublePayload,
    RollPayload,
    StartPayload,
    StateSnapshot,
    TakeDoublePayload,
    sentinel_action,
)
from backgammon_clock.core.types import GameStateField, MatchPhase, Player

if TYPE_CHECKING:
    from backgammon_clock.core.config import MatchParameters

PlayerCounter = Literal["Games", "Score", "TotalTimeRemainingMs", "ReserveTimeRemainingMs"]


class GameState(msgspec.Struct, kw_only=True, rename="camel"):
    """
    The single mutable aggregate the engine owns.

    Timer handles are not part of it; they live on `MatchClock` and are
    never persisted.
    """

    current_action: Action
    current_game_value: int = 1
    cube_owner: Player = Player.NONE

    player_one_games: int = 0
    player_one_score: int = 0
    player_two_games: int = 0
    player_two_score: int = 0

    player_one_total_time_remaining_ms: int = 0
    player_one_reserve_time_remaining_ms: int = 0
    player_two_total_time_remaining_ms: int = 0
    player_two_reserve_time_remaining_ms: int = 0

    force_stop_timer: bool = True
    is_paused: bool = False

    @classmethod
    def initial(cls, params: MatchParameters) -> GameState:
        snapshot = StateSnapshot(
            player_one_total_time_remaining_ms=params.total_game_time_ms,
            player_one_reserve_time_remaining_ms=params.reserve_time_ms,
            player_two_total_time_remaining_ms=params.total_game_time_ms,
            player_two_reserve_time_remaining_ms=params.reserve_time_ms,
        )
        state = cls(current_action=sentinel_action(snapshot))
        for name, value in snapshot_items(snapshot):
            setattr(state, GAME_STATE_ATTRS[name], value)
        return state

    # --- Per-player access ---
    @staticmethod
    def field_for(player: Player, counter: PlayerCounter) -> GameStateField:
        if player is Player.NONE:
            msg = "Player.NONE has no counters"
            raise ValueError(msg)
        side = "playerOne" if player is Player.ONE else "playerTwo"
        return f"{side}{counter}"  # pyright: ignore[reportReturnType]

    def get(self, name: GameStateField) -> object:
        return getattr(self, GAME_STATE_ATTRS[name])

    def score(self, player: Player) -> int:
        return getattr(self, GAME_STATE_ATTRS[self.field_for(player, "Score")])

    def games(self, player: Player) -> int:
        return getattr(self, GAME_STATE_ATTRS[self.field_for(player, "Games")])

    def total_ms(self, player: Player) -> int:
        return getattr(
            self,
            GAME_STATE_ATTRS[self.field_for(player, "TotalTimeRemainingMs")],
        )

    def reserve_ms(self, player: Player) -> int:
        return getattr(
            self,
            GAME_STATE_ATTRS[self.field_for(player, "ReserveTimeRemainingMs")],
        )

    # --- Derived ---
    @property
    def phase(self) -> MatchPhase:
        return derive_phase(self.current_action)

    @property
    def turn_holder(self) -> Player:
        return derive_turn_holder(self.current_action)

    @property
    def game_in_progress(self) -> bool:
        return self.phase != "NO_GAME"

    @property
    def is_first_game(self) -> bool:
        return self.player_one_score == 0 and self.player_two_score == 0

    def capture_snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            current_game_value=self.current_game_value,
            cube_owner=self.cube_owner,
            player_one_games=self.player_one_games,
            player_one_score=self.player_one_score,
            player_two_games=self.player_two_games,
            player_two_score=self.player_two_score,
            player_one_total_time_remaining_ms=max(
                0,
                self.player_one_total_time_remaining_ms,
            ),
            player_one_reserve_time_remaining_ms=max(
                0,
                self.player_one_reserve_time_remaining_ms,
            ),
            player_two_total_time_remaining_ms=max(
                0,
                self.player_two_total_time_remaining_ms,
            ),
            player_two_reserve_time_remaining_ms=max(
                0,
                self.player_two_reserve_time_remaining_ms,
            ),
        )

    @property
    def repr(self) -> str:
        return (
            f"{self.phase} | cube {self.current_game_value}"
            f"@{self.cube_owner.repr} | P1 {self.player_one_score}"
            f"({self.player_one_games}) P2 {self.player_two_score}"
            f"({self.player_two_games})"
        )


GAME_STATE_ATTRS: dict[GameStateField, str] = {
    f.encode_name: f.name  # pyright: ignore[reportAssignmentType]
    for f in msgspec.structs.fields(GameState)
}


def snapshot_items(snapshot: StateSnapshot) -> list[tuple[GameStateField, object]]:
    """Snapshot values keyed by the GameState field they replay into."""
    return [
        (f.encode_name, getattr(snapshot, f.name))  # pyright: ignore[reportAssignmentType]
        for f in msgspec.structs.fields(snapshot)
    ]


def derive_phase(action: Action) -> MatchPhase:
    """The state-machine node implied by the most recent action."""
    match action.payload:
        case StartPayload(player_to_start=p):
            return _turn_phase(p)
        case RollPayload():
            return (
                "PLAYER_ONE_ROLLED"
                if action.acting_player is Player.ONE
                else "PLAYER_TWO_ROLLED"
            )
        case OfferDoublePayload():
            return (
                "DOUBLE_OFFERED_TO_TWO"
                if action.acting_player is Player.ONE
                else "DOUBLE_OFFERED_TO_ONE"
            )
        case TakeDoublePayload(player_taking=taker):
            # The offering player resumes their turn.
            return _turn_phase(taker.opponent)
        case EndTurnPayload():
            return _turn_phase(action.acting_player.opponent)
        case EndGamePayload():
            return "NO_GAME"
    msg = f"Unhandled action payload {action.payload!r}"
    raise TypeError(msg)


def derive_turn_holder(action: Action) -> Player:
    """Player allowed to roll, double or end turn; the offerer during a pending double."""
    match derive_phase(action):
        case "PLAYER_ONE_TURN" | "PLAYER_ONE_ROLLED" | "DOUBLE_OFFERED_TO_TWO":
            return Player.ONE
        case "PLAYER_TWO_TURN" | "PLAYER_TWO_ROLLED" | "DOUBLE_OFFERED_TO_ONE":
            return Player.TWO
        case _:
            return Player.NONE


def derive_clock_owner(action: Action) -> Player:
    """Player whose clock runs: the decider while a double is pending."""
    match derive_phase(action):
        case "DOUBLE_OFFERED_TO_ONE":
            return Player.ONE
        case "DOUBLE_OFFERED_TO_TWO":
            return Player.TWO
        case _:
            return derive_turn_holder(action)


def _turn_phase(player: Player) -> MatchPhase:
    return "PLAYER_ONE_TURN" if player is Player.ONE else "PLAYER_TWO_TURN"

"""Snapshot/restore of match parameters and game state for an external store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import msgspec

from backgammon_clock.core.actions import StateSnapshot, is_power_of_two
from backgammon_clock.core.config import MatchParameters
from backgammon_clock.core.errors import CorruptSnapshot
from backgammon_clock.core.state import GAME_STATE_ATTRS, GameState
from backgammon_clock.core.types import Player

if TYPE_CHECKING:
    from backgammon_clock.engine.match_engine import MatchEngine

MATCH_PARAMETERS_KEY = "matchParameters"
GAME_STATE_KEY = "gameState"


class PersistedMatch(msgspec.Struct, kw_only=True, rename="camel"):
    """The two independent records a store keeps between restarts."""

    match_parameters: MatchParameters
    game_state: GameState


def serialize(engine: MatchEngine) -> dict[str, Any]:
    """Flat builtins mapping; timer handles live on the clock and are never included."""
    return msgspec.to_builtins(
        PersistedMatch(match_parameters=engine.params, game_state=engine.state),
    )


def dumps(engine: MatchEngine) -> bytes:
    return msgspec.json.encode(serialize(engine))


def loads(data: bytes | str) -> Any:
    """Decode JSON into builtins for `restore`; undecodable input becomes `None`."""
    try:
        return msgspec.json.decode(data)
    except msgspec.DecodeError:
        return None


def decode_snapshot(snapshot: Any) -> PersistedMatch:
    """Convert and validate a builtins snapshot, raising `CorruptSnapshot`."""
    if not isinstance(snapshot, dict):
        msg = f"Snapshot must be a mapping, got {type(snapshot).__name__}"
        raise CorruptSnapshot(msg)
    # Struct defaults would silently fill gaps; a persisted record must be complete.
    _require_fields(snapshot, MATCH_PARAMETERS_KEY, MatchParameters)
    _require_fields(snapshot, GAME_STATE_KEY, GameState)
    if isinstance(action := snapshot[GAME_STATE_KEY]["currentAction"], dict):
        _require_fields(action, "snapshot", StateSnapshot)
    try:
        persisted = msgspec.convert(snapshot, type=PersistedMatch)
    except msgspec.ValidationError as e:
        raise CorruptSnapshot(str(e)) from e
    validate_game_state(persisted.game_state, persisted.match_parameters)
    return persisted


def validate_game_state(state: GameState, params: MatchParameters) -> None:
    for name, attr in GAME_STATE_ATTRS.items():
        value = getattr(state, attr)
        if name.startswith("player") and value < 0:
            msg = f"{name} is negative ({value})"
            raise CorruptSnapshot(msg)

    for player in (Player.ONE, Player.TWO):
        if state.score(player) >= params.score_limit:
            msg = f"{player.repr} score {state.score(player)} is beyond limit {params.score_limit}"
            raise CorruptSnapshot(msg)
        if state.reserve_ms(player) > params.reserve_time_ms:
            msg = (
                f"{player.repr} reserve {state.reserve_ms(player)}ms exceeds the configured "
                f"{params.reserve_time_ms}ms"
            )
            raise CorruptSnapshot(msg)
        if state.total_ms(player) > params.total_game_time_ms:
            msg = (
                f"{player.repr} total {state.total_ms(player)}ms exceeds the configured "
                f"{params.total_game_time_ms}ms"
            )
            raise CorruptSnapshot(msg)

    if not is_power_of_two(state.current_game_value):
        msg = f"Cube value {state.current_game_value} is not a power of two"
        raise CorruptSnapshot(msg)
    if (state.current_game_value == 1) != (state.cube_owner is Player.NONE):
        msg = f"Cube value {state.current_game_value} disagrees with owner {state.cube_owner.repr}"
        raise CorruptSnapshot(msg)

    # Cube and scores must match the action they were recorded with; only
    # clock fields may have moved on since.
    recorded = state.current_action.snapshot
    for attr in (
        "current_game_value",
        "cube_owner",
        "player_one_score",
        "player_two_score",
        "player_one_games",
        "player_two_games",
    ):
        if getattr(recorded, attr) != getattr(state, attr):
            msg = f"{attr} does not match the current action's snapshot"
            raise CorruptSnapshot(msg)


def restore(engine: MatchEngine, snapshot: Any) -> bool:
    """
    Adopt a persisted snapshot as a whole, or fall back to defaults as a whole.

    The clock never runs after a restore; a match restored mid-game is
    paused until an explicit resume. History restarts at the restored action.
    """
    try:
        persisted = decode_snapshot(snapshot)
    except CorruptSnapshot as e:
        engine.log_warning(f"!!! Corrupt snapshot, falling back to defaults: {e}")
        engine.configure(MatchParameters())
        return False

    engine.pending_concession = None
    engine.apply("forceStopTimer", True)

    changes = engine.params.changed_fields(persisted.match_parameters)
    engine.params = persisted.match_parameters
    for name, value in changes:
        engine.notify(name, value)

    restored = persisted.game_state
    for name, attr in GAME_STATE_ATTRS.items():
        engine.apply(name, getattr(restored, attr))
    engine.apply("forceStopTimer", True)
    engine.apply("isPaused", restored.game_in_progress)

    engine.history.clear(restored.current_action)
    engine.log_info(f"Restored: {engine.state.repr}")
    return True


def _require_fields(snapshot: dict[str, Any], key: str, struct_type: type[msgspec.Struct]) -> None:
    record = snapshot.get(key)
    if not isinstance(record, dict):
        msg = f"{key} must be a mapping"
        raise CorruptSnapshot(msg)
    missing = [
        f.encode_name for f in msgspec.structs.fields(struct_type) if f.encode_name not in record
    ]
    if missing:
        msg = f"{key} is missing {', '.join(missing)}"
        raise CorruptSnapshot(msg)

"""Match configuration using msgspec."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

import msgspec

from backgammon_clock.core.types import (
    TEN_MINUTES_IN_MS,
    TEN_SECONDS_IN_MS,
    MatchParameterField,
    StartPolicy,
)

NonNegativeMs = Annotated[int, msgspec.Meta(ge=0)]
ScoreLimit = Annotated[int, msgspec.Meta(ge=1)]


class MatchParameters(msgspec.Struct, frozen=True, kw_only=True, rename="camel"):
    """
    Static configuration for one match.

    Owned by the settings collaborator. The engine only reads it; a change
    goes through `MatchEngine.configure`, which resets the match.
    """

    player_one_name: str = "Player One"
    player_two_name: str = "Player Two"

    use_cube: bool = True
    use_dice: bool = True
    use_timer: bool = True
    start_policy: StartPolicy = "ALWAYS_RANDOM"

    total_game_time_ms: NonNegativeMs = TEN_MINUTES_IN_MS
    reserve_time_ms: NonNegativeMs = TEN_SECONDS_IN_MS
    score_limit: ScoreLimit = 7

    def __post_init__(self) -> None:
        # Meta constraints are only enforced on decode; keep direct
        # construction to the same rules.
        if self.total_game_time_ms < 0 or self.reserve_time_ms < 0:
            msg = "Clock budgets must be >= 0 ms"
            raise ValueError(msg)
        if self.score_limit < 1:
            msg = f"Score limit must be >= 1, got {self.score_limit}"
            raise ValueError(msg)

    @classmethod
    def from_toml(cls, path: str | Path) -> MatchParameters:
        """Load a full parameter set from a TOML file; missing keys use defaults."""
        with Path(path).open("rb") as f:
            return msgspec.toml.decode(f.read(), type=cls)

    def updated(self, **changes: Any) -> MatchParameters:
        return msgspec.structs.replace(self, **changes)

    def changed_fields(
        self,
        other: MatchParameters,
    ) -> list[tuple[MatchParameterField, Any]]:
        """(camelCase name, new value) for every field that differs in `other`."""
        changes: list[tuple[MatchParameterField, Any]] = []
        fields = msgspec.structs.fields(self)
        for f in fields:
            new_value = getattr(other, f.name)
            if getattr(self, f.name) != new_value:
                changes.append((f.encode_name, new_value))  # pyright: ignore[reportArgumentType]
        return changes

    @property
    def repr(self) -> str:
        features = [
            name
            for name, on in (
                ("cube", self.use_cube),
                ("dice", self.use_dice),
                ("timer", self.use_timer),
            )
            if on
        ]
        return (
            f"{self.player_one_name} vs {self.player_two_name}, to {self.score_limit}"
            f" ({', '.join(features) or 'no features'}; {self.start_policy})"
        )


class PartialMatchParameters(msgspec.Struct, kw_only=True, rename="camel"):
    """Partial configuration for layering TOML files over existing parameters."""

    player_one_name: str | None = None
    player_two_name: str | None = None
    use_cube: bool | None = None
    use_dice: bool | None = None
    use_timer: bool | None = None
    start_policy: StartPolicy | None = None
    total_game_time_ms: NonNegativeMs | None = None
    reserve_time_ms: NonNegativeMs | None = None
    score_limit: ScoreLimit | None = None

    @classmethod
    def from_toml(cls, path: str | Path) -> PartialMatchParameters:
        with Path(path).open("rb") as f:
            return msgspec.toml.decode(f.read(), type=cls)

    def apply_to(self, base: MatchParameters) -> MatchParameters:
        overrides = {
            f.name: value
            for f in msgspec.structs.fields(self)
            if (value := getattr(self, f.name)) is not None
        }
        return base.updated(**overrides)

from pathlib import Path

import msgspec
import pytest

from backgammon_clock.core.config import MatchParameters, PartialMatchParameters


def test_defaults():
    params = MatchParameters()
    assert params.player_one_name == "Player One"
    assert params.player_two_name == "Player Two"
    assert params.use_cube and params.use_dice and params.use_timer
    assert params.start_policy == "ALWAYS_RANDOM"
    assert params.total_game_time_ms == 600_000
    assert params.reserve_time_ms == 10_000
    assert params.score_limit == 7


@pytest.mark.parametrize(
    "changes",
    [{"score_limit": 0}, {"total_game_time_ms": -1}, {"reserve_time_ms": -1000}],
)
def test_invalid_values_are_rejected(changes: dict[str, int]):
    with pytest.raises(ValueError):
        _ = MatchParameters(**changes)


def test_from_toml_reads_camel_case_keys(tmp_path: Path):
    path = tmp_path / "match.toml"
    _ = path.write_text(
        'playerOneName = "Alice"\nscoreLimit = 11\nuseCube = false\nstartPolicy = "CLICKER_STARTS"\n',
    )

    params = MatchParameters.from_toml(path)

    assert params.player_one_name == "Alice"
    assert params.score_limit == 11
    assert not params.use_cube
    assert params.start_policy == "CLICKER_STARTS"
    # Untouched keys keep their defaults
    assert params.reserve_time_ms == 10_000


def test_from_toml_rejects_unknown_policy(tmp_path: Path):
    path = tmp_path / "match.toml"
    _ = path.write_text('startPolicy = "LOUDEST_STARTS"\n')

    with pytest.raises(msgspec.ValidationError):
        _ = MatchParameters.from_toml(path)


def test_partial_parameters_layer_over_base(tmp_path: Path):
    path = tmp_path / "override.toml"
    _ = path.write_text("reserveTimeMs = 5000\n")
    base = MatchParameters(score_limit=3)

    layered = PartialMatchParameters.from_toml(path).apply_to(base)

    assert layered.reserve_time_ms == 5000
    assert layered.score_limit == 3


def test_changed_fields_uses_wire_names():
    old = MatchParameters()
    new = old.updated(score_limit=5, use_timer=False)

    assert old.changed_fields(new) == [("useTimer", False), ("scoreLimit", 5)]
    assert old.changed_fields(old) == []

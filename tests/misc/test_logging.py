import logging

import pytest

from backgammon_clock.core.config import MatchParameters
from backgammon_clock.core.types import Player
from backgammon_clock.engine.logging import LOGGER_NAME, RichMarkupFormatter
from backgammon_clock.engine.match_engine import MatchEngine
from backgammon_clock.engine.scheduling import VirtualScheduler
from tests.test_utils import MatchScenario


def test_records_carry_match_context(
    scenario: type[MatchScenario],
    caplog: pytest.LogCaptureFixture,
):
    game = scenario(MatchParameters(start_policy="CLICKER_STARTS"), rolls=[3, 5])

    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        assert game.engine.start(Player.ONE)
        assert game.engine.roll(Player.ONE)

    roll_record = next(r for r in caplog.records if "ROLL" in r.getMessage())
    assert roll_record.getMessage() == "ROLL[P1] 3-5"
    assert getattr(roll_record, "game_number") == 1
    assert getattr(roll_record, "action_count") == 2
    assert getattr(roll_record, "turn_holder") == "P1"


def test_rejections_are_logged_as_warnings(
    scenario: type[MatchScenario],
    caplog: pytest.LogCaptureFixture,
):
    game = scenario()

    with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
        assert not game.engine.roll(Player.TWO)

    assert any(
        r.levelno == logging.WARNING and r.getMessage().startswith("Rejected roll")
        for r in caplog.records
    )


def test_formatter_escapes_action_tags():
    record = logging.LogRecord(LOGGER_NAME, logging.INFO, __file__, 1, "ROLL[P1] 6-6", None, None)
    record.engine_id = 3
    record.game_number = 2
    record.action_count = 5
    record.turn_holder = "P1"

    line = RichMarkupFormatter().format(record)

    assert "3 g2.5 P1" in line
    assert line.endswith(r"ROLL\[P1] 6-6")


def test_quiet_engine_logs_nothing(caplog: pytest.LogCaptureFixture):
    engine = MatchEngine(
        VirtualScheduler(),
        params=MatchParameters(start_policy="CLICKER_STARTS"),
        verbose=False,
    )

    with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
        assert engine.start(Player.TWO)
        assert not engine.end_turn(Player.ONE)

    assert caplog.records == []

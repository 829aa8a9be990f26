import random

import pytest

from backgammon_clock.ai.baseline_agent import BaselineAgent
from backgammon_clock.core.config import MatchParameters
from backgammon_clock.core.types import Player
from backgammon_clock.simulation.runner import run_simulated_match
from tests.test_utils import MatchScenario


@pytest.mark.parametrize("seed", [1, 7, 42])
def test_seeded_match_reaches_a_winner(seed: int):
    params = MatchParameters(score_limit=3)

    result = run_simulated_match(params, seed, verbose=False)

    assert not result.aborted
    assert result.match_winner in (Player.ONE, Player.TWO)
    assert result.games_played >= 1
    assert sum(result.final_games.values()) == result.games_played
    assert result.final_games[result.match_winner] >= 1


def test_same_seed_same_match():
    params = MatchParameters(score_limit=3, start_policy="FIRST_GAME_RANDOM")

    first = run_simulated_match(params, 123, verbose=False)
    second = run_simulated_match(params, 123, verbose=False)

    assert first.match_winner is second.match_winner
    assert first.action_count == second.action_count
    assert first.virtual_time_ms == second.virtual_time_ms


def test_short_clock_decides_matches_on_time():
    """With a 20s budget and long think times most games end on the clock."""
    params = MatchParameters(
        score_limit=3,
        use_cube=False,
        total_game_time_ms=20_000,
        reserve_time_ms=0,
    )

    result = run_simulated_match(params, 5, max_think_ms=15_000, verbose=False)

    assert not result.aborted
    assert result.timeouts >= 1


def test_match_without_timer_or_cube():
    params = MatchParameters(score_limit=2, use_timer=False, use_cube=False)

    result = run_simulated_match(params, 9, verbose=False)

    assert not result.aborted
    assert result.timeouts == 0
    assert result.virtual_time_ms > 0


def test_agent_only_issues_legal_inputs(scenario: type[MatchScenario]):
    game = scenario(MatchParameters(score_limit=2, use_timer=False))
    game.engine.rng = random.Random(3)
    agent = BaselineAgent(random.Random(4), double_chance=0.5, concede_chance=0.2)

    for _ in range(300):
        assert agent.act(game.engine)

from backgammon_clock.core.actions import EndGamePayload
from backgammon_clock.core.config import MatchParameters
from backgammon_clock.core.errors import FeatureDisabled
from backgammon_clock.core.types import Player
from tests.test_utils import MatchScenario

P1, P2 = Player.ONE, Player.TWO


def _params(**changes) -> MatchParameters:
    return MatchParameters(start_policy="CLICKER_STARTS").updated(**changes)


def test_reserve_drains_before_total(scenario: type[MatchScenario]):
    """
    Scenario:
    - P1 starts with 3s reserve and 10min total.
    - After 5 seconds the reserve is gone and 2s came off the total.
    - P2's clock never moved.
    """
    game = scenario(_params(reserve_time_ms=3_000))
    assert game.engine.start(P1)

    assert game.tick(5) == 5

    state = game.engine.state
    assert state.reserve_ms(P1) == 0
    assert state.total_ms(P1) == 600_000 - 2_000
    assert state.reserve_ms(P2) == 3_000
    assert state.total_ms(P2) == 600_000


def test_end_turn_switches_clock_and_refills_reserve(scenario: type[MatchScenario]):
    game = scenario(_params(), rolls=[3, 5])
    assert game.engine.start(P1)
    _ = game.tick(4)
    assert game.engine.roll(P1)
    assert game.engine.end_turn(P1)

    assert game.engine.clock.armed is P2
    # Reserve is use-it-or-lose-it: P1 gets the full 10s back
    assert game.engine.state.reserve_ms(P1) == 10_000

    _ = game.tick(2)
    assert game.engine.state.reserve_ms(P2) == 8_000
    assert game.engine.state.reserve_ms(P1) == 10_000


def test_pending_double_runs_the_deciders_clock(scenario: type[MatchScenario]):
    game = scenario(_params())
    assert game.engine.start(P1)
    assert game.engine.offer_double(P1)

    assert game.engine.clock.armed is P2
    _ = game.tick(1)
    assert game.engine.state.reserve_ms(P2) == 9_000

    assert game.engine.take_double(P2)
    assert game.engine.clock.armed is P1


def test_late_tick_shortens_the_next_delay(scenario: type[MatchScenario]):
    """
    Scenario:
    - The first tick fires 300ms late.
    - The next tick is still due on the original 1s grid (2000ms), not 2300ms.
    """
    game = scenario(_params())
    assert game.engine.start(P1)

    assert game.scheduler.fire_next(late_by_ms=300)
    assert game.scheduler.now_ms() == 1300
    assert game.engine.state.reserve_ms(P1) == 9_000
    assert game.scheduler.pending[0].due_ms == 2000

    assert game.scheduler.fire_next()
    assert game.scheduler.pending[0].due_ms == 3000


def test_very_late_tick_fires_next_immediately(scenario: type[MatchScenario]):
    game = scenario(_params())
    assert game.engine.start(P1)

    assert game.scheduler.fire_next(late_by_ms=1500)

    assert game.scheduler.pending[0].due_ms == game.scheduler.now_ms() == 2500


def test_pause_turns_in_flight_tick_into_noop(scenario: type[MatchScenario]):
    """A tick callback that was already dequeued when the clock paused must not decrement."""
    game = scenario(_params())
    assert game.engine.start(P1)
    in_flight = game.scheduler.pending[0]

    game.engine.pause()
    in_flight.callback()

    assert game.engine.state.reserve_ms(P1) == 10_000
    assert game.scheduler.pending == []
    assert game.tick(30) == 0


def test_rearming_invalidates_stale_ticks(scenario: type[MatchScenario]):
    game = scenario(_params(), rolls=[2, 2])
    assert game.engine.start(P1)
    stale = game.scheduler.pending[0]
    assert game.engine.roll(P1)
    assert game.engine.end_turn(P1)

    stale.callback()

    assert game.engine.state.reserve_ms(P1) == 10_000
    assert game.engine.state.reserve_ms(P2) == 10_000


def test_resume_restarts_the_clock_owner(scenario: type[MatchScenario]):
    game = scenario(_params())
    assert game.engine.start(P1)
    assert game.engine.offer_double(P1)
    game.engine.pause()
    _ = game.tick(10)
    assert game.engine.state.reserve_ms(P2) == 10_000

    game.engine.resume()

    assert not game.engine.state.is_paused
    assert not game.engine.state.force_stop_timer
    assert game.engine.clock.armed is P2
    _ = game.tick(1)
    assert game.engine.state.reserve_ms(P2) == 9_000


def test_time_expiry_forces_a_win(scenario: type[MatchScenario]):
    """
    Scenario:
    - No reserve and 2s total for P1.
    - After 2 ticks P1 is out of time; P2 wins the game with enough points for the match.
    - The total is clamped at 0 and never goes negative.
    """
    game = scenario(_params(total_game_time_ms=2_000, reserve_time_ms=0))
    assert game.engine.start(P1)

    _ = game.tick(2)

    action = game.engine.current_action
    assert isinstance(action.payload, EndGamePayload)
    assert action.acting_player is P2
    assert action.payload.forced
    assert action.payload.points == 7
    assert action.payload.match_winner is P2
    assert game.engine.phase == "NO_GAME"
    assert not game.engine.clock.running
    assert game.scheduler.pending == []
    assert min(game.changed("playerOneTotalTimeRemainingMs")) == 0
    # Match over: totals back to the configured budget, P2 keeps the game won
    assert game.engine.state.total_ms(P1) == 2_000
    assert game.engine.state.games(P2) == 1


def test_time_expiry_matches_conceding_the_game(scenario: type[MatchScenario]):
    timed_out = scenario(_params(total_game_time_ms=1_000, reserve_time_ms=0))
    assert timed_out.engine.start(P1)
    _ = timed_out.tick(1)

    conceded = scenario(_params(total_game_time_ms=1_000, reserve_time_ms=0))
    assert conceded.engine.start(P1)
    assert conceded.engine.concede_game(P1)

    assert timed_out.engine.current_action == conceded.engine.current_action
    assert timed_out.snapshot() == conceded.snapshot()


def test_no_timer_means_no_ticks(scenario: type[MatchScenario]):
    game = scenario(_params(use_timer=False), rolls=[1, 2])
    assert game.engine.start(P1)
    assert game.engine.roll(P1)

    assert game.scheduler.pending == []
    assert not game.engine.clock.running
    _ = game.tick(60)
    assert game.engine.state.reserve_ms(P1) == 10_000

    rejected = game.engine.handle_time_expiry(P1)
    assert not rejected
    assert isinstance(rejected.error, FeatureDisabled)


def test_resume_while_running_leaves_the_clock_alone(scenario: type[MatchScenario]):
    """
    Scenario:
    - P1's clock runs with no reserve.
    - resume() is called every 900ms even though nothing is paused.
    - Every elapsed second still comes off P1's total.
    """
    game = scenario(_params(reserve_time_ms=0))
    assert game.engine.start(P1)
    generation = game.engine.clock.generation

    for _ in range(10):
        _ = game.scheduler.advance(900)
        game.engine.resume()

    assert game.engine.clock.generation == generation
    assert game.engine.state.total_ms(P1) == 600_000 - 9_000

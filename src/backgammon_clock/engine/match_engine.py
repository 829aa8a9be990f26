from __future__ import annotations

import functools
import itertools
import logging
import random
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Concatenate

from backgammon_clock.core.actions import (
    Action,
    AnyPayload,
    EndTurnPayload,
    OfferDoublePayload,
    RollPayload,
    StartPayload,
    TakeDoublePayload,
)
from backgammon_clock.core.config import MatchParameters
from backgammon_clock.core.errors import (
    EmptyHistory,
    FeatureDisabled,
    InvalidTransition,
    MatchError,
)
from backgammon_clock.core.state import (
    GAME_STATE_ATTRS,
    GameState,
    derive_clock_owner,
    snapshot_items,
)
from backgammon_clock.core.types import (
    GameStateField,
    MatchParameterField,
    MatchPhase,
    Operation,
    Player,
)
from backgammon_clock.engine import flow, persistence
from backgammon_clock.engine.clock import MatchClock
from backgammon_clock.engine.history import HistoryBuffer
from backgammon_clock.engine.logging import LOGGER_NAME, ContextFilter, LogContext

if TYPE_CHECKING:
    from backgammon_clock.engine.scheduling import Scheduler

Observer = Callable[[GameStateField | MatchParameterField, Any], None]

_ENGINE_IDS = itertools.count()


@dataclass(frozen=True, slots=True)
class Rejected:
    """No-op result of an operation that failed validation. State is untouched."""

    operation: Operation
    error: MatchError

    def __bool__(self) -> bool:
        return False

    @property
    def reason(self) -> str:
        return str(self.error)


@dataclass(frozen=True, slots=True)
class Concession:
    """A pending offer to end the game; lives outside history until accepted."""

    conceding_player: Player
    points: int

    @property
    def accepting_player(self) -> Player:
        return self.conceding_player.opponent


def guarded[**P, R](
    operation: Operation,
) -> Callable[
    [Callable[Concatenate[MatchEngine, P], R]],
    Callable[Concatenate[MatchEngine, P], R | Rejected],
]:
    """Turns a `MatchError` raised by an operation into a logged `Rejected` result."""

    def decorator(
        fn: Callable[Concatenate[MatchEngine, P], R],
    ) -> Callable[Concatenate[MatchEngine, P], R | Rejected]:
        @functools.wraps(fn)
        def wrapper(self: MatchEngine, *args: P.args, **kwargs: P.kwargs) -> R | Rejected:
            try:
                return fn(self, *args, **kwargs)
            except MatchError as e:
                self.log_warning(f"Rejected {operation}: {e}")
                return Rejected(operation, e)

        return wrapper

    return decorator


@dataclass
class MatchEngine:
    scheduler: Scheduler
    params: MatchParameters = field(default_factory=MatchParameters)
    rng: random.Random = field(default_factory=random.Random)
    verbose: bool = True

    log_context: LogContext = field(default_factory=LogContext)
    observers: list[Observer] = field(default_factory=list)
    pending_concession: Concession | None = field(default=None, init=False)

    state: GameState = field(init=False)
    history: HistoryBuffer = field(init=False)
    clock: MatchClock = field(init=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        base = logging.getLogger(LOGGER_NAME)
        self._logger = base.getChild(f"engine.{id(self)}")
        self.log_context.engine_id = next(_ENGINE_IDS)

        if self.verbose:
            self._logger.addFilter(ContextFilter(self))

        self.state = GameState.initial(self.params)
        self.history = HistoryBuffer(self.state.current_action)
        self.clock = MatchClock(self, self.scheduler)

    # --- Observers ---
    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register `observer(field, value)`; returns a callable that unsubscribes."""
        self.observers.append(observer)

        def unsubscribe() -> None:
            if observer in self.observers:
                self.observers.remove(observer)

        return unsubscribe

    def notify(self, name: GameStateField | MatchParameterField, value: Any) -> None:
        for observer in list(self.observers):
            observer(name, value)

    def apply(self, name: GameStateField, value: Any) -> None:
        """Single write path into GameState; observers hear about real changes only."""
        attr = GAME_STATE_ATTRS[name]
        if getattr(self.state, attr) == value:
            return
        setattr(self.state, attr, value)
        if name == "forceStopTimer" and value:
            self.clock.disarm()
        self.notify(name, value)

    # --- Derived views ---
    @property
    def phase(self) -> MatchPhase:
        return self.state.phase

    @property
    def turn_holder(self) -> Player:
        return self.state.turn_holder

    @property
    def current_action(self) -> Action:
        return self.state.current_action

    def player_name(self, player: Player) -> str:
        if player is Player.ONE:
            return self.params.player_one_name
        if player is Player.TWO:
            return self.params.player_two_name
        return "nobody"

    # --- Player operations ---
    @guarded("start")
    def start(self, requesting_player: Player) -> Action:
        self._check_start(requesting_player)

        policy = self.params.start_policy
        if policy == "ALWAYS_RANDOM" or (
            policy == "FIRST_GAME_RANDOM" and self.state.is_first_game
        ):
            starter = Player.ONE if self.rng.randint(1, 2) == 1 else Player.TWO
        else:
            starter = requesting_player

        self.log_context.new_game()
        self.apply("forceStopTimer", False)
        self.clock.arm(starter)
        return self._commit(requesting_player, StartPayload(player_to_start=starter))

    @guarded("roll")
    def roll(self, acting_player: Player) -> Action:
        self._check_roll(acting_player)
        die_one = self.rng.randint(1, 6)
        die_two = self.rng.randint(1, 6)
        return self._commit(acting_player, RollPayload(die_one=die_one, die_two=die_two))

    @guarded("offer_double")
    def offer_double(self, acting_player: Player) -> Action:
        self._check_offer_double(acting_player)
        new_value = self.state.current_game_value * 2
        self.clock.arm(acting_player.opponent)
        return self._commit(acting_player, OfferDoublePayload(new_game_value=new_value))

    @guarded("take_double")
    def take_double(self, acting_player: Player) -> Action:
        self._check_take_double(acting_player)
        previous = self.state.current_game_value
        self.apply("currentGameValue", previous * 2)
        self.apply("cubeOwner", acting_player)
        self.clock.arm(acting_player.opponent)
        return self._commit(
            acting_player,
            TakeDoublePayload(
                player_taking=acting_player,
                previous_game_value=previous,
                current_game_value=previous * 2,
            ),
        )

    @guarded("drop_double")
    def drop_double(self, acting_player: Player) -> Action:
        self._check_take_double(acting_player)
        return self._end_game(acting_player.opponent, self.state.current_game_value)

    @guarded("end_turn")
    def end_turn(self, acting_player: Player) -> Action:
        self._check_end_turn(acting_player)
        self.clock.arm(acting_player.opponent)
        return self._commit(acting_player, EndTurnPayload())

    @guarded("propose_concession")
    def propose_concession(self, conceding_player: Player, points: int) -> Concession:
        self._check_concede(conceding_player)
        if points < 1:
            msg = f"A concession must be worth at least 1 point, got {points}"
            raise InvalidTransition(msg)
        self.pending_concession = Concession(conceding_player, points)
        self.log_info(
            f"{conceding_player.repr} offers to concede for {points} point(s); "
            f"waiting on {conceding_player.opponent.repr}",
        )
        return self.pending_concession

    @guarded("accept_concession")
    def accept_concession(self, accepting_player: Player) -> Action:
        pending = self._require_pending_concession()
        if accepting_player is not pending.accepting_player:
            msg = f"Only {pending.accepting_player.repr} can accept this concession"
            raise InvalidTransition(msg)
        self._require_unpaused()
        return self._end_game(accepting_player, pending.points)

    @guarded("reject_concession")
    def reject_concession(self, rejecting_player: Player) -> Concession:
        pending = self._require_pending_concession()
        if rejecting_player is Player.NONE:
            msg = "Player.NONE cannot reject a concession"
            raise InvalidTransition(msg)
        self.pending_concession = None
        self.log_info(f"{rejecting_player.repr} declined the concession")
        return pending

    @guarded("concede_game")
    def concede_game(self, conceding_player: Player) -> Action:
        self._check_concede(conceding_player)
        winner = conceding_player.opponent
        return self._end_game(winner, flow.force_win_points(self, winner), forced=True)

    @guarded("handle_time_expiry")
    def handle_time_expiry(self, player: Player) -> Action:
        """Out of time counts as conceding the whole game."""
        if not self.params.use_timer:
            msg = "Timer is disabled"
            raise FeatureDisabled(msg)
        if not self.state.game_in_progress:
            msg = "No game in progress"
            raise InvalidTransition(msg)
        if player is not derive_clock_owner(self.state.current_action):
            msg = f"{player.repr}'s clock is not running"
            raise InvalidTransition(msg)
        winner = player.opponent
        return self._end_game(winner, flow.force_win_points(self, winner), forced=True)

    # --- Pause / resume ---
    def pause(self) -> None:
        self.pending_concession = None
        self.apply("forceStopTimer", True)
        self.apply("isPaused", True)
        self.log_debug("Paused")

    def resume(self) -> None:
        # Re-arming a running clock would restart its tick and refill the idle reserve.
        if not self.state.is_paused:
            return
        self.apply("isPaused", False)
        owner = derive_clock_owner(self.state.current_action)
        if owner is Player.NONE:
            return
        self.apply("forceStopTimer", False)
        self.clock.arm(owner)
        self.log_debug(f"Resumed with {owner.repr} on the clock")

    # --- Undo / redo ---
    @guarded("undo")
    def undo(self) -> Action:
        if not self.history.can_undo():
            msg = "Nothing to undo"
            raise EmptyHistory(msg)
        self.pause()
        action = self.history.undo()
        self._replay(action)
        self.log_info(f"Undo -> {action.repr}")
        return action

    @guarded("redo")
    def redo(self) -> Action:
        if not self.history.can_redo():
            msg = "Nothing to redo"
            raise EmptyHistory(msg)
        self.pause()
        action = self.history.redo()
        self._replay(action)
        self.log_info(f"Redo -> {action.repr}")
        return action

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    # --- Settings / lifecycle ---
    def configure(self, params: MatchParameters) -> None:
        """Adopt new match parameters from the settings collaborator and reset the match."""
        changes = self.params.changed_fields(params)
        self.params = params
        for name, value in changes:
            self.notify(name, value)
        self.log_info(f"Configured: {params.repr}")
        self.full_reset()

    def full_reset(self) -> None:
        self.pending_concession = None
        self.apply("forceStopTimer", True)
        fresh = GameState.initial(self.params)
        for name in GAME_STATE_ATTRS:
            self.apply(name, fresh.get(name))
        self.history.clear(fresh.current_action)
        self.log_context.reset()

    def serialize(self) -> dict[str, Any]:
        return persistence.serialize(self)

    def restore(self, snapshot: Any) -> bool:
        return persistence.restore(self, snapshot)

    # --- Validity accessors ---
    def can_start(self, player: Player) -> bool:
        return self._passes(self._check_start, player)

    def can_roll(self, player: Player) -> bool:
        return self._passes(self._check_roll, player)

    def can_offer_double(self, player: Player) -> bool:
        return self._passes(self._check_offer_double, player)

    def can_take_double(self, player: Player) -> bool:
        return self._passes(self._check_take_double, player)

    can_drop_double = can_take_double

    def can_end_turn(self, player: Player) -> bool:
        return self._passes(self._check_end_turn, player)

    def can_concede(self, player: Player) -> bool:
        return self._passes(self._check_concede, player)

    def concession_options(self) -> tuple[int, int, int]:
        """Single, gammon and backgammon amounts at the current cube value."""
        value = self.state.current_game_value
        return (value, value * 2, value * 3)

    @staticmethod
    def _passes(check: Callable[[Player], None], player: Player) -> bool:
        try:
            check(player)
        except MatchError:
            return False
        return True

    # --- Validation ---
    def _require_unpaused(self) -> None:
        if self.state.is_paused:
            msg = "Match is paused"
            raise InvalidTransition(msg)

    def _require_player(self, player: Player) -> None:
        if player is Player.NONE:
            msg = "Operation needs player ONE or TWO"
            raise InvalidTransition(msg)

    def _require_phase(self, *phases: MatchPhase) -> None:
        if self.phase not in phases:
            msg = f"Not allowed in phase {self.phase}"
            raise InvalidTransition(msg)

    def _require_pending_concession(self) -> Concession:
        if self.pending_concession is None:
            msg = "No concession is pending"
            raise InvalidTransition(msg)
        return self.pending_concession

    def _check_start(self, player: Player) -> None:
        self._require_unpaused()
        self._require_player(player)
        self._require_phase("NO_GAME")

    def _check_roll(self, player: Player) -> None:
        if not self.params.use_dice:
            msg = "Dice are disabled"
            raise FeatureDisabled(msg)
        self._require_unpaused()
        self._require_player(player)
        # A re-roll replaces the dice on the table.
        self._require_phase(_turn(player), _rolled(player))

    def _check_offer_double(self, player: Player) -> None:
        if not self.params.use_cube:
            msg = "Doubling cube is disabled"
            raise FeatureDisabled(msg)
        self._require_unpaused()
        self._require_player(player)
        self._require_phase(_turn(player))
        owner = self.state.cube_owner
        if owner not in (Player.NONE, player):
            msg = f"Cube is owned by {owner.repr}"
            raise InvalidTransition(msg)

    def _check_take_double(self, player: Player) -> None:
        if not self.params.use_cube:
            msg = "Doubling cube is disabled"
            raise FeatureDisabled(msg)
        self._require_unpaused()
        self._require_player(player)
        self._require_phase(
            "DOUBLE_OFFERED_TO_ONE" if player is Player.ONE else "DOUBLE_OFFERED_TO_TWO",
        )

    def _check_end_turn(self, player: Player) -> None:
        self._require_unpaused()
        self._require_player(player)
        if self.params.use_dice:
            self._require_phase(_rolled(player))
        else:
            self._require_phase(_turn(player), _rolled(player))

    def _check_concede(self, player: Player) -> None:
        self._require_unpaused()
        self._require_player(player)
        if not self.state.game_in_progress:
            msg = "No game in progress"
            raise InvalidTransition(msg)

    # --- Internals ---
    def _end_game(self, winner: Player, points: int, *, forced: bool = False) -> Action:
        payload = flow.award_game(self, winner, points, forced=forced)
        action = self._commit(winner, payload)
        self.log_info(
            f"{self.player_name(winner)} wins the game for {points} point(s)"
            + (" (forced)" if forced else ""),
        )
        return action

    def _commit(self, acting_player: Player, payload: AnyPayload) -> Action:
        action = Action(
            acting_player=acting_player,
            snapshot=self.state.capture_snapshot(),
            payload=payload,
        )
        self.history.push(action)
        self.pending_concession = None
        self.apply("currentAction", action)
        self.log_context.record_action(self.turn_holder.repr)
        self.log_info(action.repr)
        return action

    def _replay(self, action: Action) -> None:
        """Copy a recorded snapshot back into state verbatim."""
        for name, value in snapshot_items(action.snapshot):
            self.apply(name, value)
        self.apply("currentAction", action)
        # Between games there is no clock to hold; the next start needs no resume.
        if derive_clock_owner(action) is Player.NONE:
            self.apply("isPaused", False)
        self.log_context.record_action(self.turn_holder.repr)

    # -- Logging --
    def _log(self, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
        """Core logging helper; respects engine verbosity."""
        if not self.verbose:
            return
        self._logger.log(level, msg, *args, **kwargs)

    def log_debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def log_info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, *args, **kwargs)

    def log_warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, *args, **kwargs)

    def log_error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, *args, **kwargs)


def _turn(player: Player) -> MatchPhase:
    return "PLAYER_ONE_TURN" if player is Player.ONE else "PLAYER_TWO_TURN"


def _rolled(player: Player) -> MatchPhase:
    return "PLAYER_ONE_ROLLED" if player is Player.ONE else "PLAYER_TWO_ROLLED"

from __future__ import annotations

from dataclasses import dataclass, field
from functools import partial
from typing import TYPE_CHECKING

from backgammon_clock.core.formatting import format_reserve_time, format_total_time
from backgammon_clock.core.types import ONE_SECOND_IN_MS, Player

if TYPE_CHECKING:
    from backgammon_clock.engine.match_engine import MatchEngine
    from backgammon_clock.engine.scheduling import Scheduler, TimerHandle


@dataclass
class MatchClock:
    """
    Drift-corrected countdown for whichever single player is armed.

    Each tick schedules the next one 1000ms after the previous *expected*
    fire time, so late callbacks do not accumulate error over a long turn.
    A tick re-checks `forceStopTimer` and its arming generation on entry;
    a tick that was already in flight when the clock was paused, disarmed
    or re-armed becomes a no-op.
    """

    engine: MatchEngine
    scheduler: Scheduler
    armed: Player = Player.NONE
    expected_ms: float | None = None
    generation: int = 0
    handles: dict[Player, TimerHandle | None] = field(
        default_factory=lambda: {Player.ONE: None, Player.TWO: None},
    )

    @property
    def running(self) -> bool:
        return self.armed is not Player.NONE

    def arm(self, player: Player) -> None:
        """Start `player`'s clock; stops the other side and refills its reserve."""
        if player is Player.NONE:
            msg = "Cannot arm the clock for Player.NONE"
            raise ValueError(msg)
        engine = self.engine
        if not engine.params.use_timer:
            return

        self._cancel_handles()
        self.generation += 1

        # Reserve is use-it-or-lose-it: the side going idle gets a full allotment back.
        engine.apply(
            engine.state.field_for(player.opponent, "ReserveTimeRemainingMs"),
            engine.params.reserve_time_ms,
        )

        self.armed = player
        self.expected_ms = self.scheduler.now_ms() + ONE_SECOND_IN_MS
        self.handles[player] = self.scheduler.call_later(
            ONE_SECOND_IN_MS,
            partial(self._tick, player, self.generation),
        )
        engine.log_debug(
            f"Clock armed for {player.repr}: reserve "
            f"{format_reserve_time(engine.state.reserve_ms(player))} total "
            f"{format_total_time(engine.state.total_ms(player))}",
        )

    def disarm(self) -> None:
        self._cancel_handles()
        self.generation += 1
        if self.armed is not Player.NONE:
            self.engine.log_debug(f"Clock disarmed for {self.armed.repr}")
        self.armed = Player.NONE
        self.expected_ms = None

    def _cancel_handles(self) -> None:
        for player, handle in self.handles.items():
            if handle is not None:
                handle.cancel()
                self.handles[player] = None

    def _tick(self, player: Player, generation: int) -> None:
        engine = self.engine
        state = engine.state
        if state.force_stop_timer or generation != self.generation:
            return
        self.handles[player] = None

        reserve = state.reserve_ms(player)
        if reserve > 0:
            engine.apply(
                state.field_for(player, "ReserveTimeRemainingMs"),
                max(0, reserve - ONE_SECOND_IN_MS),
            )
        else:
            total = max(0, state.total_ms(player) - ONE_SECOND_IN_MS)
            engine.apply(state.field_for(player, "TotalTimeRemainingMs"), total)
            if total <= 0:
                engine.log_warning(f"!!! {player.repr} ran out of time !!!")
                self.disarm()
                _ = engine.handle_time_expiry(player)
                return

        now = self.scheduler.now_ms()
        expected = self.expected_ms if self.expected_ms is not None else now
        drift = now - expected
        self.expected_ms = expected + ONE_SECOND_IN_MS
        self.handles[player] = self.scheduler.call_later(
            max(0.0, ONE_SECOND_IN_MS - drift),
            partial(self._tick, player, generation),
        )

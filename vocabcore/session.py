"""
This module defines PracticeSession, the host that owns a Scheduler for one
deck and one user. It loads cards from the storage collaborator, drives the
periodic tick, serializes every dispatch behind a single lock, and writes
review outcomes back through the store.
"""

import logging
import threading
from datetime import datetime
from typing import (
    Any,
    Callable,
    List,
    Optional,
    Protocol,
    Tuple,
)
from uuid import UUID

from .constants import SWIPE_TRANSITION_SECONDS, TICK_INTERVAL_SECONDS
from .models import CardProgress, ReviewOutcome, VocabularyCard
from .progress import build_practice_cards
from .scheduler import (
    PracticeStatus,
    Scheduler,
    SchedulerConfig,
    SchedulerState,
    current_time_ms,
)
from .timer import RepeatingTimer, defer

logger = logging.getLogger(__name__)

StateListener = Callable[[SchedulerState], None]


class CardStore(Protocol):
    """The storage operations a practice session relies on."""

    def load_cards(
        self, deck_id: UUID, user_id: str
    ) -> Tuple[List[VocabularyCard], List[CardProgress]]: ...

    def persist_review(
        self,
        user_id: str,
        card_id: UUID,
        deck_id: UUID,
        new_health: int,
        reviewed_at: datetime,
    ) -> CardProgress: ...


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class PracticeSession:
    """
    Hosts a practice session for one deck and one user.

    This class is responsible for:
    - Loading the deck from the store and deriving cooldowns.
    - Owning the 1 Hz tick timer for the lifetime of the session.
    - Applying user input and ticks one at a time.
    - Ignoring a new answer while the previous exit transition is pending.
    - Persisting every review outcome.
    - Handing storage errors from deferred answers back to the caller.
    """

    def __init__(
        self,
        store: CardStore,
        deck_id: UUID,
        user_id: str,
        config: Optional[SchedulerConfig] = None,
        clock: Callable[[], int] = current_time_ms,
        tick_interval: float = TICK_INTERVAL_SECONDS,
        transition_seconds: float = SWIPE_TRANSITION_SECONDS,
        timer_factory: Callable[
            [float, Callable[[], None]], Any
        ] = RepeatingTimer,
        defer_factory: Callable[
            [float, Callable[[], None]], Cancellable
        ] = defer,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        self.store = store
        self.deck_id = deck_id
        self.user_id = user_id
        self.scheduler = Scheduler(config=config, clock=clock)
        self._clock = clock
        self._tick_interval = tick_interval
        self._transition_seconds = transition_seconds
        self._timer_factory = timer_factory
        self._defer_factory = defer_factory
        self._lock = threading.RLock()
        self._listeners: List[StateListener] = []
        self._timer: Optional[Any] = None
        self._pending_answer: Optional[Cancellable] = None
        self._on_error = on_error
        self._deferred_error: Optional[Exception] = None

    # --- Lifecycle ---

    def open(self) -> SchedulerState:
        """Load the deck and start the tick timer."""
        logger.info(
            f"Opening practice session for deck {self.deck_id} "
            f"(user {self.user_id})."
        )
        state = self.refresh()
        if self._timer is None:
            self._timer = self._timer_factory(
                self._tick_interval, self._on_tick
            )
            self._timer.start()
        return state

    def close(self) -> None:
        """
        Stop practising and cancel every timer. Safe in any state; raises a
        storage error left over from a deferred answer, if any.
        """
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._cancel_pending_answer()
        with self._lock:
            self._apply(self.scheduler.stop_practice)
        logger.info(f"Closed practice session for deck {self.deck_id}.")
        self._raise_deferred_error()

    def __enter__(self) -> "PracticeSession":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # --- State access ---

    @property
    def state(self) -> SchedulerState:
        return self.scheduler.state

    @property
    def status(self) -> PracticeStatus:
        return self.scheduler.status

    def now(self) -> int:
        """Current time in epoch ms, from the session clock."""
        return self._clock()

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register a listener called with each new state. Listeners are not
        called when a command leaves the state unchanged.

        Returns a function that removes the listener.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _apply(self, operation: Callable[..., SchedulerState], *args):
        """Run one scheduler operation and notify listeners on change.
        Caller must hold the lock."""
        before = self.scheduler.state
        after = operation(*args)
        if after is not before:
            for listener in list(self._listeners):
                listener(after)
        return after

    # --- Operations ---

    def refresh(self, ignore_cooldown: bool = False) -> SchedulerState:
        """
        Re-read the deck from the store and replace the scheduler's cards.

        A pending answer is dropped first. Storage errors propagate and
        otherwise leave the state as it was.
        """
        with self._lock:
            # A pending answer belongs to the card on screen before the reload.
            self._cancel_pending_answer()
            self._apply(self.scheduler.set_swipe, None)
        cards, progress = self.store.load_cards(self.deck_id, self.user_id)
        with self._lock:
            now = self._clock()
            practice_cards = build_practice_cards(
                cards,
                progress,
                now_ms=now,
                cooldown_ms=self.scheduler.config.cooldown_ms,
                ignore_cooldown=ignore_cooldown,
            )
            state = self._apply(self.scheduler.load, practice_cards, now)
        logger.info(
            f"Loaded {len(practice_cards)} cards for deck {self.deck_id}: "
            f"{len(state.practice_queue)} ready, "
            f"{len(state.cooldown_list)} resting."
        )
        return state

    def start(self) -> SchedulerState:
        with self._lock:
            return self._apply(self.scheduler.start_practice)

    def stop(self) -> SchedulerState:
        self._cancel_pending_answer()
        with self._lock:
            return self._apply(self.scheduler.stop_practice)

    def flip(self) -> SchedulerState:
        with self._lock:
            return self._apply(self.scheduler.flip)

    def set_grind_mode(self, value: bool) -> SchedulerState:
        with self._lock:
            return self._apply(self.scheduler.set_grind_mode, value)

    def tick(self) -> SchedulerState:
        with self._lock:
            return self._apply(self.scheduler.tick, self._clock())

    def _on_tick(self) -> None:
        self.tick()

    def request_answer(self, known: bool) -> bool:
        """
        Start answering the current card.

        The answer is applied after the exit transition; with a zero
        transition it is applied before this method returns. Returns False
        when the request was ignored: nothing is presented, or the previous
        answer is still in its transition.

        A storage error from an earlier deferred answer is raised here (or
        from ``close()``) unless an ``on_error`` callback took it.
        """
        self._raise_deferred_error()
        with self._lock:
            state = self.scheduler.state
            if not state.is_practicing or state.current_card is None:
                return False
            if state.swipe_direction is not None:
                logger.debug("Ignoring answer while a transition is pending.")
                return False
            self._apply(self.scheduler.set_swipe, "right" if known else "left")
            if self._transition_seconds > 0:
                self._pending_answer = self._defer_factory(
                    self._transition_seconds,
                    lambda: self._complete_deferred(known),
                )
                return True

        self._complete_answer(known)
        return True

    def _complete_deferred(self, known: bool) -> Optional[ReviewOutcome]:
        """
        Complete an answer on the transition timer thread. Errors go to
        ``on_error``, or are kept for the next ``request_answer``/``close``.
        """
        try:
            return self._complete_answer(known)
        except Exception as e:
            if self._on_error is not None:
                self._on_error(e)
            else:
                with self._lock:
                    self._deferred_error = e
            return None

    def _raise_deferred_error(self) -> None:
        with self._lock:
            error, self._deferred_error = self._deferred_error, None
        if error is not None:
            raise error

    def _cancel_pending_answer(self) -> None:
        pending = self._pending_answer
        self._pending_answer = None
        if pending is not None:
            pending.cancel()

    def _complete_answer(self, known: bool) -> Optional[ReviewOutcome]:
        with self._lock:
            self._pending_answer = None
            before = self.scheduler.state
            if before.swipe_direction is None:
                # Stopped while the transition was running.
                return None
            outcome = self.scheduler.answer(known, now=self._clock())
            self.scheduler.set_swipe(None)
            after = self.scheduler.state
            if after is not before:
                for listener in list(self._listeners):
                    listener(after)
            round_finished = (
                after.grind_mode
                and after.is_practicing
                and not after.practice_queue
            )

        if outcome is not None:
            self._persist(outcome)
        if round_finished:
            logger.info("Grind round finished, reloading the deck.")
            self.refresh(ignore_cooldown=True)
        return outcome

    def _persist(self, outcome: ReviewOutcome) -> CardProgress:
        try:
            return self.store.persist_review(
                user_id=self.user_id,
                card_id=UUID(outcome.card_id),
                deck_id=self.deck_id,
                new_health=outcome.new_health,
                reviewed_at=outcome.reviewed_at_datetime,
            )
        except Exception:
            logger.exception(
                f"Failed to save review of card {outcome.card_id}"
            )
            raise


# --- View helpers ---


def format_cooldown(ms: Optional[int]) -> str:
    """Render a remaining rest period, e.g. ``4m 5s`` or ``12s``."""
    if ms is None:
        return "soon"
    minutes = ms // 60000
    seconds = (ms % 60000) // 1000
    if minutes <= 0 and seconds <= 0:
        return "soon"
    return f"{minutes}m {seconds}s" if minutes > 0 else f"{seconds}s"


def next_cooldown_ms(state: SchedulerState, now_ms: int) -> Optional[int]:
    """Milliseconds until the next resting card becomes eligible."""
    deadlines = [
        c.cooldown_until
        for c in state.cooldown_list
        if c.cooldown_until is not None
    ]
    if not deadlines:
        return None
    return max(0, min(deadlines) - now_ms)


def card_position(state: SchedulerState) -> Tuple[int, int]:
    """(position, total) of the current card within the practice queue."""
    total = len(state.practice_queue)
    current = state.current_card
    if current is None:
        return 0, total
    for index, card in enumerate(state.practice_queue):
        if card.id == current.id:
            return index + 1, total
    return 1, max(total, 1)

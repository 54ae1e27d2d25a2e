"""Study session state machine.

A session walks a queue of cards through ``PRESENTING -> REVEALED -> rated``
until the queue runs out and a summary is produced. Inputs are fed in from
outside (``reveal``, ``rate``, ``shuffle``, ``restart``, ``hard_reset``), so a
whole session can be driven without any UI.
"""
import logging
import random
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

from vocabsrs import monitoring
from vocabsrs.config import settings
from vocabsrs.models.srs_models import (
    CardState,
    Rating,
    SessionStats,
    SessionSummary,
    StudyMode,
    VocabCard,
    ensure_utc,
)
from vocabsrs.services import scheduler
from vocabsrs.services.card_state_store import CardStateStore
from vocabsrs.services.queue_builder import build_queue, shuffle_queue

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class SessionPhase(Enum):
    """Phases of a study session."""
    NOT_STARTED = "not_started"
    PRESENTING = "presenting"  # front of the current card is shown
    REVEALED = "revealed"  # answer shown, waiting for a rating
    COMPLETE = "complete"  # summary produced, terminal
    EMPTY = "empty"  # nothing to study


class InvalidTransitionError(RuntimeError):
    """Raised when an input is not accepted in the current phase."""


class SessionController:
    """Drive one study session for a (list, mode) pair."""

    def __init__(
        self,
        list_id: str,
        mode: StudyMode,
        cards: Sequence[VocabCard],
        store: CardStateStore,
        clock: Optional[Clock] = None,
        max_new: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        self.list_id = list_id
        self.mode = StudyMode(mode)
        self.cards = list(cards)
        self.store = store
        self.clock = clock or utc_now
        self.max_new = settings.scheduling.max_new_cards if max_new is None else max_new
        self.rng = rng

        self.phase = SessionPhase.NOT_STARTED
        self.states: Dict[str, CardState] = {}
        self.queue: List[VocabCard] = []
        self.index = 0
        self.stats = SessionStats()
        self.summary: Optional[SessionSummary] = None
        self.degraded = False
        self.warnings: List[str] = []
        self._touched: Set[str] = set()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    @property
    def current_card(self) -> Optional[VocabCard]:
        if self.phase in (SessionPhase.PRESENTING, SessionPhase.REVEALED):
            return self.queue[self.index]
        return None

    @property
    def is_empty(self) -> bool:
        """True when there is nothing to study for this (list, mode)."""
        return self.phase is SessionPhase.EMPTY

    @property
    def is_complete(self) -> bool:
        return self.phase is SessionPhase.COMPLETE

    @property
    def remaining(self) -> int:
        if self.phase in (SessionPhase.PRESENTING, SessionPhase.REVEALED):
            return len(self.queue) - self.index
        return 0

    @property
    def progress(self) -> int:
        """Percentage of this session's cards already rated."""
        rated = self.stats.total
        if rated + self.remaining == 0:
            return 0
        return scheduler.round_half_up(rated / (rated + self.remaining) * 100)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------
    def start(self) -> SessionPhase:
        """Load state and build the queue for a fresh session."""
        self.degraded = False
        self.warnings = []
        self.states = self.store.load(self.list_id, self.mode)
        self._begin(build_queue(self.cards, self.states, self.clock(), self.max_new))
        monitoring.sessions_started.labels(mode=self.mode.value).inc()
        logger.info(
            f"Session started for {self.list_id}:{self.mode.value} "
            f"with {len(self.queue)} cards ({len(self.states)} known)"
        )
        return self.phase

    def reveal(self) -> VocabCard:
        """Show the answer side of the current card."""
        self._require(SessionPhase.PRESENTING, SessionPhase.REVEALED, action="reveal")
        self.phase = SessionPhase.REVEALED
        return self.queue[self.index]

    def rate(self, quality: Any) -> CardState:
        """Apply a rating to the current card, persist, and advance."""
        self._require(SessionPhase.REVEALED, action="rate")
        rating = Rating.parse(quality)
        card = self.queue[self.index]
        now = self.clock()

        existing = self.states.get(card.id) or CardState.initial(
            card.id, settings.scheduling.initial_ease
        )
        updated = scheduler.apply(existing, rating, now)
        self.states[card.id] = updated
        self._touched.add(card.id)
        self.stats.record(rating)

        monitoring.reviews.labels(mode=self.mode.value, rating=rating.label).inc()
        if rating < scheduler.REMEMBERED_THRESHOLD:
            monitoring.lapses.labels(mode=self.mode.value).inc()
        logger.debug(
            f"Rated {card.id} as {rating.label}: interval {existing.interval} -> {updated.interval}, "
            f"ease {existing.ease_factor:.2f} -> {updated.ease_factor:.2f}"
        )

        if not self.store.save(self.list_id, self.mode, self.states):
            self._warn("Progress could not be saved; this session continues in memory only")

        self.index += 1
        if self.index >= len(self.queue):
            self._complete(now)
        else:
            self.phase = SessionPhase.PRESENTING
        return updated

    def shuffle(self) -> List[VocabCard]:
        """Randomly reorder the cards that have not been rated yet."""
        self._require(SessionPhase.PRESENTING, SessionPhase.REVEALED, action="shuffle")
        self.queue = shuffle_queue(self.queue[self.index:], self.rng)
        self.index = 0
        self.phase = SessionPhase.PRESENTING
        return list(self.queue)

    def restart(self) -> SessionPhase:
        """Reload persisted state and start over with a rebuilt queue."""
        logger.info(f"Restarting session for {self.list_id}:{self.mode.value}")
        return self.start()

    def hard_reset(self) -> SessionPhase:
        """Forget all progress for this (list, mode) and start as if nothing was reviewed."""
        if self.store.reset(self.list_id, self.mode):
            self.degraded = False
            self.warnings = []
        else:
            self._warn("Stored progress could not be cleared; it may reappear next session")
        monitoring.progress_resets.labels(mode=self.mode.value).inc()
        self.states = {}
        self._begin(build_queue(self.cards, self.states, self.clock(), self.max_new))
        return self.phase

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _begin(self, queue: List[VocabCard]) -> None:
        self.queue = queue
        self.index = 0
        self.stats = SessionStats()
        self.summary = None
        self._touched = set()
        self.phase = SessionPhase.PRESENTING if queue else SessionPhase.EMPTY
        if not queue:
            logger.info(f"Nothing to study for {self.list_id}:{self.mode.value}")

    def _complete(self, now: datetime) -> None:
        now = ensure_utc(now)
        upcoming = [
            self.states[word_id].next_review
            for word_id in self._touched
            if self.states[word_id].next_review > now
        ]
        self.summary = SessionSummary(
            total=self.stats.total,
            hard=self.stats.hard,
            good=self.stats.good,
            easy=self.stats.easy,
            next_due=min(upcoming) if upcoming else None,
            persisted=not self.degraded,
        )
        self.phase = SessionPhase.COMPLETE
        monitoring.sessions_completed.labels(mode=self.mode.value).inc()
        logger.info(
            f"Session complete for {self.list_id}:{self.mode.value}: "
            f"{self.summary.total} reviewed ({self.summary.hard} hard, "
            f"{self.summary.good} good, {self.summary.easy} easy)"
        )

    def _warn(self, message: str) -> None:
        self.degraded = True
        if message not in self.warnings:
            self.warnings.append(message)
        logger.warning(f"{self.list_id}:{self.mode.value}: {message}")

    def _require(self, *phases: SessionPhase, action: str) -> None:
        if self.phase not in phases:
            raise InvalidTransitionError(f"Cannot {action} while session is {self.phase.value}")

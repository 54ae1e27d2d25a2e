"""Study deck: one card pool scheduled independently per study mode."""
import json
import logging
import random
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Union

from vocabsrs.config import settings
from vocabsrs.models.srs_models import CardState, DeckOverview, StudyMode, VocabCard, ensure_utc
from vocabsrs.services.card_state_store import CardStateStore
from vocabsrs.services.queue_builder import build_queue
from vocabsrs.services.scheduler import round_half_up
from vocabsrs.services.session_controller import Clock, SessionController, utc_now

logger = logging.getLogger(__name__)


def resolve_deck_path(path: Union[str, Path]) -> Path:
    """Return *path*, falling back to the configured decks directory for bare names."""
    candidate = Path(path)
    if candidate.exists() or candidate.is_absolute():
        return candidate
    for name in (candidate, candidate.with_suffix(".json")):
        in_decks = settings.paths.decks_dir / name
        if in_decks.exists():
            return in_decks
    return candidate


def load_cards(path: Union[str, Path]) -> List[VocabCard]:
    """Load vocabulary cards from a JSON file holding a list of records."""
    path = resolve_deck_path(path)
    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if isinstance(payload, dict):
        payload = payload.get("items", payload.get("vocabularyItems", []))
    if not isinstance(payload, list) or not all(isinstance(record, dict) for record in payload):
        raise ValueError(f"{path} does not contain a list of vocabulary records")
    cards = [VocabCard.from_dict(record) for record in payload]
    logger.info(f"Loaded {len(cards)} cards from {path}")
    return cards


class StudyDeck:
    """Mode selector over a shared card pool.

    Every mode reads and writes its own storage key, so switching direction
    never mixes progress between recognition and production practice.
    """

    def __init__(
        self,
        list_id: str,
        cards: Sequence[VocabCard],
        store: CardStateStore,
        clock: Optional[Clock] = None,
        max_new: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        self.list_id = list_id
        self.cards = list(cards)
        self.store = store
        self.clock = clock or utc_now
        self.max_new = settings.scheduling.max_new_cards if max_new is None else max_new
        self.rng = rng
        self.active: Optional[SessionController] = None

    def session(self, mode: Union[StudyMode, str]) -> SessionController:
        """Start a session for *mode* and make it the active one."""
        controller = SessionController(
            self.list_id,
            StudyMode(mode),
            self.cards,
            self.store,
            clock=self.clock,
            max_new=self.max_new,
            rng=self.rng,
        )
        controller.start()
        self.active = controller
        return controller

    def switch_mode(self, mode: Optional[Union[StudyMode, str]] = None) -> SessionController:
        """Abandon the active session and start one for *mode* (default: the other mode)."""
        if mode is None:
            if self.active is None:
                raise ValueError("No active session to switch from")
            mode = self.active.mode.other
        logger.info(f"Switching {self.list_id} to {StudyMode(mode).value}")
        return self.session(mode)

    def states(self, mode: Union[StudyMode, str]) -> Dict[str, CardState]:
        return self.store.load(self.list_id, mode)

    def progress(self, mode: Union[StudyMode, str]) -> int:
        """Percentage of this list's cards successfully reviewed at least once in *mode*."""
        return self._progress(self.states(mode))

    def next_due(self, mode: Union[StudyMode, str], now: Optional[datetime] = None) -> Optional[datetime]:
        """Earliest future review time across the list, or None."""
        return self._next_due(self.states(mode), ensure_utc(now or self.clock()))

    def overview(self, mode: Union[StudyMode, str]) -> DeckOverview:
        """Counts for the deck screen, including the next review when caught up."""
        mode = StudyMode(mode)
        now = ensure_utc(self.clock())
        states = self.states(mode)
        queue = build_queue(self.cards, states, now, self.max_new)
        new_available = sum(1 for card in queue if card.id not in states)
        return DeckOverview(
            mode=mode,
            total_cards=len({card.id for card in self.cards}),
            due=len(queue) - new_available,
            new_available=new_available,
            next_due=self._next_due(states, now),
            progress=self._progress(states),
        )

    def _progress(self, states: Mapping[str, CardState]) -> int:
        card_ids = {card.id for card in self.cards}
        if not card_ids:
            return 0
        seen = sum(1 for word_id, state in states.items() if word_id in card_ids and state.repetitions > 0)
        return round_half_up(seen / len(card_ids) * 100)

    def _next_due(self, states: Mapping[str, CardState], now: datetime) -> Optional[datetime]:
        card_ids = {card.id for card in self.cards}
        upcoming = [
            state.next_review
            for word_id, state in states.items()
            if word_id in card_ids and state.next_review > now
        ]
        return min(upcoming) if upcoming else None

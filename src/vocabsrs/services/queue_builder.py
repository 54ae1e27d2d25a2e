"""Selection and ordering of the cards shown in one study session."""
import logging
import random
from datetime import datetime
from typing import List, Mapping, Optional, Sequence

from vocabsrs.config import settings
from vocabsrs.models.srs_models import CardState, VocabCard, ensure_utc

logger = logging.getLogger(__name__)


def build_queue(
    cards: Sequence[VocabCard],
    states: Mapping[str, CardState],
    now: datetime,
    max_new: Optional[int] = None,
) -> List[VocabCard]:
    """Build the working set for a session: every due card, then capped new cards.

    Due cards always come first so a review backlog is fully exposed before
    new material is introduced. Both groups keep the order of *cards*.
    """
    if max_new is None:
        max_new = settings.scheduling.max_new_cards
    now = ensure_utc(now)

    due: List[VocabCard] = []
    new_cards: List[VocabCard] = []
    seen = set()
    for card in cards:
        if card.id in seen:
            continue
        seen.add(card.id)

        state = states.get(card.id)
        if state is None:
            if len(new_cards) < max_new:
                new_cards.append(card)
        elif state.is_due(now):
            due.append(card)

    logger.debug(f"Built queue with {len(due)} due and {len(new_cards)} new cards")
    return due + new_cards


def shuffle_queue(queue: Sequence[VocabCard], rng: Optional[random.Random] = None) -> List[VocabCard]:
    """Return a uniformly random permutation of *queue* (Fisher-Yates)."""
    shuffled = list(queue)
    (rng or random).shuffle(shuffled)
    return shuffled

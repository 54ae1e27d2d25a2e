"""Interval growth algorithm (SM-2 over a three-point rating scale).

The first two successful reviews use fixed onboarding intervals of one and
six days. From the third success on, the interval grows by the card's ease
factor. Any rating below the remembered threshold is a lapse: repetitions and
interval collapse, and the ease factor is recomputed by the same formula as
for a success, so it decays instead of resetting.
"""
import math
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

from vocabsrs.config import MIN_EASE
from vocabsrs.models.srs_models import CardState, Rating, truncate_to_millis

REMEMBERED_THRESHOLD = 3
ONBOARDING_INTERVALS = (1, 6)  # days after the first and second success
LAPSE_INTERVAL = 1


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values, unlike the builtin round."""
    return math.floor(value + 0.5)


def next_ease(ease_factor: float, quality: int) -> float:
    """Ease factor after a rating of *quality*, never below MIN_EASE."""
    miss = 5 - quality
    return max(MIN_EASE, ease_factor + 0.1 - miss * (0.08 + miss * 0.02))


def next_interval(state: CardState, quality: int, ease_factor: float) -> tuple[int, int]:
    """Return (interval, repetitions) after a rating of *quality*."""
    if quality < REMEMBERED_THRESHOLD:
        return LAPSE_INTERVAL, 0

    repetitions = state.repetitions + 1
    if repetitions <= len(ONBOARDING_INTERVALS):
        return ONBOARDING_INTERVALS[repetitions - 1], repetitions
    return round_half_up(state.interval * ease_factor), repetitions


def apply(state: CardState, quality: Any, now: datetime) -> CardState:
    """Apply a rating to *state* reviewed at *now* and return the new state.

    *state* is left untouched. Raises ValueError for ratings outside {1, 3, 5}.
    """
    rating = Rating.parse(quality)
    ease_factor = next_ease(state.ease_factor, rating.value)
    interval, repetitions = next_interval(state, rating.value, ease_factor)
    reviewed_at = truncate_to_millis(now)

    return replace(
        state,
        interval=interval,
        repetitions=repetitions,
        ease_factor=ease_factor,
        next_review=reviewed_at + timedelta(days=interval),
        last_quality=rating.value,
    )

"""Models for spaced repetition data structures."""
import math
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum, IntEnum
from typing import Any, Dict, Mapping, Optional, Tuple

from vocabsrs.config import INITIAL_EASE, MIN_EASE

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
MILLISECOND = timedelta(milliseconds=1)


class PersistenceCorruptError(ValueError):
    """Raised when a persisted card state record cannot be parsed."""


def ensure_utc(value: datetime) -> datetime:
    """Normalise *value* to a timezone aware UTC datetime."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def truncate_to_millis(value: datetime) -> datetime:
    """Drop sub-millisecond precision so timestamps survive persistence unchanged."""
    value = ensure_utc(value)
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def to_millis(value: datetime) -> int:
    """Convert a datetime into epoch milliseconds."""
    return (ensure_utc(value) - EPOCH) // MILLISECOND


def from_millis(value: int) -> datetime:
    """Convert epoch milliseconds into a UTC datetime."""
    return EPOCH + timedelta(milliseconds=value)


class StudyMode(str, Enum):
    """Study direction. Each mode keeps its own schedule for the same cards."""
    FORWARD = "forward"  # primary text -> translation (recognition)
    REVERSE = "reverse"  # translation -> primary text (production)

    @property
    def other(self) -> "StudyMode":
        """The opposite study direction."""
        return StudyMode.REVERSE if self is StudyMode.FORWARD else StudyMode.FORWARD


class Rating(IntEnum):
    """Three-point discretization of the classical 0-5 recall scale."""
    HARD = 1
    GOOD = 3
    EASY = 5

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, value: Any) -> "Rating":
        """Accept a Rating, its integer value or its label."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            text = value.strip().lower()
            if text.isdigit():
                return cls(int(text))
            try:
                return cls[text.upper()]
            except KeyError:
                raise ValueError(f"Unknown rating: {value!r}") from None
        if isinstance(value, bool):
            raise ValueError(f"Unknown rating: {value!r}")
        return cls(value)


@dataclass(frozen=True)
class VocabCard:
    """A vocabulary entry supplied read-only by the vocabulary list."""
    id: str
    text: str
    secondary: Tuple[str, ...] = ()
    translations: Tuple[str, ...] = ()
    level: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VocabCard":
        """Build a card from an external vocabulary record."""
        card_id = data.get("id")
        text = data.get("text") or data.get("simplified")
        if card_id in (None, "") or not text:
            raise ValueError("Vocabulary records need an id and a text")

        secondary = data.get("secondary")
        if secondary is None:
            secondary = [data.get("traditional"), data.get("pinyin")]
        if isinstance(secondary, str):
            secondary = [secondary]

        translations = data.get("translations", data.get("englishDefinitions", ()))
        if isinstance(translations, str):
            translations = [translations]

        level = data.get("level", data.get("hskLevel"))
        return cls(
            id=str(card_id),
            text=str(text),
            secondary=tuple(str(s) for s in secondary if s),
            translations=tuple(str(t) for t in translations if t),
            level=int(level) if level is not None else None,
        )


@dataclass
class CardState:
    """Scheduling metadata for one card under one study mode."""
    word_id: str
    interval: int = 0  # days
    repetitions: int = 0  # consecutive successful reviews
    ease_factor: float = INITIAL_EASE
    next_review: datetime = EPOCH
    last_quality: int = 0

    @classmethod
    def initial(cls, word_id: str, ease_factor: float = INITIAL_EASE) -> "CardState":
        """State used for a card that has never been rated."""
        return cls(word_id=word_id, ease_factor=ease_factor)

    def is_due(self, now: datetime) -> bool:
        return self.next_review <= ensure_utc(now)

    def to_record(self) -> Dict[str, Any]:
        """Serialize into the flat persisted record."""
        return {
            "interval": self.interval,
            "repetitions": self.repetitions,
            "easeFactor": self.ease_factor,
            "nextReview": to_millis(self.next_review),
            "lastQuality": self.last_quality,
        }

    @classmethod
    def from_record(cls, word_id: str, record: Any) -> "CardState":
        """Parse a persisted record, raising PersistenceCorruptError when it is unusable."""
        if not isinstance(record, Mapping):
            raise PersistenceCorruptError(f"Record for {word_id} is not an object")
        try:
            interval = _as_int(record["interval"])
            repetitions = _as_int(record["repetitions"])
            ease_factor = float(record["easeFactor"])
            next_review = from_millis(_as_int(record["nextReview"]))
            last_quality = _as_int(record.get("lastQuality", 0))
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            raise PersistenceCorruptError(f"Record for {word_id} is malformed: {e}") from e

        if interval < 0 or repetitions < 0 or not math.isfinite(ease_factor):
            raise PersistenceCorruptError(f"Record for {word_id} has out of range values")

        return cls(
            word_id=str(word_id),
            interval=interval,
            repetitions=repetitions,
            ease_factor=max(MIN_EASE, ease_factor),
            next_review=next_review,
            last_quality=last_quality,
        )


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("booleans are not numbers here")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"{value} is not a whole number")
        return int(value)
    return int(value)


@dataclass
class SessionStats:
    """Running counts of ratings issued in the current session."""
    hard: int = 0
    good: int = 0
    easy: int = 0

    def record(self, rating: Rating) -> None:
        setattr(self, rating.label, getattr(self, rating.label) + 1)

    @property
    def total(self) -> int:
        return self.hard + self.good + self.easy


@dataclass(frozen=True)
class SessionSummary:
    """Terminal artifact produced once a session runs out of cards."""
    total: int
    hard: int
    good: int
    easy: int
    next_due: Optional[datetime] = None
    persisted: bool = True


@dataclass(frozen=True)
class DeckOverview:
    """Snapshot of one (list, mode) schedule."""
    mode: StudyMode
    total_cards: int
    due: int
    new_available: int
    next_due: Optional[datetime] = None
    progress: int = 0

    @property
    def caught_up(self) -> bool:
        return self.due == 0 and self.new_available == 0


"""Terminal driver: study one vocabulary list from a JSON file."""
import logging
import sys
from pathlib import Path
from typing import List, Optional

from vocabsrs.config import ensure_directories, settings
from vocabsrs.logging_config import setup_logging
from vocabsrs.models.base import SessionLocal, init_db
from vocabsrs.models.srs_models import StudyMode, VocabCard
from vocabsrs.monitoring import start_monitoring
from vocabsrs.services.card_state_store import CardStateStore
from vocabsrs.services.deck_service import StudyDeck, load_cards
from vocabsrs.services.session_controller import SessionController
from vocabsrs.services.storage import SqlStorage

logger = logging.getLogger(__name__)

USAGE = "usage: python -m vocabsrs DECK.json [forward|reverse]"


def prompt_side(card: VocabCard, mode: StudyMode) -> str:
    """Text shown before the answer is revealed."""
    if mode is StudyMode.FORWARD:
        return card.text
    return "; ".join(card.translations) or card.text


def answer_side(card: VocabCard, mode: StudyMode) -> str:
    if mode is StudyMode.FORWARD:
        parts = list(card.secondary) + ["; ".join(card.translations)]
    else:
        parts = [card.text] + list(card.secondary)
    return " | ".join(part for part in parts if part)


def run_session(controller: SessionController) -> None:
    """Feed terminal input into the session until it completes or the user quits."""
    while controller.current_card is not None:
        card = controller.current_card
        print(f"\n[{controller.remaining} left] {prompt_side(card, controller.mode)}")
        command = input("(r)eveal, (s)huffle, (q)uit > ").strip().lower()
        if command == "q":
            return
        if command == "s":
            controller.shuffle()
            continue
        controller.reveal()
        print(f"  -> {answer_side(card, controller.mode)}")
        while True:
            choice = input("rate 1 (hard) / 3 (good) / 5 (easy) > ").strip()
            try:
                controller.rate(choice)
                break
            except ValueError:
                print("Please answer 1, 3 or 5.")
        for warning in controller.warnings:
            print(f"warning: {warning}")

    summary = controller.summary
    if summary is not None:
        print(f"\nSession complete: {summary.total} cards reviewed")
        print(f"  hard {summary.hard} / good {summary.good} / easy {summary.easy}")
        if summary.next_due:
            print(f"  next review: {summary.next_due:%Y-%m-%d %H:%M} UTC")


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print(USAGE)
        return 2

    deck_path = Path(argv[0])
    try:
        mode = StudyMode(argv[1]) if len(argv) > 1 else StudyMode.FORWARD
    except ValueError:
        print(USAGE)
        return 2

    ensure_directories()
    setup_logging("Starting vocabsrs ...")
    try:
        cards = load_cards(deck_path)
    except (OSError, ValueError, TypeError) as e:
        logger.error(f"Could not load deck {deck_path}: {e}")
        print(f"error: cannot read deck {deck_path}: {e}")
        print(USAGE)
        return 2

    if settings.monitoring.enabled:
        start_monitoring(settings.monitoring.port)

    init_db()
    db = SessionLocal()
    try:
        deck = StudyDeck(deck_path.stem, cards, CardStateStore(SqlStorage(db)))
        overview = deck.overview(mode)
        print(
            f"{deck_path.stem} ({mode.value}): {overview.due} due, "
            f"{overview.new_available} new, {overview.progress}% seen"
        )
        controller = deck.session(mode)
        if controller.is_empty:
            print("All caught up!")
            if overview.next_due:
                print(f"Next review: {overview.next_due:%Y-%m-%d %H:%M} UTC")
            return 0
        run_session(controller)
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())

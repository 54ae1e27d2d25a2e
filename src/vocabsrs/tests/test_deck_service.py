"""Tests for the study deck and mode selection."""
import json
from datetime import timedelta
from pathlib import Path

import pytest

from vocabsrs.config import settings
from vocabsrs.models.srs_models import Rating, StudyMode
from vocabsrs.services.card_state_store import CardStateStore
from vocabsrs.services.deck_service import StudyDeck, load_cards, resolve_deck_path
from vocabsrs.services.session_controller import SessionPhase
from vocabsrs.services.storage import InMemoryStorage, SqlStorage

from conftest import make_cards


@pytest.fixture
def deck(cards, store, clock) -> StudyDeck:
    return StudyDeck("list-1", cards, store, clock=clock)


def rate_next(controller, rating=Rating.GOOD):
    controller.reveal()
    return controller.rate(rating)


def test_modes_have_independent_schedules(deck: StudyDeck, cards):
    forward = deck.session(StudyMode.FORWARD)
    rate_next(forward)
    rate_next(forward)

    reverse = deck.switch_mode()

    assert reverse.mode is StudyMode.REVERSE
    assert reverse.queue == cards
    assert reverse.states == {}
    assert set(deck.states(StudyMode.FORWARD)) == {cards[0].id, cards[1].id}


def test_switching_back_reloads_that_mode(deck: StudyDeck, cards):
    rate_next(deck.session("forward"))
    deck.switch_mode(StudyMode.REVERSE)

    forward = deck.switch_mode()

    assert forward.mode is StudyMode.FORWARD
    assert forward.queue == cards[1:]


def test_switch_mode_needs_an_active_session(deck: StudyDeck):
    with pytest.raises(ValueError):
        deck.switch_mode()


def test_progress_counts_cards_remembered_at_least_once(deck: StudyDeck):
    controller = deck.session(StudyMode.FORWARD)
    rate_next(controller, Rating.EASY)
    rate_next(controller, Rating.HARD)
    rate_next(controller, Rating.GOOD)

    # the hard rating leaves repetitions at zero
    assert deck.progress(StudyMode.FORWARD) == 40
    assert deck.progress(StudyMode.REVERSE) == 0


def test_progress_of_empty_list(store, clock):
    assert StudyDeck("empty", [], store, clock=clock).progress(StudyMode.FORWARD) == 0


def test_overview_when_caught_up(deck: StudyDeck, cards, clock):
    controller = deck.session(StudyMode.FORWARD)
    first = rate_next(controller, Rating.GOOD)
    while controller.current_card is not None:
        rate_next(controller, Rating.EASY)

    overview = deck.overview(StudyMode.FORWARD)

    assert overview.caught_up
    assert overview.due == 0
    assert overview.new_available == 0
    assert overview.total_cards == len(cards)
    assert overview.progress == 100
    assert overview.next_due == first.next_review


def test_overview_counts_due_and_new(store, clock):
    cards = make_cards(30)
    deck = StudyDeck("list-2", cards, store, clock=clock)
    controller = deck.session(StudyMode.REVERSE)
    for _ in range(3):
        rate_next(controller)
    clock.advance(days=2)

    overview = deck.overview(StudyMode.REVERSE)

    assert overview.due == 3
    assert overview.new_available == 20
    assert overview.next_due is None
    assert not overview.caught_up


def test_next_due_ignores_cards_outside_the_list(store, clock):
    cards = make_cards(2)
    other_deck = StudyDeck("list-1", make_cards(2, prefix="other"), store, clock=clock)
    rate_next(other_deck.session(StudyMode.FORWARD))

    deck = StudyDeck("list-1", cards, store, clock=clock)

    assert deck.next_due(StudyMode.FORWARD) is None
    assert deck.progress(StudyMode.FORWARD) == 0


def test_deck_over_database_storage(db, cards, clock):
    deck = StudyDeck("list-1", cards, CardStateStore(SqlStorage(db)), clock=clock)
    controller = deck.session(StudyMode.FORWARD)
    while controller.current_card is not None:
        rate_next(controller, Rating.EASY)

    clock.advance(days=1, hours=1)
    again = deck.session(StudyMode.FORWARD)

    assert again.phase is SessionPhase.PRESENTING
    assert rate_next(again, Rating.EASY).interval == 6
    assert deck.next_due(StudyMode.FORWARD) <= clock() + timedelta(days=6)


def test_load_cards_from_list(tmp_path):
    path = tmp_path / "deck.json"
    path.write_text(
        json.dumps(
            [
                {"id": "a1", "simplified": "你好", "pinyin": "nǐ hǎo", "englishDefinitions": ["hello"], "hskLevel": 1},
                {"id": "a2", "text": "谢谢", "translations": ["thanks"]},
            ],
            ensure_ascii=False,
        ),
        encoding="utf-8",
    )

    cards = load_cards(path)

    assert [card.id for card in cards] == ["a1", "a2"]
    assert cards[0].secondary == ("nǐ hǎo",)
    assert cards[0].level == 1


def test_load_cards_from_wrapped_list(tmp_path):
    path = tmp_path / "deck.json"
    path.write_text(json.dumps({"vocabularyItems": [{"id": 7, "text": "猫"}]}), encoding="utf-8")

    assert load_cards(path)[0].id == "7"


def test_load_cards_rejects_other_shapes(tmp_path):
    path = tmp_path / "deck.json"
    path.write_text('"just a string"', encoding="utf-8")

    with pytest.raises(ValueError):
        load_cards(path)


class CountingStorage(InMemoryStorage):
    def __init__(self):
        super().__init__()
        self.reads = 0

    def get(self, key):
        self.reads += 1
        return super().get(key)


def test_overview_reads_storage_once(cards, clock):
    storage = CountingStorage()
    deck = StudyDeck("list-1", cards, CardStateStore(storage), clock=clock)
    rate_next(deck.session(StudyMode.FORWARD), Rating.EASY)
    storage.reads = 0

    overview = deck.overview(StudyMode.FORWARD)

    assert storage.reads == 1
    assert overview.progress == 20


def test_load_cards_rejects_non_object_records(tmp_path):
    path = tmp_path / "deck.json"
    path.write_text('["你好", "谢谢"]', encoding="utf-8")

    with pytest.raises(ValueError):
        load_cards(path)


def test_bare_deck_name_resolves_to_decks_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings.paths, "decks_dir", tmp_path)
    (tmp_path / "hsk-demo-deck.json").write_text(json.dumps([{"id": "1", "text": "猫"}]), encoding="utf-8")

    assert resolve_deck_path("hsk-demo-deck") == tmp_path / "hsk-demo-deck.json"
    assert resolve_deck_path("hsk-demo-deck.json") == tmp_path / "hsk-demo-deck.json"
    assert load_cards("hsk-demo-deck")[0].text == "猫"


def test_unknown_deck_name_is_left_alone(tmp_path, monkeypatch):
    monkeypatch.setattr(settings.paths, "decks_dir", tmp_path)

    assert resolve_deck_path("no-such-deck.json") == Path("no-such-deck.json")
    with pytest.raises(FileNotFoundError):
        load_cards("no-such-deck.json")

"""Test configuration."""
import os
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Generator, List

import pytest
from dotenv import load_dotenv
from faker import Faker
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment before any imports
os.environ["ENV"] = "test"

# Load test environment variables
test_env_path = Path(__file__).resolve().parents[3] / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from vocabsrs.config import ensure_directories
from vocabsrs.models.base import init_db
from vocabsrs.models.srs_models import VocabCard
from vocabsrs.services.card_state_store import CardStateStore
from vocabsrs.services.storage import InMemoryStorage

fake = Faker()


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: float = 0, **kwargs) -> datetime:
        self.now = self.now + timedelta(days=days, **kwargs)
        return self.now


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment before each test."""
    ensure_directories()
    yield


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 9, 30, 15, 123456, tzinfo=UTC))


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def store(storage: InMemoryStorage) -> CardStateStore:
    return CardStateStore(storage)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create a fresh in-memory database session for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    db = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


def make_cards(count: int, prefix: str = "w") -> List[VocabCard]:
    """Build *count* distinct cards with fake text."""
    return [
        VocabCard(
            id=f"{prefix}{i}",
            text=f"{fake.word()}{i}",
            secondary=(fake.word(),),
            translations=(fake.word(), fake.word()),
            level=fake.random_int(min=1, max=6),
        )
        for i in range(count)
    ]


@pytest.fixture
def cards() -> List[VocabCard]:
    return make_cards(5)

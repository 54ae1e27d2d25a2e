"""Key-value storage port and its adapters."""
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vocabsrs.models.models import StorageEntry

logger = logging.getLogger(__name__)


class StorageUnavailableError(Exception):
    """Raised when the backing store cannot be read or written."""


class Storage(ABC):
    """Minimal key-value port used to persist scheduling state."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None when the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove *key*. Deleting an absent key is not an error."""


class InMemoryStorage(Storage):
    """Dictionary backed storage for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class SqlStorage(Storage):
    """Storage backed by the ``storage_entries`` table."""

    def __init__(self, db: Session):
        """Initialize the storage with a database session."""
        self.db = db

    def get(self, key: str) -> Optional[str]:
        try:
            entry = self.db.query(StorageEntry).filter(StorageEntry.key == key).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageUnavailableError(f"Could not read {key}: {e}") from e
        return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        try:
            entry = self.db.query(StorageEntry).filter(StorageEntry.key == key).first()
            if entry:
                entry.value = value
            else:
                self.db.add(StorageEntry(key=key, value=value))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageUnavailableError(f"Could not write {key}: {e}") from e
        logger.debug(f"Stored {len(value)} bytes under {key}")

    def delete(self, key: str) -> None:
        try:
            self.db.query(StorageEntry).filter(StorageEntry.key == key).delete()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageUnavailableError(f"Could not delete {key}: {e}") from e

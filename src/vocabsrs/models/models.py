"""Database models for persisted scheduling state."""
from sqlalchemy import Column, String, Text

from vocabsrs.models.base import Base, TimestampMixin


class StorageEntry(Base, TimestampMixin):
    """Key-value row backing the storage port.

    One row per (list, mode) pair; ``value`` holds the serialized card state
    mapping for that pair.
    """

    __tablename__ = "storage_entries"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)

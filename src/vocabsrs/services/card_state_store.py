"""Persistence of per-card scheduling state for one (list, mode) pair."""
import json
import logging
from typing import Dict, Mapping, Union

from vocabsrs import monitoring
from vocabsrs.models.srs_models import CardState, PersistenceCorruptError, StudyMode
from vocabsrs.services.storage import Storage, StorageUnavailableError

logger = logging.getLogger(__name__)

ModeLike = Union[StudyMode, str]


class CardStateStore:
    """Load, save and reset the card state mapping of a (list, mode) pair.

    None of the operations raise on storage problems: a failed read yields an
    empty mapping and a failed write is reported through the return value.
    """

    def __init__(self, storage: Storage):
        self.storage = storage

    @staticmethod
    def key_for(list_id: str, mode: ModeLike) -> str:
        """Storage key for a (list, mode) pair."""
        mode_value = StudyMode(mode).value
        return f"{list_id}:{mode_value}"

    def load(self, list_id: str, mode: ModeLike) -> Dict[str, CardState]:
        """Load the mapping of word id to CardState, or {} if nothing usable is stored."""
        key = self.key_for(list_id, mode)
        try:
            raw = self.storage.get(key)
        except StorageUnavailableError as e:
            logger.warning(f"Storage unavailable while loading {key}, starting fresh: {e}")
            monitoring.storage_errors.labels(operation="load").inc()
            return {}

        if raw is None:
            return {}

        try:
            document = json.loads(raw)
        except (TypeError, ValueError, RecursionError) as e:
            logger.warning(f"Persisted state under {key} is corrupt, treating as empty: {e}")
            monitoring.corrupt_state_loads.inc()
            return {}

        if not isinstance(document, dict):
            logger.warning(f"Persisted state under {key} is not an object, treating as empty")
            monitoring.corrupt_state_loads.inc()
            return {}

        states = {}
        for word_id, record in document.items():
            try:
                states[str(word_id)] = CardState.from_record(str(word_id), record)
            except PersistenceCorruptError as e:
                logger.warning(f"Skipping unreadable record in {key}: {e}")
                monitoring.corrupt_state_loads.inc()
        logger.debug(f"Loaded {len(states)} card states from {key}")
        return states

    def save(self, list_id: str, mode: ModeLike, states: Mapping[str, CardState]) -> bool:
        """Overwrite the stored mapping. Returns False if the write failed."""
        key = self.key_for(list_id, mode)
        payload = json.dumps(
            {word_id: state.to_record() for word_id, state in states.items()},
            ensure_ascii=False,
        )
        try:
            self.storage.set(key, payload)
        except StorageUnavailableError as e:
            logger.error(f"Could not save {len(states)} card states under {key}: {e}")
            monitoring.storage_errors.labels(operation="save").inc()
            return False
        return True

    def reset(self, list_id: str, mode: ModeLike) -> bool:
        """Clear stored state for this pair only. Returns False if the delete failed."""
        key = self.key_for(list_id, mode)
        try:
            self.storage.delete(key)
        except StorageUnavailableError as e:
            logger.error(f"Could not reset {key}: {e}")
            monitoring.storage_errors.labels(operation="reset").inc()
            return False
        logger.info(f"Reset scheduling state for {key}")
        return True

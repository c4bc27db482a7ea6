# petcare/services/persistence.py
import json
from datetime import datetime
from typing import Optional

import structlog
from pydantic import ValidationError

from petcare.core.errors import PersistenceCorrupt
from petcare.core.storage import KeyValueStore
from petcare.models.pet import CareState, PetRecord

log = structlog.get_logger(__name__)


def parse_record(raw: str) -> PetRecord:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise PersistenceCorrupt(f"record is not valid JSON: {e}") from e
    if not isinstance(data, dict) or not data:
        raise PersistenceCorrupt("record is empty or not an object")
    try:
        return PetRecord.model_validate(data)
    except ValidationError as e:
        raise PersistenceCorrupt(f"record failed validation: {e.error_count()} errors") from e


class PetRepository:
    """Reads and fully overwrites the single persisted pet record."""

    def __init__(self, store: KeyValueStore, key: str):
        self.store = store
        self.key = key

    def load(self) -> Optional[PetRecord]:
        raw = self.store.get(self.key)
        if raw is None:
            return None
        try:
            return parse_record(raw)
        except PersistenceCorrupt as e:
            log.error("Saved pet record is corrupt, starting fresh", key=self.key, error=str(e))
            return None

    def save(self, state: CareState, saved_at: datetime) -> None:
        record = PetRecord.from_state(state, saved_at)
        self.store.set(self.key, record.to_json())
        log.debug("pet_record_saved", key=self.key, events=len(state.events), snapshots=len(state.history))

    def clear(self) -> None:
        self.store.delete(self.key)
        log.info("pet_record_cleared", key=self.key)

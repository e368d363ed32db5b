from typing import Dict, Optional
from custody_core.errors import DuplicateRecordError
from custody_core.utils import key_hint
from custody_core.storage.models import AuthRecord
from custody_core.storage.provider import StorageProvider


class InMemoryStorage(StorageProvider):
    name = "memory"

    def __init__(self):
        self.records: Dict[str, AuthRecord] = {}

    async def lookup(self, storage_key: str) -> Optional[AuthRecord]:
        return self.records.get(storage_key)

    async def insert(self, storage_key: str, credentials: str) -> str:
        if storage_key in self.records:
            raise DuplicateRecordError(f"record already exists: {key_hint(storage_key)}")
        rec = AuthRecord(id=storage_key, credentials=credentials)
        self.records[storage_key] = rec
        return rec.record_id

    def count(self) -> int:
        return len(self.records)

# custody_core/storage/provider.py
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional

from custody_core.storage.models import AuthRecord


class StorageProvider(ABC):
    """
    Narrow gateway over persisted registrations, keyed by storage key.

    Implementations raise custody_core.errors.LookupFailure /
    RegistrationWriteFailure on backend errors and DuplicateRecordError when a
    storage key already holds a record. That uniqueness check is the only guard
    against two concurrent registrations of the same new identity.
    """
    name: str = "base"

    @abstractmethod
    async def lookup(self, storage_key: str) -> Optional[AuthRecord]: ...

    @abstractmethod
    async def insert(self, storage_key: str, credentials: str) -> str:
        """Persist a new record and return its record id."""

    def close(self) -> None:
        return

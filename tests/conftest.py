import asyncio
import pytest
from custody_core.config import Settings
from custody_core.errors import LookupFailure, RegistrationWriteFailure
from custody_core.storage import InMemoryStorage

TEST_IV = "000102030405060708090a0b0c0d0e0f"


class FlakyStorage(InMemoryStorage):
    """In-memory storage that fails on demand."""

    def __init__(self, fail_lookup=False, fail_insert_on=None):
        super().__init__()
        self.fail_lookup = fail_lookup
        self.fail_insert_on = fail_insert_on  # 1-based insert call to fail
        self.inserts = 0
        self.lookups = []

    async def lookup(self, storage_key):
        self.lookups.append(storage_key)
        if self.fail_lookup:
            raise LookupFailure("backend unavailable")
        return await super().lookup(storage_key)

    async def insert(self, storage_key, credentials):
        self.inserts += 1
        if self.fail_insert_on == self.inserts:
            raise RegistrationWriteFailure("write rejected")
        return await super().insert(storage_key, credentials)


class SlowStorage(InMemoryStorage):
    """Yields to the event loop on every lookup so concurrent runs interleave."""

    async def lookup(self, storage_key):
        await asyncio.sleep(0)
        return await super().lookup(storage_key)


@pytest.fixture
def settings():
    return Settings(cipher_iv=TEST_IV, storage_provider="memory")


@pytest.fixture
def store():
    return InMemoryStorage()

from __future__ import annotations
from typing import Optional
import asyncio, os, sqlite3, threading
from custody_core.constants import AUTH_TABLE, DEFAULT_DB_PATH
from custody_core.errors import DuplicateRecordError, LookupFailure, RegistrationWriteFailure
from custody_core.logger import get_logger
from custody_core.storage.models import AuthRecord
from custody_core.storage.provider import StorageProvider
from custody_core.utils import key_hint

log = get_logger("Custody.Storage.SQLite")


class SQLiteStorage(StorageProvider):
    name = "sqlite"

    def __init__(self, path=DEFAULT_DB_PATH):
        # If no directory, default to current working directory
        dir_path = os.path.dirname(path) or "."
        os.makedirs(dir_path, exist_ok=True)
        self.path = path
        self.db = sqlite3.connect(path, check_same_thread=False)
        # blocking calls run on worker threads; one statement at a time
        self._lock = threading.Lock()

        self._init()

    def _init(self) -> None:
        with self._lock:
            # id is the storage key; PRIMARY KEY enforces one record per key
            self.db.execute(f"""CREATE TABLE IF NOT EXISTS {AUTH_TABLE}(
                id TEXT PRIMARY KEY,
                credentials TEXT NOT NULL,
                record_id TEXT NOT NULL,
                created_at TEXT NOT NULL
            )""")
            self.db.commit()

    # --- blocking helpers ---

    def _lookup_sync(self, storage_key: str) -> Optional[AuthRecord]:
        with self._lock:
            cur = self.db.execute(
                f"SELECT id, credentials, record_id, created_at FROM {AUTH_TABLE} WHERE id=?",
                (storage_key,),
            )
            row = cur.fetchone()
        if not row:
            return None
        return AuthRecord(*row)

    def _insert_sync(self, storage_key: str, credentials: str) -> str:
        rec = AuthRecord(id=storage_key, credentials=credentials)
        with self._lock:
            try:
                self.db.execute(
                    f"INSERT INTO {AUTH_TABLE}(id,credentials,record_id,created_at) VALUES(?,?,?,?)",
                    (rec.id, rec.credentials, rec.record_id, rec.created_at),
                )
                self.db.commit()
            except sqlite3.IntegrityError as e:
                self.db.rollback()
                raise DuplicateRecordError(f"record already exists: {key_hint(storage_key)}") from e
        return rec.record_id

    # --- StorageProvider ---

    async def lookup(self, storage_key: str) -> Optional[AuthRecord]:
        try:
            return await asyncio.to_thread(self._lookup_sync, storage_key)
        except sqlite3.Error as e:
            log.error(f"[SQLITE] lookup failed key={key_hint(storage_key)}: {e}")
            raise LookupFailure(str(e)) from e

    async def insert(self, storage_key: str, credentials: str) -> str:
        try:
            record_id = await asyncio.to_thread(self._insert_sync, storage_key, credentials)
        except sqlite3.Error as e:
            log.error(f"[SQLITE] insert failed key={key_hint(storage_key)}: {e}")
            raise RegistrationWriteFailure(str(e)) from e
        log.debug(f"[SQLITE] inserted key={key_hint(storage_key)} record={record_id}")
        return record_id

    def count(self) -> int:
        with self._lock:
            return self.db.execute(f"SELECT COUNT(*) FROM {AUTH_TABLE}").fetchone()[0]

    def close(self):
        with self._lock:
            self.db.close()

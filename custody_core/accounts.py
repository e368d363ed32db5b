# custody_core/accounts.py
from __future__ import annotations
from dataclasses import asdict, dataclass
from typing import Optional

from .config import Settings
from .crypto import ed25519_sign
from .envelope import Credentials, decrypt_envelope
from .errors import ValidationError
from .kdf import Pin, derive_cipher_key, derive_storage_key
from .logger import get_logger
from .machine import RegistrationOrchestrator, RegistrationResult
from .storage import StorageProvider
from .utils import b64e, key_hint

log = get_logger("Custody.Accounts")


@dataclass(frozen=True)
class AccountStatus:
    is_registered: bool
    is_registered_in_app: bool

    def to_dict(self):
        return asdict(self)


class AccountService:
    """
    Registration and read paths over custodial accounts.

    Read paths never distinguish a wrong pin from a corrupted record: both
    come back as None.
    """

    def __init__(self, storage: StorageProvider, settings: Settings):
        self.storage = storage
        self.settings = settings
        self.orchestrator = RegistrationOrchestrator(storage, settings)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AccountService":
        return cls(settings.open_storage(), settings)

    async def register(self, id: str, pin: Pin, app_id: Optional[str] = None) -> RegistrationResult:
        return await self.orchestrator.start(id, app_id, pin)

    async def check_account(self, id: str, app_id: Optional[str] = None) -> AccountStatus:
        _require_id(id)
        is_registered = await self.storage.lookup(derive_storage_key(id)) is not None
        is_registered_in_app = False
        if app_id:
            is_registered_in_app = await self.storage.lookup(derive_storage_key(id, app_id)) is not None
        return AccountStatus(is_registered=is_registered, is_registered_in_app=is_registered_in_app)

    async def _unlock(self, id: str, pin: Pin, app_id: Optional[str]) -> Optional[Credentials]:
        _require_id(id)
        store_key = derive_storage_key(id, app_id)
        record = await self.storage.lookup(store_key)
        if record is None:
            log.debug(f"[ACCOUNTS] no record key={key_hint(store_key)}")
            return None
        creds = decrypt_envelope(record.credentials, derive_cipher_key(id, pin, app_id), self.settings.iv_bytes)
        if creds is None:
            log.info(f"[ACCOUNTS] unlock failed key={key_hint(store_key)}")
        return creds

    async def login_account(self, id: str, pin: Pin, app_id: Optional[str] = None) -> Optional[str]:
        """Return the account's base64 public key, or None."""
        creds = await self._unlock(id, pin, app_id)
        return creds.public_key if creds else None

    async def sign(self, id: str, pin: Pin, message: bytes, app_id: Optional[str] = None) -> Optional[str]:
        """Sign `message` with the custodied key; returns a base64 Ed25519 signature or None."""
        creds = await self._unlock(id, pin, app_id)
        if creds is None:
            return None
        return b64e(ed25519_sign(creds.signing_key(), message))


def _require_id(id: str) -> None:
    if not id:
        raise ValidationError("ID not set")

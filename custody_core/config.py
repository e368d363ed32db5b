"""
custody_core.config
-------------------
Explicit runtime configuration. The cipher IV and storage handle are passed into
the orchestrator and account service by the caller; nothing here is global.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional
import os

from .constants import DEFAULT_DB_PATH, DEFAULT_STORAGE_PROVIDER, IV_BYTES
from .errors import ConfigError
from .storage import StorageProvider, load_storage_provider
from .utils import hex_to_bytes


@dataclass(frozen=True)
class Settings:
    cipher_iv: str                 # hex, shared by every envelope
    storage_provider: str = DEFAULT_STORAGE_PROVIDER  # "sqlite" | "memory"
    db_path: str = DEFAULT_DB_PATH

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        iv = env.get("CUSTODY_CIPHER_IV")
        if not iv:
            raise ConfigError("CUSTODY_CIPHER_IV is not set")
        settings = cls(
            cipher_iv=iv,
            storage_provider=env.get("CUSTODY_STORAGE_PROVIDER", DEFAULT_STORAGE_PROVIDER).lower(),
            db_path=env.get("CUSTODY_DB_PATH", DEFAULT_DB_PATH),
        )
        return settings.validate()

    def validate(self) -> "Settings":
        self._decode_iv()
        return self

    @property
    def iv_bytes(self) -> bytes:
        return self._decode_iv()

    def _decode_iv(self) -> bytes:
        try:
            iv = hex_to_bytes(self.cipher_iv)
        except ValueError as e:
            raise ConfigError(f"cipher IV is not valid hex: {e}") from e
        if len(iv) != IV_BYTES:
            raise ConfigError(f"cipher IV must be {IV_BYTES} bytes, got {len(iv)}")
        return iv

    def storage_config(self) -> Dict[str, Any]:
        return {"provider": self.storage_provider, "sqlite_path": self.db_path}

    def open_storage(self) -> StorageProvider:
        """Build the configured provider. The caller owns it and must close() it."""
        return load_storage_provider(self.storage_config())

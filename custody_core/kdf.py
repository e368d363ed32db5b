"""
custody_core.kdf
----------------
Deterministic derivation of storage and cipher keys from identity material.

    storage key (top-level)   SHA256(id)
    storage key (app-scoped)  SHA256(id + "%" + app_id)
    cipher key  (top-level)   SHA256(id + "$" + pin)
    cipher key  (app-scoped)  SHA256(id + "$" + pin + "$" + app_id)

Outputs are 64-char lowercase hex. The cipher key hex-decodes to a 256-bit AES
key. Neither the pin nor the cipher key is ever persisted.

An empty or missing app_id selects the top-level form. Rejecting a missing id is
the caller's job; these functions never fail on string/int input.
"""

from __future__ import annotations
from typing import Optional, Union

from .constants import CIPHER_SEPARATOR, STORAGE_SEPARATOR
from .utils import sha256_hex

Pin = Union[int, str]


def derive_storage_key(id: str, app_id: Optional[str] = None) -> str:
    if app_id:
        return sha256_hex(STORAGE_SEPARATOR.join([id, app_id]))
    return sha256_hex(id)


def derive_cipher_key(id: str, pin: Pin, app_id: Optional[str] = None) -> str:
    parts = [id, str(pin)]
    if app_id:
        parts.append(app_id)
    return sha256_hex(CIPHER_SEPARATOR.join(parts))

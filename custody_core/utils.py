"""
custody_core.utils
------------------
Lightweight helpers for hashing, timestamping, id generation and the base64/hex
encodings used for key material and envelopes.
"""

from __future__ import annotations
import base64, binascii, hashlib, time, uuid


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")

def b64d(s: str) -> bytes:
    return base64.b64decode(s.encode("ascii"), validate=True)

def hex_to_bytes(s: str) -> bytes:
    try:
        return bytes.fromhex(s)
    except (TypeError, ValueError, binascii.Error) as e:
        raise ValueError(f"invalid hex string: {e}") from e

def now_ts() -> str:
    # RFC3339 / ISO 8601 in UTC, second precision
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())

def new_id() -> str:
    return uuid.uuid4().hex

def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()

def key_hint(key: str) -> str:
    # Short prefix of a derived key, safe to log
    return key[:8]

"""
custody_core.envelope
---------------------
Credential envelopes: a freshly generated Ed25519 key-pair, serialized as JSON
{"publicKey": ..., "privateKey": ...} (base64 raw keys) and encrypted with
AES-256-CBC under a cipher key from custody_core.kdf. The ciphertext is stored
hex-encoded.

The IV is the single process-wide value from Settings.cipher_iv. Reusing one IV
for every envelope leaks structure when the same cipher key encrypts twice; it
is kept because existing envelopes can only be decrypted with it. Moving to a
per-record IV or an AEAD mode needs a migration of stored envelopes.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional
import binascii, json

from .crypto import cbc_decrypt, cbc_encrypt, ed25519_generate, ed25519_public_from_private
from .errors import DecryptionFailure
from .logger import get_logger
from .utils import b64d, b64e, hex_to_bytes

log = get_logger("Custody.Envelope")


@dataclass(frozen=True)
class Credentials:
    public_key: str   # base64 raw Ed25519 public key
    private_key: str  # base64 raw Ed25519 private key (seed)

    def to_dict(self) -> Dict[str, str]:
        return {"publicKey": self.public_key, "privateKey": self.private_key}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Credentials":
        pub, priv = data["publicKey"], data["privateKey"]
        if not isinstance(pub, str) or not isinstance(priv, str):
            raise TypeError("credential keys must be strings")
        return cls(public_key=pub, private_key=priv)

    @classmethod
    def generate(cls) -> "Credentials":
        priv, pub = ed25519_generate()
        return cls(public_key=b64e(pub), private_key=b64e(priv))

    def signing_key(self) -> bytes:
        return b64d(self.private_key)

    def verifying_key(self) -> bytes:
        return b64d(self.public_key)

    def __repr__(self) -> str:
        return f"Credentials(public_key={self.public_key!r}, private_key=<redacted>)"


def seal(credentials: Credentials, cipher_key: str, iv: bytes) -> str:
    plaintext = json.dumps(credentials.to_dict(), separators=(",", ":")).encode("utf-8")
    return cbc_encrypt(hex_to_bytes(cipher_key), iv, plaintext).hex()


def open_envelope(envelope: str, cipher_key: str, iv: bytes) -> Credentials:
    """Strict inverse of seal(). Raises DecryptionFailure on any failure."""
    try:
        plaintext = cbc_decrypt(hex_to_bytes(cipher_key), iv, hex_to_bytes(envelope))
        creds = Credentials.from_dict(json.loads(plaintext.decode("utf-8")))
        # the decrypted pair must be a matching Ed25519 key-pair
        if ed25519_public_from_private(creds.signing_key()) != creds.verifying_key():
            raise ValueError("public key does not match private key")
        return creds
    except (ValueError, KeyError, TypeError, binascii.Error) as e:
        # json and unicode decode errors are ValueErrors
        raise DecryptionFailure(str(e)) from e


def generate_envelope(cipher_key: str, iv: bytes) -> str:
    """Generate a new key-pair and return it sealed under cipher_key, hex-encoded."""
    return seal(Credentials.generate(), cipher_key, iv)


def decrypt_envelope(envelope: str, cipher_key: str, iv: bytes) -> Optional[Credentials]:
    """
    Recover the key-pair from an envelope.

    Returns None on a wrong key, corrupted ciphertext or malformed payload. The
    cases are indistinguishable to callers.
    """
    try:
        return open_envelope(envelope, cipher_key, iv)
    except DecryptionFailure as e:
        log.debug(f"[ENVELOPE] decrypt failed: {e}")
        return None

from __future__ import annotations
from typing import Tuple
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.asymmetric import ed25519
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from .constants import CIPHER_KEY_BYTES, IV_BYTES
"""
custody_core.crypto
-------------------
Cryptographic primitives for custodial key material:

- Ed25519: key-pair generation, signing and verification for custodied accounts
- AES-256-CBC with PKCS7 padding: symmetric protection of serialized key-pairs

Key and IV lengths are checked here; derivation of the key itself lives in
custody_core.kdf.
"""

# --------- Ed25519 (sign/verify) ----------
def ed25519_generate() -> Tuple[bytes, bytes]:
    sk = ed25519.Ed25519PrivateKey.generate()
    pk = sk.public_key()
    return sk.private_bytes_raw(), pk.public_bytes_raw()

def ed25519_sign(priv_raw: bytes, data: bytes) -> bytes:
    sk = ed25519.Ed25519PrivateKey.from_private_bytes(priv_raw)
    return sk.sign(data)

def ed25519_verify(pub_raw: bytes, sig: bytes, data: bytes) -> bool:
    try:
        ed25519.Ed25519PublicKey.from_public_bytes(pub_raw).verify(sig, data)
        return True
    except (InvalidSignature, ValueError):
        return False

def ed25519_public_from_private(priv_raw: bytes) -> bytes:
    sk = ed25519.Ed25519PrivateKey.from_private_bytes(priv_raw)
    return sk.public_key().public_bytes_raw()

# --------- AES-256-CBC (encrypt/decrypt) ----------
def _cbc(key: bytes, iv: bytes) -> Cipher:
    if len(key) != CIPHER_KEY_BYTES:
        raise ValueError(f"AES key must be {CIPHER_KEY_BYTES} bytes, got {len(key)}")
    if len(iv) != IV_BYTES:
        raise ValueError(f"IV must be {IV_BYTES} bytes, got {len(iv)}")
    return Cipher(algorithms.AES(key), modes.CBC(iv))

def cbc_encrypt(key: bytes, iv: bytes, plaintext: bytes) -> bytes:
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext) + padder.finalize()
    enc = _cbc(key, iv).encryptor()
    return enc.update(padded) + enc.finalize()

def cbc_decrypt(key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
    """Raises ValueError on a truncated ciphertext or bad padding (e.g. wrong key)."""
    if not ciphertext or len(ciphertext) % IV_BYTES:
        raise ValueError("ciphertext length is not a multiple of the block size")
    dec = _cbc(key, iv).decryptor()
    padded = dec.update(ciphertext) + dec.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    return unpadder.update(padded) + unpadder.finalize()

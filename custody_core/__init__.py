"""
Custody Core Package
====================
PIN-protected custodial Ed25519 key-pairs for external identities.

Provides:
- Deterministic storage / cipher key derivation (kdf)
- Credential envelopes: key-pair generation + AES-256-CBC protection (envelope)
- The registration state machine and its orchestrator (machine)
- Account read paths: check, login, sign (accounts)
- Pluggable storage interface (SQLite default, in-memory)
"""

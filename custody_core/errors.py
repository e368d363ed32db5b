# custody_core/errors.py
from __future__ import annotations


class CustodyError(Exception):
    pass


class ValidationError(CustodyError):
    """A required identifier (id, pin) is missing."""


class ConfigError(CustodyError, ValueError):
    pass


class StorageError(CustodyError):
    pass


class LookupFailure(StorageError):
    pass


class RegistrationWriteFailure(StorageError):
    pass


class DuplicateRecordError(RegistrationWriteFailure):
    """Storage key already has a record; the uniqueness backstop for concurrent registrations."""


class AlreadyRegisteredError(CustodyError):
    pass


class DecryptionFailure(CustodyError):
    """Wrong cipher key or corrupted envelope. Callers cannot tell the two apart."""

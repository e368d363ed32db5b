import asyncio
import pytest
from conftest import TEST_IV
from custody_core.accounts import AccountService
from custody_core.config import Settings
from custody_core.crypto import ed25519_verify
from custody_core.errors import ValidationError
from custody_core.storage import InMemoryStorage, SQLiteStorage
from custody_core.utils import b64d


def _service(store, settings):
    return AccountService(store, settings)


def test_check_account(store, settings):
    svc = _service(store, settings)
    status = asyncio.run(svc.check_account("alice", "app1"))
    assert status.to_dict() == {"is_registered": False, "is_registered_in_app": False}

    asyncio.run(svc.register("alice", 1234))
    status = asyncio.run(svc.check_account("alice", "app1"))
    assert status.is_registered and not status.is_registered_in_app

    asyncio.run(svc.register("alice", 1234, "app1"))
    status = asyncio.run(svc.check_account("alice", "app1"))
    assert status.is_registered and status.is_registered_in_app


def test_login_returns_public_key(store, settings):
    svc = _service(store, settings)
    assert asyncio.run(svc.register("alice", 1234)).success

    pub = asyncio.run(svc.login_account("alice", 1234))
    assert pub is not None and len(b64d(pub)) == 32
    # same key on every login
    assert asyncio.run(svc.login_account("alice", "1234")) == pub


def test_login_wrong_pin_or_unknown_id(store, settings):
    svc = _service(store, settings)
    asyncio.run(svc.register("alice", 1234))
    assert asyncio.run(svc.login_account("alice", 4321)) is None
    assert asyncio.run(svc.login_account("bob", 1234)) is None


def test_app_scoped_login_uses_app_keypair(store, settings):
    svc = _service(store, settings)
    asyncio.run(svc.register("alice", 1234, "app1"))

    top = asyncio.run(svc.login_account("alice", 1234))
    app = asyncio.run(svc.login_account("alice", 1234, "app1"))
    assert top and app and top != app
    assert asyncio.run(svc.login_account("alice", 1234, "app2")) is None


def test_sign_with_custodied_key(store, settings):
    svc = _service(store, settings)
    asyncio.run(svc.register("alice", 1234))
    pub = asyncio.run(svc.login_account("alice", 1234))

    sig = asyncio.run(svc.sign("alice", 1234, b"payload"))
    assert sig is not None
    assert ed25519_verify(b64d(pub), b64d(sig), b"payload")


def test_sign_wrong_pin(store, settings):
    svc = _service(store, settings)
    asyncio.run(svc.register("alice", 1234))
    assert asyncio.run(svc.sign("alice", 1111, b"payload")) is None


def test_missing_id_rejected(store, settings):
    svc = _service(store, settings)
    with pytest.raises(ValidationError):
        asyncio.run(svc.check_account(""))
    with pytest.raises(ValidationError):
        asyncio.run(svc.login_account("", 1234))


def test_service_over_sqlite(tmp_path, settings):
    store = SQLiteStorage(str(tmp_path / "custody.db"))
    svc = _service(store, settings)
    assert asyncio.run(svc.register("alice", 1234, "app1")).success
    assert store.count() == 2
    assert asyncio.run(svc.login_account("alice", 1234, "app1")) is not None
    again = asyncio.run(svc.register("alice", 1234, "app1"))
    assert again.error == "Account already registered"
    store.close()


def test_check_account_without_app(store, settings):
    svc = _service(store, settings)
    asyncio.run(svc.register("alice", 1234))
    status = asyncio.run(svc.check_account("alice"))
    # unlike the registration lookup, no app scope means no app record
    assert status.is_registered is True
    assert status.is_registered_in_app is False


def test_sign_with_app_scoped_key(store, settings):
    svc = _service(store, settings)
    asyncio.run(svc.register("alice", 1234, "app1"))
    top_pub = asyncio.run(svc.login_account("alice", 1234))
    app_pub = asyncio.run(svc.login_account("alice", 1234, "app1"))

    sig = asyncio.run(svc.sign("alice", 1234, b"payload", app_id="app1"))
    assert sig is not None
    assert ed25519_verify(b64d(app_pub), b64d(sig), b"payload")
    assert not ed25519_verify(b64d(top_pub), b64d(sig), b"payload")
    assert asyncio.run(svc.sign("alice", 1111, b"payload", app_id="app1")) is None


def test_service_from_settings(tmp_path):
    settings = Settings(cipher_iv=TEST_IV, storage_provider="sqlite", db_path=str(tmp_path / "svc.db"))
    svc = AccountService.from_settings(settings)
    assert isinstance(svc.storage, SQLiteStorage)
    assert asyncio.run(svc.register("alice", 1234)).success
    assert svc.storage.count() == 1
    svc.storage.close()

    memory = AccountService.from_settings(Settings(cipher_iv=TEST_IV, storage_provider="memory"))
    assert isinstance(memory.storage, InMemoryStorage)

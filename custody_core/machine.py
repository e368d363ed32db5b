"""
custody_core.machine
--------------------
Registration state machine for custodial accounts.

The machine is split in two layers:

- a pure layer: immutable state variants, events, `transition(state, event)`
  and `settle(state)` for the eventless guards of `Validating`;
- an effect layer: `RegistrationRun` performs the storage lookup and inserts
  at the states that require them and feeds their outcome back as events.

    Idle --Register--> FetchingLogins --LookupDone--> Validating
    Validating --(new account)--> RegisteringAccount
    Validating --(new app account)--> RegisteringAppAccount
    Validating --(otherwise)--> Failed
    RegisteringAccount --InsertDone--> RegisteringAppAccount (app_id given) | Registered
    RegisteringAppAccount --InsertDone--> Registered
    any lookup/insert failure --> Failed

There are no retries. A run whose top-level insert succeeded and whose app
insert failed reports failure and leaves the top-level record in place.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from .config import Settings
from .constants import (
    ERR_ALREADY_REGISTERED,
    ERR_FETCHING_LOGINS,
    ERR_REGISTERING_ACCOUNT,
    ERR_REGISTERING_APP_ACCOUNT,
)
from .envelope import generate_envelope
from .errors import AlreadyRegisteredError, CustodyError, LookupFailure, RegistrationWriteFailure, ValidationError
from .kdf import Pin, derive_cipher_key, derive_storage_key
from .logger import get_logger
from .storage import StorageProvider
from .utils import key_hint

log = get_logger("Custody.Machine")


# --------- Events ----------
@dataclass(frozen=True)
class Register:
    id: str
    pin: Pin
    app_id: Optional[str] = None


@dataclass(frozen=True)
class LookupDone:
    is_registered: Optional[bool] = None
    is_registered_in_app: Optional[bool] = None


@dataclass(frozen=True)
class LookupFailed:
    reason: str = ""


@dataclass(frozen=True)
class InsertDone:
    record_id: str = ""


@dataclass(frozen=True)
class InsertFailed:
    reason: str = ""


Event = Union[Register, LookupDone, LookupFailed, InsertDone, InsertFailed]


# --------- States ----------
@dataclass(frozen=True)
class Idle:
    name = "idle"


@dataclass(frozen=True)
class FetchingLogins:
    request: Register
    name = "fetchingLogins"


@dataclass(frozen=True)
class Validating:
    request: Register
    is_registered: bool
    is_registered_in_app: bool
    name = "validating"


@dataclass(frozen=True)
class RegisteringAccount:
    request: Register
    name = "registeringAccount"


@dataclass(frozen=True)
class RegisteringAppAccount:
    request: Register
    name = "registeringAppAccount"


@dataclass(frozen=True)
class Registered:
    request: Register
    name = "registered"


@dataclass(frozen=True)
class Failed:
    request: Optional[Register]
    error: str
    name = "error"


State = Union[Idle, FetchingLogins, Validating, RegisteringAccount, RegisteringAppAccount, Registered, Failed]
TERMINAL = (Registered, Failed)


def is_terminal(state: State) -> bool:
    return isinstance(state, TERMINAL)


def has_app_id(request: Register) -> bool:
    return bool(request.app_id)


def validate_request(request: Register) -> None:
    if not request.id:
        raise ValidationError("ID not set")
    if request.pin is None or request.pin == "":
        raise ValidationError("PIN not set")


# --------- Pure transitions ----------
def transition(state: State, event: Event) -> State:
    """
    Next state for `event` in `state`. Pairs not in the transition table leave
    the state unchanged.
    """
    if isinstance(state, Idle):
        if isinstance(event, Register):
            return FetchingLogins(request=event)
        return state

    if isinstance(state, FetchingLogins):
        if isinstance(event, LookupDone):
            return Validating(
                request=state.request,
                is_registered=event.is_registered or False,
                is_registered_in_app=event.is_registered_in_app or False,
            )
        if isinstance(event, LookupFailed):
            return Failed(request=state.request, error=ERR_FETCHING_LOGINS)
        return state

    if isinstance(state, RegisteringAccount):
        if isinstance(event, InsertDone):
            if has_app_id(state.request):
                return RegisteringAppAccount(request=state.request)
            return Registered(request=state.request)
        if isinstance(event, InsertFailed):
            return Failed(request=state.request, error=ERR_REGISTERING_ACCOUNT)
        return state

    if isinstance(state, RegisteringAppAccount):
        if isinstance(event, InsertDone):
            return Registered(request=state.request)
        if isinstance(event, InsertFailed):
            return Failed(request=state.request, error=ERR_REGISTERING_APP_ACCOUNT)
        return state

    if isinstance(state, (Validating, Registered, Failed)):
        return state

    raise TypeError(f"unknown state: {state!r}")


def settle(state: State) -> State:
    """Resolve eventless transitions. Guard order: new account, then new app account."""
    if isinstance(state, Validating):
        if not state.is_registered and not state.is_registered_in_app:
            return RegisteringAccount(request=state.request)
        if state.is_registered and not state.is_registered_in_app:
            return RegisteringAppAccount(request=state.request)
        return Failed(request=state.request, error=ERR_ALREADY_REGISTERED)
    return state


# --------- Output ----------
_ERRORS = {
    ERR_FETCHING_LOGINS: LookupFailure,
    ERR_ALREADY_REGISTERED: AlreadyRegisteredError,
    ERR_REGISTERING_ACCOUNT: RegistrationWriteFailure,
    ERR_REGISTERING_APP_ACCOUNT: RegistrationWriteFailure,
}


@dataclass(frozen=True)
class RegistrationResult:
    success: bool
    error: Optional[str] = None

    @classmethod
    def from_state(cls, state: State) -> "RegistrationResult":
        error = state.error if isinstance(state, Failed) else None
        return cls(success=not error, error=error)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "error": self.error}

    def raise_for_error(self) -> None:
        if self.success:
            return
        raise _ERRORS.get(self.error, CustodyError)(self.error)


# --------- Effects ----------
class RegistrationRun:
    """
    One registration attempt. Holds its own state; shares nothing with other
    runs except the storage provider.
    """

    def __init__(self, storage: StorageProvider, settings: Settings):
        self.storage = storage
        self.settings = settings
        self.state: State = Idle()
        self.history: List[str] = [self.state.name]

    def _enter(self, state: State) -> None:
        if state is self.state:
            return
        log.debug(f"[MACHINE] {self.state.name} -> {state.name}")
        self.state = state
        self.history.append(state.name)
        settled = settle(state)
        if settled is not state:
            self._enter(settled)

    def send(self, event: Event) -> State:
        """Accept a Register event while idle; ignore everything else."""
        if isinstance(event, Register) and isinstance(self.state, Idle):
            self._enter(transition(self.state, event))
        else:
            log.debug(f"[MACHINE] ignored {type(event).__name__} in {self.state.name}")
        return self.state

    async def result(self) -> RegistrationResult:
        """Drive the run to a terminal state and return its output."""
        while not is_terminal(self.state):
            if isinstance(self.state, FetchingLogins):
                event = await self._fetch_logins(self.state.request)
            elif isinstance(self.state, RegisteringAccount):
                event = await self._register(self.state.request, app_scoped=False)
            elif isinstance(self.state, RegisteringAppAccount):
                event = await self._register(self.state.request, app_scoped=True)
            else:
                raise RuntimeError(f"run not started (state={self.state.name})")
            self._enter(transition(self.state, event))

        result = RegistrationResult.from_state(self.state)
        if result.success:
            log.info("[MACHINE] registration complete")
        else:
            log.info(f"[MACHINE] registration failed: {result.error}")
        return result

    async def _fetch_logins(self, req: Register) -> Event:
        try:
            validate_request(req)
            main_key = derive_storage_key(req.id)
            is_registered = await self.storage.lookup(main_key) is not None
            if has_app_id(req):
                app_key = derive_storage_key(req.id, req.app_id)
                is_registered_in_app = await self.storage.lookup(app_key) is not None
            else:
                # without an app scope the top-level record is the only namespace
                is_registered_in_app = is_registered
        except Exception as e:
            log.warning(f"[MACHINE] lookup failed: {type(e).__name__}: {e}")
            return LookupFailed(reason=str(e))
        return LookupDone(is_registered=is_registered, is_registered_in_app=is_registered_in_app)

    async def _register(self, req: Register, app_scoped: bool) -> Event:
        app_id = req.app_id if app_scoped else None
        try:
            validate_request(req)
            store_key = derive_storage_key(req.id, app_id)
            cipher_key = derive_cipher_key(req.id, req.pin, app_id)
            credentials = generate_envelope(cipher_key, self.settings.iv_bytes)
            record_id = await self.storage.insert(store_key, credentials)
        except Exception as e:
            log.warning(f"[MACHINE] insert failed app_scoped={app_scoped}: {type(e).__name__}: {e}")
            return InsertFailed(reason=str(e))
        log.info(f"[MACHINE] stored key={key_hint(store_key)} app_scoped={app_scoped}")
        return InsertDone(record_id=record_id)


class RegistrationOrchestrator:
    """Entry point for registrations. Every call to start() is an independent run."""

    def __init__(self, storage: StorageProvider, settings: Settings):
        self.storage = storage
        self.settings = settings

    def new_run(self) -> RegistrationRun:
        return RegistrationRun(self.storage, self.settings)

    async def start(self, id: str, app_id: Optional[str], pin: Pin) -> RegistrationResult:
        run = self.new_run()
        run.send(Register(id=id, pin=pin, app_id=app_id))
        return await run.result()

from custody_core.constants import (
    ERR_ALREADY_REGISTERED, ERR_FETCHING_LOGINS, ERR_REGISTERING_ACCOUNT, ERR_REGISTERING_APP_ACCOUNT,
)
from custody_core.machine import (
    Failed, FetchingLogins, Idle, InsertDone, InsertFailed, LookupDone, LookupFailed, Register,
    Registered, RegisteringAccount, RegisteringAppAccount, RegistrationResult, Validating,
    is_terminal, settle, transition,
)

REQ = Register(id="alice", pin=1234)
APP_REQ = Register(id="alice", pin=1234, app_id="app1")


def test_register_from_idle_captures_request():
    state = transition(Idle(), APP_REQ)
    assert state == FetchingLogins(request=APP_REQ)


def test_lookup_outcomes():
    fetching = FetchingLogins(request=REQ)
    assert transition(fetching, LookupDone(True, False)) == Validating(REQ, True, False)
    # absent flags default to False
    assert transition(fetching, LookupDone()) == Validating(REQ, False, False)
    assert transition(fetching, LookupFailed("boom")) == Failed(REQ, ERR_FETCHING_LOGINS)


def test_validating_guards_in_order():
    assert settle(Validating(REQ, False, False)) == RegisteringAccount(REQ)
    assert settle(Validating(REQ, True, False)) == RegisteringAppAccount(REQ)
    assert settle(Validating(REQ, True, True)) == Failed(REQ, ERR_ALREADY_REGISTERED)
    assert settle(Validating(REQ, False, True)) == Failed(REQ, ERR_ALREADY_REGISTERED)


def test_registering_account_outcomes():
    assert transition(RegisteringAccount(REQ), InsertDone("r1")) == Registered(REQ)
    assert transition(RegisteringAccount(APP_REQ), InsertDone("r1")) == RegisteringAppAccount(APP_REQ)
    assert transition(RegisteringAccount(REQ), InsertFailed()) == Failed(REQ, ERR_REGISTERING_ACCOUNT)


def test_empty_app_id_skips_app_registration():
    req = Register(id="alice", pin=1234, app_id="")
    assert transition(RegisteringAccount(req), InsertDone("r1")) == Registered(req)


def test_registering_app_account_outcomes():
    assert transition(RegisteringAppAccount(APP_REQ), InsertDone("r2")) == Registered(APP_REQ)
    assert transition(RegisteringAppAccount(APP_REQ), InsertFailed()) == Failed(APP_REQ, ERR_REGISTERING_APP_ACCOUNT)


def test_unlisted_events_are_noops():
    idle = Idle()
    assert transition(idle, LookupDone(True, True)) is idle
    fetching = FetchingLogins(REQ)
    assert transition(fetching, REQ) is fetching
    assert transition(fetching, InsertDone()) is fetching
    registering = RegisteringAccount(REQ)
    assert transition(registering, LookupFailed()) is registering


def test_terminal_states_absorb_events():
    done = Registered(REQ)
    failed = Failed(REQ, ERR_ALREADY_REGISTERED)
    for event in (REQ, LookupDone(), InsertDone(), InsertFailed()):
        assert transition(done, event) is done
        assert transition(failed, event) is failed
    assert is_terminal(done) and is_terminal(failed)
    assert not is_terminal(Idle())


def test_result_from_terminal_state():
    assert RegistrationResult.from_state(Registered(REQ)).to_dict() == {"success": True, "error": None}
    assert RegistrationResult.from_state(Failed(REQ, ERR_ALREADY_REGISTERED)).to_dict() == {
        "success": False, "error": ERR_ALREADY_REGISTERED,
    }

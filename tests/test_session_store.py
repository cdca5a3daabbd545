import json

from session_store import IDENTITY_KEY, TOKEN_KEY, SessionStore

from conftest import make_identity


def test_save_then_load_round_trips_identity():
    storage = {}
    store = SessionStore(storage)
    identity = make_identity("receiver", premium=True)

    store.save(identity, "tok")

    session = store.load()
    assert session is not None
    assert session.token == "tok"
    assert session.identity == identity
    assert json.loads(storage[IDENTITY_KEY])["fullName"] == "Dana Scully"


def test_load_requires_both_keys():
    storage = {TOKEN_KEY: "tok"}
    assert SessionStore(storage).load() is None

    storage = {IDENTITY_KEY: json.dumps(make_identity().to_wire())}
    assert SessionStore(storage).load() is None


def test_unreadable_identity_is_treated_as_logged_out():
    storage = {TOKEN_KEY: "tok", IDENTITY_KEY: "{not json"}
    assert SessionStore(storage).load() is None

    storage[IDENTITY_KEY] = json.dumps({"fullName": "no id"})
    assert SessionStore(storage).load() is None


def test_clear_removes_only_session_keys():
    storage = {"other": 1}
    store = SessionStore(storage)
    store.save(make_identity(), "tok")

    store.clear()

    assert storage == {"other": 1}
    assert store.load() is None

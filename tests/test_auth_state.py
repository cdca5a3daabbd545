import asyncio

import httpx
import pytest

from auth_state import AuthState
from gateway import ErrorKind
from schemas import Variant
from session_store import SessionStore

from conftest import make_identity


def test_starts_unauthenticated_with_empty_storage(auth):
    assert not auth.is_authorized
    assert auth.identity is None
    assert auth.role is None


def test_login_persists_and_notifies(auth, storage):
    seen = []
    auth.subscribe(lambda state: seen.append(state.is_authorized))

    auth.login(make_identity("donor"), "tok")

    assert auth.is_authorized
    assert auth.role == "donor"
    assert seen == [True]
    # A fresh state over the same storage sees the same session
    reloaded = AuthState(SessionStore(storage))
    assert reloaded.is_authorized
    assert reloaded.identity == auth.identity


def test_logout_clears_storage(auth, storage):
    auth.login(make_identity(), "tok")
    auth.logout()

    assert not auth.is_authorized
    assert AuthState(SessionStore(storage)).identity is None


def test_unsubscribe_stops_notifications(auth):
    seen = []
    unsubscribe = auth.subscribe(lambda state: seen.append(state.is_authorized))
    unsubscribe()

    auth.login(make_identity(), "tok")

    assert seen == []


def test_force_logout_only_acts_once(auth):
    auth.login(make_identity(), "tok")
    transitions = []
    auth.subscribe(lambda state: transitions.append(state.is_authorized))

    assert auth.force_logout() is True
    assert auth.force_logout() is False
    assert transitions == [False]


def test_update_identity_merges_fields(auth, storage):
    auth.login(make_identity("donor"), "tok")

    assert auth.update_identity({"is_premium": True, "profilePic": "me.png"})

    assert auth.identity.is_premium
    assert auth.identity.profile_pic == "me.png"
    assert auth.identity.full_name == "Dana Scully"
    assert AuthState(SessionStore(storage)).identity.is_premium


def test_update_identity_needs_a_session(auth):
    assert auth.update_identity({"is_premium": True}) is False


@pytest.mark.asyncio
async def test_concurrent_unauthorized_responses_log_out_once(backend, auth, api):
    auth.login(make_identity("admin"), "tok")
    transitions = []
    auth.subscribe(lambda state: transitions.append(state.is_authorized))

    arrived = asyncio.Event()
    count = 0

    async def reject(request):
        nonlocal count
        count += 1
        if count == 2:
            arrived.set()
        await arrived.wait()
        return httpx.Response(401, json={"message": "jwt expired"})

    backend.on("GET", "/donors", handler=reject)
    backend.on("GET", "/receivers", handler=reject)

    donors, receivers = await asyncio.gather(
        api.list_records(Variant.DONOR), api.list_records(Variant.RECEIVER)
    )

    assert donors.kind == ErrorKind.AUTHENTICATION
    assert receivers.kind == ErrorKind.AUTHENTICATION
    assert transitions == [False]
    assert not auth.is_authorized

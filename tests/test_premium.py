import pytest

from gateway import ErrorKind
from premium import DOCTORS, TIME_SLOTS, PremiumWorkflow


@pytest.mark.asyncio
async def test_checkout_returns_provider_url(backend, api, auth, logged_in):
    logged_in("donor")
    backend.on("POST", "/create-checkout-session", json={"url": "https://pay.example/cs_1"})

    result = await PremiumWorkflow(api, auth).start_checkout()

    assert result.ok
    assert result.data == "https://pay.example/cs_1"


@pytest.mark.asyncio
async def test_checkout_needs_login(backend, api, auth):
    result = await PremiumWorkflow(api, auth).start_checkout()

    assert result.kind == ErrorKind.AUTHENTICATION
    assert backend.calls == []


@pytest.mark.asyncio
async def test_premium_members_cannot_buy_again(backend, api, auth, logged_in):
    logged_in("donor", premium=True)

    result = await PremiumWorkflow(api, auth).start_checkout()

    assert result.error == "Already a Premium Member"
    assert backend.calls == []


@pytest.mark.asyncio
async def test_verified_payment_upgrades_identity(backend, api, auth, logged_in):
    logged_in("receiver")
    backend.on("POST", "/verify-payment", json={"success": True})

    result = await PremiumWorkflow(api, auth).verify("cs_1")

    assert result.ok
    assert auth.identity.is_premium


@pytest.mark.asyncio
async def test_failed_verification_leaves_identity_alone(backend, api, auth, logged_in):
    logged_in("receiver")
    backend.on("POST", "/verify-payment", status=400, json={"message": "unpaid"})

    result = await PremiumWorkflow(api, auth).verify("cs_1")

    assert not result.ok
    assert not auth.identity.is_premium


def test_booking_requires_premium(api, auth, logged_in):
    logged_in("donor")

    result = PremiumWorkflow(api, auth).book(DOCTORS[0].id, TIME_SLOTS[0])

    assert result.kind == ErrorKind.AUTHORIZATION


def test_booking_validates_choice(api, auth, logged_in):
    logged_in("donor", premium=True)
    workflow = PremiumWorkflow(api, auth)

    assert workflow.book(DOCTORS[1].id, TIME_SLOTS[2]).ok
    assert workflow.book(99, TIME_SLOTS[0]).kind == ErrorKind.VALIDATION
    assert workflow.book(DOCTORS[1].id, "midnight").kind == ErrorKind.VALIDATION

import json

import httpx
import pytest

from gateway import ErrorKind
from registration import ALREADY_SUBMITTED, RegistrationState, RegistrationWorkflow
from schemas import Attachment, Variant

DONOR_FIELDS = {
    "firstName": "Dana",
    "lastName": "Scully",
    "email": "dana@example.com",
    "phone": "555-0100",
    "dob": "1990-02-23",
    "gender": "female",
    "bloodGroup": "O+",
    "address": "1 Main St",
    "city": "Annapolis",
    "state": "MD",
    "hospitalName": "Georgetown",
    "doctorInCharge": "Dr. Mulder",
    "witnessName": "Melissa",
    "witnessRelation": "Sister",
}

RECEIVER_FIELDS = {
    **{k: v for k, v in DONOR_FIELDS.items() if not k.startswith("witness")},
    "organNeeded": "kidneys",
    "urgency": "high",
}


def photo(name="photo.png"):
    return Attachment(filename=name, content=b"img", content_type="image/png")


@pytest.fixture
def donor_flow(api, auth, logged_in):
    logged_in("donor")
    return RegistrationWorkflow(api, auth, Variant.DONOR)


@pytest.mark.asyncio
async def test_missing_record_means_form_is_shown(backend, donor_flow):
    backend.on("GET", "/donors/me/u1", status=404, json={"message": "Not found"})

    result = await donor_flow.check_existing_record("u1")

    assert result.ok
    assert donor_flow.state == RegistrationState.NO_RECORD
    assert not donor_flow.has_record


@pytest.mark.asyncio
async def test_missing_witness_photo_blocks_submission(backend, donor_flow):
    result = await donor_flow.submit(
        DONOR_FIELDS, {"photo": photo(), "witnessPhoto": None}, agreement=True
    )

    assert result.kind == ErrorKind.VALIDATION
    assert result.error == "Please upload both photos"
    assert backend.calls == []
    assert donor_flow.state == RegistrationState.NO_RECORD


@pytest.mark.asyncio
async def test_blank_required_field_is_reported(backend, donor_flow):
    fields = {**DONOR_FIELDS, "city": "  "}

    result = await donor_flow.submit(
        fields, {"photo": photo(), "witnessPhoto": photo()}, agreement=True
    )

    assert result.error == "City is required."
    assert backend.calls == []


@pytest.mark.asyncio
async def test_agreement_is_required(backend, donor_flow):
    result = await donor_flow.submit(
        DONOR_FIELDS, {"photo": photo(), "witnessPhoto": photo()}, agreement=False
    )

    assert result.kind == ErrorKind.VALIDATION
    assert backend.calls == []


@pytest.mark.asyncio
async def test_submit_moves_to_pending_and_survives_reload(backend, api, auth, donor_flow):
    records = {}

    def register(request):
        records["u1"] = {"_id": "d1", "userId": "u1", "status": "pending", "firstName": "Dana"}
        return httpx.Response(201, json={"message": "ok", "donor": records["u1"],
                                         "user": {"_id": "u1", "profilePic": "p.png"}})

    def me(request):
        if "u1" in records:
            return httpx.Response(200, json=records["u1"])
        return httpx.Response(404, json={"message": "Not found"})

    backend.on("POST", "/donors/register", handler=register)
    backend.on("GET", "/donors/me/u1", handler=me)

    await donor_flow.check_existing_record("u1")
    result = await donor_flow.submit(
        DONOR_FIELDS,
        {"photo": photo(), "witnessPhoto": photo("w.png")},
        organs={"kidneys": True},
        agreement=True,
    )

    assert result.ok
    assert donor_flow.state == RegistrationState.PENDING
    assert auth.identity.profile_pic == "p.png"

    sent = backend.calls[-1].content
    assert b'name="witnessPhoto"' in sent
    assert json.dumps({"kidneys": True, "liver": False, "heart": False, "lungs": False,
                       "pancreas": False, "eyes": False}).encode() in sent

    reloaded = RegistrationWorkflow(api, auth, Variant.DONOR)
    await reloaded.check_existing_record("u1")
    assert reloaded.state == RegistrationState.PENDING
    assert reloaded.record.field("firstName") == "Dana"


@pytest.mark.asyncio
async def test_existing_record_refuses_second_submission(backend, donor_flow):
    backend.on("GET", "/donors/me/u1", json={"_id": "d1", "status": "rejected"})
    await donor_flow.check_existing_record("u1")

    result = await donor_flow.submit(
        DONOR_FIELDS, {"photo": photo(), "witnessPhoto": photo()}, agreement=True
    )

    assert donor_flow.state == RegistrationState.REJECTED
    assert result.error == ALREADY_SUBMITTED
    assert backend.count("POST", "/donors/register") == 0


@pytest.mark.asyncio
async def test_approved_donor_loads_contact_requests(backend, donor_flow):
    backend.on("GET", "/donors/me/u1", json={"_id": "d1", "status": "approved"})
    backend.on(
        "GET",
        "/donor/requests/u1",
        json=[{
            "_id": "c1",
            "receiverId": {"email": "r@example.com"},
            "receiverProfile": {"_id": "r1", "firstName": "Walter", "organNeeded": "liver"},
        }],
    )

    await donor_flow.check_existing_record("u1")

    assert donor_flow.state == RegistrationState.APPROVED
    assert donor_flow.contact_requests[0].receiver_email == "r@example.com"
    assert donor_flow.contact_requests[0].receiver_profile.field("firstName") == "Walter"


@pytest.mark.asyncio
async def test_receiver_urgency_must_be_known(backend, api, auth, logged_in):
    logged_in("receiver")
    flow = RegistrationWorkflow(api, auth, Variant.RECEIVER)

    result = await flow.submit(
        {**RECEIVER_FIELDS, "urgency": "whenever"},
        {"photo": photo(), "identityCard": photo("id.pdf")},
        agreement=True,
    )

    assert result.kind == ErrorKind.VALIDATION
    assert "Urgency" in result.error
    assert backend.calls == []


@pytest.mark.asyncio
async def test_receiver_missing_identity_card(backend, api, auth, logged_in):
    logged_in("receiver")
    flow = RegistrationWorkflow(api, auth, Variant.RECEIVER)

    result = await flow.submit(RECEIVER_FIELDS, {"photo": photo()}, agreement=True)

    assert result.error == "Please upload both photo and identity card"


def test_only_matching_role_or_admin_may_register(api, auth, logged_in):
    logged_in("receiver")
    assert not RegistrationWorkflow(api, auth, Variant.DONOR).may_register()
    assert RegistrationWorkflow(api, auth, Variant.RECEIVER).may_register()

    logged_in("admin")
    assert RegistrationWorkflow(api, auth, Variant.DONOR).may_register()


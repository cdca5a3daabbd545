import json
from enum import Enum
from typing import Dict, List, Mapping, Optional

import structlog
from pydantic import ValidationError

from api import AuraApi
from auth_state import AuthState
from gateway import ApiResult, ErrorKind
from lifecycle import ViewScope
from schemas import Attachment, ContactRequest, RecordStatus, RegistrationRecord, Role, Variant

log = structlog.get_logger(__name__)

ORGANS = ("kidneys", "liver", "heart", "lungs", "pancreas", "eyes")
URGENCY_LEVELS = ("low", "medium", "high", "critical")
GENDERS = ("male", "female", "other")
BLOOD_GROUPS = ("A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-")

PERSONAL_FIELDS = (
    ("firstName", "First name"),
    ("lastName", "Last name"),
    ("email", "Email"),
    ("phone", "Phone"),
    ("dob", "Date of birth"),
    ("gender", "Gender"),
    ("bloodGroup", "Blood group"),
    ("address", "Address"),
    ("city", "City"),
    ("state", "State"),
    ("hospitalName", "Hospital name"),
    ("doctorInCharge", "Doctor in charge"),
)

REQUIRED_FIELDS = {
    Variant.DONOR: PERSONAL_FIELDS + (
        ("witnessName", "Witness name"),
        ("witnessRelation", "Witness relation"),
    ),
    Variant.RECEIVER: PERSONAL_FIELDS + (
        ("organNeeded", "Organ needed"),
        ("urgency", "Urgency"),
    ),
}

# Must stay in step with what the backend refuses to accept
REQUIRED_ATTACHMENTS = {
    Variant.DONOR: ("photo", "witnessPhoto"),
    Variant.RECEIVER: ("photo", "identityCard"),
}

MISSING_ATTACHMENT_MESSAGES = {
    Variant.DONOR: "Please upload both photos",
    Variant.RECEIVER: "Please upload both photo and identity card",
}

ALREADY_SUBMITTED = "You have already submitted a registration."
UNEXPECTED_RESPONSE = "Unexpected response from server."


class RegistrationState(str, Enum):
    NO_RECORD = "no_record"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


_STATE_BY_STATUS = {
    RecordStatus.PENDING.value: RegistrationState.PENDING,
    RecordStatus.APPROVED.value: RegistrationState.APPROVED,
    RecordStatus.REJECTED.value: RegistrationState.REJECTED,
}


class RegistrationWorkflow:
    """A user's own donor or receiver application.

    ``NO_RECORD`` shows the form; every other state is a read-only status
    view. Only an admin moves a record out of ``PENDING``.
    """

    def __init__(
        self,
        api: AuraApi,
        auth: AuthState,
        variant: Variant,
        scope: Optional[ViewScope] = None,
    ) -> None:
        self._api = api
        self._auth = auth
        self.variant = variant
        self.scope = scope or ViewScope(f"{variant.value}-registration")
        self.state = RegistrationState.NO_RECORD
        self.record: Optional[RegistrationRecord] = None
        self.contact_requests: List[ContactRequest] = []

    @property
    def has_record(self) -> bool:
        return self.state != RegistrationState.NO_RECORD

    def may_register(self) -> bool:
        return self._auth.role in (self.variant.value, Role.ADMIN.value)

    def _apply_record(self, record: Optional[RegistrationRecord]) -> None:
        self.record = record
        if record is None:
            self.state = RegistrationState.NO_RECORD
        else:
            self.state = _STATE_BY_STATUS.get(record.status, RegistrationState.PENDING)

    async def check_existing_record(self, user_id: str) -> ApiResult:
        token = self.scope.enter()
        result = await self._api.get_my_record(self.variant, user_id)
        if not token.active:
            log.debug("registration_lookup_discarded", variant=self.variant.value)
            return result

        if result.status_code == 404:
            # No application yet is a normal answer, not a failure
            self._apply_record(None)
            return ApiResult.success(None, status_code=404)
        if not result.ok:
            return result
        if not result.data:
            self._apply_record(None)
            return result

        try:
            record = RegistrationRecord.model_validate(result.data)
        except ValidationError as exc:
            log.warning("registration_record_invalid", variant=self.variant.value, error=str(exc))
            return ApiResult.failure(ErrorKind.BUSINESS, UNEXPECTED_RESPONSE, result.status_code)

        self._apply_record(record.model_copy(update={"variant": self.variant}))

        if self.variant == Variant.DONOR and self.state == RegistrationState.APPROVED:
            await self.load_contact_requests(user_id, token)
        return result

    async def load_contact_requests(self, donor_id: str, token=None) -> ApiResult:
        result = await self._api.donor_requests(donor_id)
        if token is not None and not token.active:
            return result
        if result.ok and isinstance(result.data, list):
            requests = []
            for item in result.data:
                try:
                    requests.append(ContactRequest.model_validate(item))
                except ValidationError:
                    log.warning("contact_request_skipped", donor_id=donor_id)
            self.contact_requests = requests
        return result

    def validate(
        self,
        fields: Mapping[str, str],
        attachments: Mapping[str, Optional[Attachment]],
        agreement: bool,
    ) -> Optional[str]:
        """Return the first problem with a submission, or None."""
        if any(not attachments.get(name) for name in REQUIRED_ATTACHMENTS[self.variant]):
            return MISSING_ATTACHMENT_MESSAGES[self.variant]

        errors: List[str] = []
        for field, label in REQUIRED_FIELDS[self.variant]:
            if not (fields.get(field) or "").strip():
                errors.append(f"{label} is required.")
        if errors:
            return " ".join(errors)

        if self.variant == Variant.RECEIVER and fields.get("urgency") not in URGENCY_LEVELS:
            return "Urgency must be one of: " + ", ".join(URGENCY_LEVELS) + "."
        if not agreement:
            return "Please accept the declaration to continue."
        return None

    async def submit(
        self,
        fields: Mapping[str, str],
        attachments: Mapping[str, Optional[Attachment]],
        organs: Optional[Mapping[str, bool]] = None,
        agreement: bool = False,
    ) -> ApiResult:
        if self.has_record:
            return ApiResult.invalid(ALREADY_SUBMITTED)

        problem = self.validate(fields, attachments, agreement)
        if problem:
            log.info("registration_rejected_locally", variant=self.variant.value, reason=problem)
            return ApiResult.invalid(problem)

        payload: Dict[str, str] = {
            field: fields[field].strip() for field, _ in REQUIRED_FIELDS[self.variant]
        }
        if self.variant == Variant.DONOR:
            pledged = organs or {}
            payload["organs"] = json.dumps({organ: bool(pledged.get(organ)) for organ in ORGANS})

        files = {
            name: attachments[name].as_file() for name in REQUIRED_ATTACHMENTS[self.variant]
        }

        result = await self._api.register_record(self.variant, payload, files)
        if not result.ok:
            log.info(
                "registration_submit_failed",
                variant=self.variant.value,
                status=result.status_code,
            )
            return result

        data = result.data if isinstance(result.data, dict) else {}
        record_data = data.get(self.variant.value)
        record = None
        if isinstance(record_data, dict):
            try:
                record = RegistrationRecord.model_validate(record_data)
            except ValidationError:
                record = None
        self.record = record
        self.state = RegistrationState.PENDING

        user = data.get("user")
        if isinstance(user, dict):
            self._auth.update_identity(user)

        log.info("registration_submitted", variant=self.variant.value)
        return result

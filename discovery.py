import json
from typing import Any, List, Optional

import structlog
from pydantic import ValidationError

from api import AuraApi
from auth_state import AuthState
from gateway import ApiResult
from registration import URGENCY_LEVELS
from schemas import ContactMessage, RecordStatus, RegistrationRecord, Role, Variant

log = structlog.get_logger(__name__)

SORT_ORDERS = ("newest", "oldest")


def pledged_organs(donor: RegistrationRecord) -> List[str]:
    organs: Any = donor.field("organs") or {}
    if isinstance(organs, str):
        try:
            organs = json.loads(organs)
        except ValueError:
            return []
    if not isinstance(organs, dict):
        return []
    return [organ for organ, pledged in organs.items() if pledged]


def owner_id(record: RegistrationRecord) -> str:
    owner = record.user_id
    if isinstance(owner, dict):
        owner = owner.get("_id")
    return str(owner) if owner is not None else ""


def is_match(donor: RegistrationRecord, receiver_profile: Optional[RegistrationRecord]) -> bool:
    if receiver_profile is None:
        return False
    needed = (receiver_profile.field("organNeeded") or "").lower()
    return bool(needed) and needed in pledged_organs(donor)


def _sorted(records: List[RegistrationRecord], order: str) -> List[RegistrationRecord]:
    # Records without a timestamp sort as the oldest
    return sorted(
        records,
        key=lambda record: record.created_at or "",
        reverse=order != "oldest",
    )


def filter_donors(
    donors: List[RegistrationRecord], search: str = "", order: str = "newest"
) -> List[RegistrationRecord]:
    term = search.strip().lower()
    matching = [
        donor for donor in donors
        if not term or any(term in organ.lower() for organ in pledged_organs(donor))
    ]
    return _sorted(matching, order)


def filter_receivers(
    receivers: List[RegistrationRecord],
    search: str = "",
    urgency: str = "all",
    order: str = "newest",
) -> List[RegistrationRecord]:
    term = search.strip().lower()
    matching = []
    for receiver in receivers:
        if term and term not in (receiver.field("organNeeded") or "").lower():
            continue
        if urgency in URGENCY_LEVELS and receiver.field("urgency") != urgency:
            continue
        matching.append(receiver)
    return _sorted(matching, order)


def _records(data: Any) -> List[RegistrationRecord]:
    records = []
    for item in data if isinstance(data, list) else []:
        try:
            records.append(RegistrationRecord.model_validate(item))
        except ValidationError:
            log.warning("discovery_record_skipped")
    return records


class Discovery:
    """Public donor/receiver feeds and receiver-to-donor contact requests."""

    def __init__(self, api: AuraApi, auth: AuthState) -> None:
        self._api = api
        self._auth = auth
        self.donors: List[RegistrationRecord] = []
        self.receivers: List[RegistrationRecord] = []
        self.receiver_profile: Optional[RegistrationRecord] = None

    async def load_donors(self) -> ApiResult:
        result = await self._api.approved_donors()
        if result.ok:
            self.donors = _records(result.data)
        return result

    async def load_receivers(self) -> ApiResult:
        result = await self._api.approved_receivers()
        if result.ok:
            self.receivers = _records(result.data)
        return result

    async def load_receiver_profile(self) -> ApiResult:
        identity = self._auth.identity
        if identity is None or identity.role != Role.RECEIVER:
            return ApiResult.success(None)

        result = await self._api.get_my_record(Variant.RECEIVER, identity.id)
        if result.ok and isinstance(result.data, dict):
            try:
                self.receiver_profile = RegistrationRecord.model_validate(result.data)
            except ValidationError:
                self.receiver_profile = None
        return result

    def find_donor(self, user_id: str) -> Optional[RegistrationRecord]:
        for donor in self.donors:
            if owner_id(donor) == user_id:
                return donor
        return None

    async def contact_donor(self, donor_user_id: str) -> ApiResult:
        identity = self._auth.identity
        if identity is None or identity.role != Role.RECEIVER:
            return ApiResult.invalid("Only registered and approved receivers can contact donors.")
        if self.receiver_profile is None:
            await self.load_receiver_profile()
        if self.receiver_profile is None or self.receiver_profile.status != RecordStatus.APPROVED:
            return ApiResult.invalid(
                "Your profile must be approved by the admin before you can contact donors."
            )

        result = await self._api.contact_donor(
            {"donorUserId": donor_user_id, "receiverUserId": identity.id}
        )
        log.info("contact_donor", donor_user_id=donor_user_id, ok=result.ok)
        return result

    async def send_message(self, name: str, email: str, subject: str, message: str) -> ApiResult:
        try:
            body = ContactMessage(name=name, email=email, subject=subject, message=message)
        except ValidationError:
            return ApiResult.invalid("Please fill in every field with a valid email address.")
        return await self._api.send_message(body.model_dump())

from typing import List, NamedTuple, Optional

import structlog

from api import AuraApi
from auth_state import AuthState
from gateway import ApiResult, ErrorKind

log = structlog.get_logger(__name__)

PRICE_LABEL = "$49 one-time"


class Doctor(NamedTuple):
    id: int
    name: str
    specialty: str
    experience: str
    rating: str


DOCTORS: List[Doctor] = [
    Doctor(1, "Dr. Sarah Johnson", "Cardiologist", "12 years", "4.9"),
    Doctor(2, "Dr. Michael Chen", "Nephrologist", "15 years", "4.8"),
    Doctor(3, "Dr. Elena Rodriguez", "General Surgeon", "10 years", "5.0"),
    Doctor(4, "Dr. David Miller", "Hepatologist", "18 years", "4.7"),
]

TIME_SLOTS = ("09:00 AM", "10:30 AM", "01:00 PM", "02:30 PM", "04:00 PM", "05:30 PM")


def find_doctor(doctor_id: int) -> Optional[Doctor]:
    for doctor in DOCTORS:
        if doctor.id == doctor_id:
            return doctor
    return None


class PremiumWorkflow:
    """Hand-off to the hosted checkout page and verification on the way back."""

    def __init__(self, api: AuraApi, auth: AuthState) -> None:
        self._api = api
        self._auth = auth

    async def start_checkout(self) -> ApiResult:
        if not self._auth.is_authorized:
            return ApiResult.failure(
                ErrorKind.AUTHENTICATION, "Please login to upgrade to Premium", 401
            )
        if self._auth.identity and self._auth.identity.is_premium:
            return ApiResult.invalid("Already a Premium Member")

        result = await self._api.create_checkout_session()
        if not result.ok:
            return result
        url = result.data.get("url") if isinstance(result.data, dict) else None
        if not url:
            log.warning("checkout_without_url")
            return ApiResult.failure(
                ErrorKind.BUSINESS, "Failed to initiate payment.", result.status_code
            )
        log.info("checkout_started")
        return ApiResult.success(url, status_code=result.status_code)

    async def verify(self, session_id: Optional[str]) -> ApiResult:
        if not session_id:
            return ApiResult.invalid("Missing payment session.")
        result = await self._api.verify_payment(session_id)
        if result.ok:
            self._auth.update_identity({"is_premium": True})
            log.info("premium_activated")
        else:
            log.warning("payment_verification_failed", status=result.status_code)
        return result

    def book(self, doctor_id: int, slot: str) -> ApiResult:
        if not (self._auth.identity and self._auth.identity.is_premium):
            return ApiResult.failure(
                ErrorKind.AUTHORIZATION, "Please upgrade to Premium to book a consultation", 403
            )
        doctor = find_doctor(doctor_id)
        if doctor is None or slot not in TIME_SLOTS:
            return ApiResult.invalid("Please choose a doctor and a time slot.")
        log.info("consultation_booked", doctor=doctor.name, slot=slot)
        return ApiResult.success({"doctor": doctor.name, "slot": slot})

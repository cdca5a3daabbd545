from typing import Dict, Optional
from urllib.parse import urlencode

from gateway import ApiResult, ErrorKind

FLASH_SUCCESS = "success"
FLASH_ERROR = "error"
FLASH_WARNING = "warning"
FLASH_INFO = "info"

# Messages that survive a redirect travel as ?notice=<code>
REDIRECT_NOTICES: Dict[str, dict] = {
    "login-required": {"kind": FLASH_INFO, "text": "Please log in to continue."},
    "session-expired": {"kind": FLASH_WARNING, "text": "Your session has expired. Please log in again."},
    "forbidden": {"kind": FLASH_WARNING, "text": "You do not have access to that page."},
    "not-donor": {
        "kind": FLASH_WARNING,
        "text": "You are not registered with a donor role. Please register with a donor account.",
    },
    "not-receiver": {
        "kind": FLASH_WARNING,
        "text": "You are not registered with a recipient role. Please register with a receiver account.",
    },
    "donors-only": {"kind": FLASH_WARNING, "text": "Access restricted to registered donors."},
    "admin-only": {"kind": FLASH_ERROR, "text": "Unauthorized Access"},
    "premium-required": {"kind": FLASH_INFO, "text": "Please upgrade to Premium to book a consultation."},
    "logged-in": {"kind": FLASH_SUCCESS, "text": "Login Successful"},
    "logged-out": {"kind": FLASH_INFO, "text": "You have been logged out."},
    "registered": {"kind": FLASH_SUCCESS, "text": "Registration Successful! Please login."},
    "registration-submitted": {"kind": FLASH_SUCCESS, "text": "Registration submitted for review."},
    "premium-activated": {"kind": FLASH_SUCCESS, "text": "Welcome to Premium! Your account has been upgraded."},
    "payment-failed": {"kind": FLASH_ERROR, "text": "Payment verification failed. Please contact support."},
    "booking-confirmed": {"kind": FLASH_SUCCESS, "text": "Appointment confirmed! A confirmation email has been sent."},
    "request-approved": {"kind": FLASH_SUCCESS, "text": "Request approved successfully"},
    "request-rejected": {"kind": FLASH_SUCCESS, "text": "Request rejected successfully"},
    "donor-removed": {"kind": FLASH_SUCCESS, "text": "Donor removed successfully"},
    "receiver-removed": {"kind": FLASH_SUCCESS, "text": "Receiver removed successfully"},
}


def success(text: str) -> dict:
    return {"kind": FLASH_SUCCESS, "text": text}


def notice_for(result: ApiResult, fallback: Optional[str] = None) -> Optional[dict]:
    """Turn a failed result into a dismissible flash message."""
    if result.ok:
        return None
    if result.kind == ErrorKind.VALIDATION:
        return {"kind": FLASH_WARNING, "text": result.error or fallback}
    if result.kind == ErrorKind.NETWORK:
        return {"kind": FLASH_ERROR, "text": result.error}
    if result.kind == ErrorKind.CANCELLED:
        return {"kind": FLASH_INFO, "text": result.error}
    return {"kind": FLASH_ERROR, "text": result.error or fallback}


def from_query(code: Optional[str]) -> Optional[dict]:
    if not code:
        return None
    return REDIRECT_NOTICES.get(code)


def with_notice(url: str, code: str) -> str:
    if code not in REDIRECT_NOTICES:
        return url
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}{urlencode({'notice': code})}"

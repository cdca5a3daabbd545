"""Backend endpoints, one coroutine each.

Every method returns the gateway's ``ApiResult``; nothing here raises for a
failed call.
"""

from typing import Any, Dict, Optional

from gateway import ApiResult, Gateway
from schemas import Variant


class AuraApi:
    def __init__(self, gateway: Gateway) -> None:
        self.gateway = gateway

    # identity lifecycle

    async def register(self, body: Dict[str, Any]) -> ApiResult:
        return await self.gateway.request("POST", "/register", json=body)

    async def login(self, body: Dict[str, Any]) -> ApiResult:
        return await self.gateway.request("POST", "/login", json=body)

    async def google_login(self, body: Dict[str, Any]) -> ApiResult:
        return await self.gateway.request("POST", "/google-login", json=body)

    async def update_profile(
        self, user_id: str, fields: Dict[str, str], files: Optional[Dict[str, Any]] = None
    ) -> ApiResult:
        return await self.gateway.request(
            "PATCH",
            f"/profile/{user_id}",
            data=fields,
            files=files,
            auth_required=True,
        )

    # registrations

    async def register_record(
        self, variant: Variant, fields: Dict[str, str], files: Dict[str, Any]
    ) -> ApiResult:
        return await self.gateway.request(
            "POST",
            f"/{variant.value}s/register",
            data=fields,
            files=files,
            auth_required=True,
        )

    async def get_my_record(self, variant: Variant, user_id: str) -> ApiResult:
        return await self.gateway.request(
            "GET", f"/{variant.value}s/me/{user_id}", auth_required=True
        )

    async def list_records(self, variant: Variant) -> ApiResult:
        return await self.gateway.request("GET", f"/{variant.value}s", auth_required=True)

    # admin

    async def admin_stats(self) -> ApiResult:
        return await self.gateway.request("GET", "/admin/stats", auth_required=True)

    async def set_record_status(self, variant: Variant, record_id: str, status: str) -> ApiResult:
        return await self.gateway.request(
            "PATCH",
            f"/admin/{variant.value}/{record_id}/status",
            json={"status": status},
            auth_required=True,
        )

    async def delete_record(self, variant: Variant, record_id: str) -> ApiResult:
        return await self.gateway.request(
            "DELETE", f"/admin/{variant.value}/{record_id}", auth_required=True
        )

    async def admin_messages(self) -> ApiResult:
        return await self.gateway.request("GET", "/admin/messages", auth_required=True)

    # public discovery feeds

    async def approved_donors(self) -> ApiResult:
        return await self.gateway.request("GET", "/approved-donors")

    async def approved_receivers(self) -> ApiResult:
        return await self.gateway.request("GET", "/approved-receivers")

    # contact

    async def send_message(self, body: Dict[str, Any]) -> ApiResult:
        return await self.gateway.request("POST", "/contact", json=body)

    async def contact_donor(self, body: Dict[str, Any]) -> ApiResult:
        return await self.gateway.request(
            "POST", "/contact-donor", json=body, auth_required=True
        )

    async def donor_requests(self, donor_id: str) -> ApiResult:
        return await self.gateway.request(
            "GET", f"/donor/requests/{donor_id}", auth_required=True
        )

    # payments

    async def create_checkout_session(self) -> ApiResult:
        return await self.gateway.request(
            "POST", "/create-checkout-session", json={}, auth_required=True
        )

    async def verify_payment(self, session_id: str) -> ApiResult:
        return await self.gateway.request(
            "POST", "/verify-payment", json={"sessionId": session_id}, auth_required=True
        )

from typing import Optional, Tuple

import structlog
from pydantic import ValidationError

from api import AuraApi
from auth_state import AuthState
from gateway import ApiResult, ErrorKind
from navigation import Route, landing_route
from schemas import Attachment, Identity, LoginData, UserCreate

log = structlog.get_logger(__name__)

REGISTRATION_ROLES = ("donor", "receiver", "admin")


class AccountWorkflow:
    """Login, sign-up, Google sign-in and profile edits."""

    def __init__(self, api: AuraApi, auth: AuthState) -> None:
        self._api = api
        self._auth = auth

    def _start_session(self, result: ApiResult) -> Tuple[ApiResult, Optional[Route]]:
        data = result.data if isinstance(result.data, dict) else {}
        token = data.get("token")
        try:
            identity = Identity.model_validate(data.get("user") or {})
        except ValidationError as exc:
            log.warning("login_response_invalid", error=str(exc))
            identity = None
        if not token or identity is None:
            return ApiResult.failure(ErrorKind.BUSINESS, "Unexpected response from server."), None
        self._auth.login(identity, token)
        return result, landing_route(identity)

    async def login(self, email: str, password: str) -> Tuple[ApiResult, Optional[Route]]:
        email = (email or "").strip()
        if not email or not password:
            return ApiResult.invalid("Please fill all fields"), None
        try:
            payload = LoginData(email=email, password=password)
        except ValidationError:
            return ApiResult.invalid("Please enter a valid email address."), None

        result = await self._api.login(payload.model_dump())
        if not result.ok:
            log.info("login_failed", status=result.status_code)
            return result, None
        return self._start_session(result)

    async def register(
        self,
        full_name: str,
        email: str,
        password: str,
        confirm_password: str,
        role: str,
        admin_code: Optional[str] = None,
    ) -> ApiResult:
        if role not in REGISTRATION_ROLES:
            return ApiResult.invalid("Please choose a role.")
        if not all((full_name, email, password, confirm_password)):
            return ApiResult.invalid("Please fill all fields")
        if password != confirm_password:
            return ApiResult.invalid("Passwords do not match!")

        try:
            user_in = UserCreate(
                full_name=full_name.strip(),
                email=email.strip(),
                password=password,
                role=role,
                admin_code=admin_code if role == "admin" else None,
            )
        except ValidationError:
            return ApiResult.invalid("Please enter a valid email address.")

        result = await self._api.register(user_in.model_dump(by_alias=True, exclude_none=True))
        log.info("register_attempt", role=role, ok=result.ok, status=result.status_code)
        return result

    async def google_login(
        self, credential: str, role: Optional[str] = None
    ) -> Tuple[ApiResult, Optional[Route]]:
        if not credential:
            return ApiResult.invalid("Google Login Failed"), None
        body = {"token": credential}
        if role:
            body["role"] = role
        result = await self._api.google_login(body)
        if not result.ok:
            return result, None
        return self._start_session(result)

    async def update_profile(
        self,
        full_name: Optional[str] = None,
        password: Optional[str] = None,
        profile_pic: Optional[Attachment] = None,
    ) -> ApiResult:
        identity = self._auth.identity
        if identity is None:
            return ApiResult.failure(ErrorKind.AUTHENTICATION, "Please log in to continue.", 401)

        fields = {}
        if full_name and full_name.strip():
            fields["fullName"] = full_name.strip()
        if password:
            fields["password"] = password
        files = {"profilePic": profile_pic.as_file()} if profile_pic else None
        if not fields and not files:
            return ApiResult.invalid("Nothing to update.")

        result = await self._api.update_profile(identity.id, fields, files)
        if result.ok and isinstance(result.data, dict) and isinstance(result.data.get("user"), dict):
            self._auth.update_identity(result.data["user"])
            log.info("profile_updated", user_id=identity.id)
        return result

    def logout(self) -> None:
        self._auth.logout()

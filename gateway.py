from enum import Enum
from typing import Annotated, Any, Dict, Optional

import httpx
import structlog
from fastapi import Depends, Request
from pydantic import BaseModel

import settings
from auth_state import AuthState

log = structlog.get_logger(__name__)

NETWORK_ERROR = "We could not reach the server. Please try again later."
GENERIC_ERROR = "Something went wrong. Please try again."
LOGIN_REQUIRED = "Please log in to continue."
FORBIDDEN = "You are not allowed to do that."


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    BUSINESS = "business"
    NETWORK = "network"
    CANCELLED = "cancelled"


class ApiResult(BaseModel):
    """Outcome of a backend call. Failures are data, never exceptions."""

    ok: bool
    status_code: Optional[int] = None
    data: Any = None
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None

    @classmethod
    def success(cls, data: Any = None, status_code: int = 200) -> "ApiResult":
        return cls(ok=True, status_code=status_code, data=data)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        error: str,
        status_code: Optional[int] = None,
        data: Any = None,
    ) -> "ApiResult":
        return cls(ok=False, status_code=status_code, error=error, kind=kind, data=data)

    @classmethod
    def invalid(cls, error: str) -> "ApiResult":
        return cls.failure(ErrorKind.VALIDATION, error)


class Gateway:
    """The only thing in the app that talks HTTP to the backend."""

    def __init__(self, client: httpx.AsyncClient, auth: AuthState) -> None:
        self._client = client
        self._auth = auth

    @property
    def auth(self) -> AuthState:
        return self._auth

    def _headers(self) -> Dict[str, str]:
        if self._auth.token:
            return {"Authorization": f"Bearer {self._auth.token}"}
        return {}

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        auth_required: bool = False,
    ) -> ApiResult:
        if auth_required and not self._auth.token:
            log.debug("api_call_skipped_unauthenticated", method=method, path=path)
            return ApiResult.failure(ErrorKind.AUTHENTICATION, LOGIN_REQUIRED, status_code=401)

        kwargs: Dict[str, Any] = {"headers": self._headers()}
        if files:
            kwargs["data"] = data or {}
            kwargs["files"] = files
        elif data is not None:
            kwargs["data"] = data
        elif json is not None:
            kwargs["json"] = json

        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            log.warning("api_call_failed", method=method, path=path, error=str(exc))
            return ApiResult.failure(ErrorKind.NETWORK, NETWORK_ERROR)

        body = _decode(resp)
        log.debug("api_call", method=method, path=path, status=resp.status_code)

        if resp.is_success:
            return ApiResult.success(body, status_code=resp.status_code)

        message = _message_from(body)
        if resp.status_code == 401:
            self._auth.force_logout(reason=f"{method} {path}")
            return ApiResult.failure(
                ErrorKind.AUTHENTICATION, message or LOGIN_REQUIRED, 401, body
            )
        if resp.status_code == 403:
            return ApiResult.failure(ErrorKind.AUTHORIZATION, message or FORBIDDEN, 403, body)
        return ApiResult.failure(
            ErrorKind.BUSINESS, message or GENERIC_ERROR, resp.status_code, body
        )


def _decode(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


def _message_from(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return None


def create_http_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=settings.API_URL, transport=transport)


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Shared client opened at startup (see main.py)."""
    return request.app.state.http_client


HttpClientDep = Annotated[httpx.AsyncClient, Depends(get_http_client)]

from typing import Annotated, Any, Optional

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.datastructures import UploadFile

import settings
from account import AccountWorkflow
from api import AuraApi
from auth_state import AuthState
from gateway import ApiResult, ErrorKind, Gateway, HttpClientDep
from navigation import Route, check_access, nav_entries
from notices import from_query, notice_for, with_notice
from schemas import Attachment
from session_store import SessionStore

log = structlog.get_logger(__name__)

router = APIRouter(tags=["auth"])
templates = Jinja2Templates(directory=settings.TEMPLATES_DIR)


def _log_transition(auth: AuthState) -> None:
    log.debug("auth_state_changed", authorized=auth.is_authorized, role=auth.role)


def get_auth_state(request: Request) -> AuthState:
    """
    Rebuild the auth state from the signed session cookie.
    FastAPI caches this per request, so every dependency shares one instance.
    """
    auth = AuthState(SessionStore(request.session))
    auth.subscribe(_log_transition)
    return auth


AuthDep = Annotated[AuthState, Depends(get_auth_state)]


def get_api(client: HttpClientDep, auth: AuthDep) -> AuraApi:
    return AuraApi(Gateway(client, auth))


ApiDep = Annotated[AuraApi, Depends(get_api)]


def render(
    request: Request,
    auth: AuthState,
    name: str,
    context: Optional[dict] = None,
    notice: Optional[dict] = None,
    status_code: int = status.HTTP_200_OK,
) -> HTMLResponse:
    """Render a page with the header navigation for the current identity."""
    page = {
        "current_user": auth.identity,
        "current_role": auth.role,
        "nav": nav_entries(auth.identity),
        "active_path": request.url.path,
        "notice": notice or from_query(request.query_params.get("notice")),
        "uploads_url": settings.UPLOADS_URL,
    }
    page.update(context or {})
    return templates.TemplateResponse(request, name, page, status_code=status_code)


def redirect(url: str, notice: Optional[str] = None) -> RedirectResponse:
    return RedirectResponse(url=with_notice(url, notice) if notice else url, status_code=303)


def guard(route: Route, auth: AuthState) -> Optional[RedirectResponse]:
    """Redirect away from a page the current identity may not open."""
    access = check_access(route, auth.identity)
    if access.allowed:
        return None
    return redirect(access.redirect.value, access.notice)


def redirect_for(result: ApiResult) -> Optional[RedirectResponse]:
    """Session and permission failures leave the page; others are shown inline."""
    if result.kind == ErrorKind.AUTHENTICATION:
        return redirect(Route.LOGIN.value, "session-expired")
    if result.kind == ErrorKind.AUTHORIZATION:
        return redirect(Route.HOME.value, "forbidden")
    return None


def text(form: Any, name: str) -> str:
    value = form.get(name)
    return value.strip() if isinstance(value, str) else ""


async def read_attachment(form: Any, name: str) -> Optional[Attachment]:
    upload = form.get(name)
    if not isinstance(upload, UploadFile) or not upload.filename:
        return None
    content = await upload.read()
    if not content:
        return None
    return Attachment(
        filename=upload.filename,
        content=content,
        content_type=upload.content_type or "application/octet-stream",
    )


@router.get("/login", response_class=HTMLResponse)
def login_page(request: Request, auth: AuthDep):
    if auth.is_authorized:
        return redirect(Route.HOME.value)
    return render(request, auth, "login.html", {"form_data": {}})


@router.post("/login")
async def login(request: Request, auth: AuthDep, api: ApiDep):
    """
    Log in against the backend and keep the returned token in the session.
    Sends the user to the dashboard for their role.
    """
    form = await request.form()
    email = text(form, "email")
    password = form.get("password") if isinstance(form.get("password"), str) else ""

    result, landing = await AccountWorkflow(api, auth).login(email, password)
    if not result.ok:
        return render(
            request,
            auth,
            "login.html",
            {"form_data": {"email": email}},
            notice=notice_for(result, "Login Failed"),
            status_code=result.status_code or status.HTTP_400_BAD_REQUEST,
        )
    return redirect(landing.value, "logged-in")


@router.get("/register", response_class=HTMLResponse)
def register_page(request: Request, auth: AuthDep):
    if auth.is_authorized:
        return redirect(Route.HOME.value)
    return render(request, auth, "register.html", {"form_data": {}})


@router.post("/register")
async def register(request: Request, auth: AuthDep, api: ApiDep):
    form = await request.form()
    form_data = {
        "fullName": text(form, "fullName"),
        "email": text(form, "email"),
        "role": text(form, "role"),
    }
    password = form.get("password")
    confirm = form.get("confirmPassword")

    result = await AccountWorkflow(api, auth).register(
        form_data["fullName"],
        form_data["email"],
        password if isinstance(password, str) else "",
        confirm if isinstance(confirm, str) else "",
        form_data["role"],
        text(form, "adminCode") or None,
    )
    if not result.ok:
        return render(
            request,
            auth,
            "register.html",
            {"form_data": form_data},
            notice=notice_for(result, "Registration Failed"),
            status_code=result.status_code or status.HTTP_400_BAD_REQUEST,
        )
    return redirect(Route.LOGIN.value, "registered")


@router.post("/google-login")
async def google_login(request: Request, auth: AuthDep, api: ApiDep):
    form = await request.form()
    result, landing = await AccountWorkflow(api, auth).google_login(
        text(form, "credential"), text(form, "role") or None
    )
    if not result.ok:
        return render(
            request,
            auth,
            "login.html",
            {"form_data": {}},
            notice=notice_for(result, "Google Login Failed"),
            status_code=result.status_code or status.HTTP_400_BAD_REQUEST,
        )
    return redirect(landing.value, "logged-in")


@router.post("/logout")
def logout(auth: AuthDep):
    """
    Clear the session and go back home.
    """
    auth.logout()
    return redirect(Route.HOME.value, "logged-out")

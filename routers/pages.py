# routers/pages.py
from fastapi import APIRouter, Request, status
from fastapi.responses import HTMLResponse

from account import AccountWorkflow
from discovery import Discovery
from navigation import Route
from notices import notice_for, success
from registration import RegistrationWorkflow
from schemas import Role, Variant
from .auth import ApiDep, AuthDep, guard, read_attachment, redirect, redirect_for, render, text

router = APIRouter(tags=["pages"])


@router.get("/about", response_class=HTMLResponse)
def about_page(request: Request, auth: AuthDep):
    return render(request, auth, "about.html")


@router.get("/contact", response_class=HTMLResponse)
def contact_page(request: Request, auth: AuthDep):
    """Public route, but the form itself sits behind a login wall."""
    if not auth.is_authorized:
        return render(request, auth, "login_required.html", {"page_name": "Contact"})
    return render(request, auth, "contact.html", {"form_data": {}})


@router.post("/contact", response_class=HTMLResponse)
async def send_contact_message(request: Request, auth: AuthDep, api: ApiDep):
    if not auth.is_authorized:
        return redirect(Route.LOGIN.value, "login-required")

    form = await request.form()
    form_data = {name: text(form, name) for name in ("name", "email", "subject", "message")}

    result = await Discovery(api, auth).send_message(**form_data)
    if not result.ok:
        return render(
            request,
            auth,
            "contact.html",
            {"form_data": form_data},
            notice=notice_for(result, "Failed to send message. Please try again."),
            status_code=result.status_code or status.HTTP_400_BAD_REQUEST,
        )
    return render(
        request,
        auth,
        "contact.html",
        {"form_data": {}},
        notice=success("Thank you for reaching out. Your message has been sent successfully."),
    )


async def _registration_for(api, auth):
    role = auth.role
    if role not in (Role.DONOR.value, Role.RECEIVER.value):
        return None, None
    workflow = RegistrationWorkflow(api, auth, Variant(role))
    result = await workflow.check_existing_record(auth.identity.id)
    return workflow, result


@router.get("/profile", response_class=HTMLResponse)
async def profile_page(request: Request, auth: AuthDep, api: ApiDep):
    blocked = guard(Route.PROFILE, auth)
    if blocked:
        return blocked

    workflow, result = await _registration_for(api, auth)
    if result is not None:
        leave = redirect_for(result)
        if leave:
            return leave

    return render(
        request,
        auth,
        "profile.html",
        {"registration": workflow, "editing": request.query_params.get("edit") == "1"},
        notice=notice_for(result) if result is not None else None,
    )


@router.post("/profile", response_class=HTMLResponse)
async def update_profile(request: Request, auth: AuthDep, api: ApiDep):
    blocked = guard(Route.PROFILE, auth)
    if blocked:
        return blocked

    form = await request.form()
    password = form.get("password")
    result = await AccountWorkflow(api, auth).update_profile(
        full_name=text(form, "fullName") or None,
        password=password if isinstance(password, str) and password else None,
        profile_pic=await read_attachment(form, "profilePic"),
    )
    leave = redirect_for(result)
    if leave:
        return leave

    workflow, _ = await _registration_for(api, auth)
    if not result.ok:
        return render(
            request,
            auth,
            "profile.html",
            {"registration": workflow, "editing": True},
            notice=notice_for(result, "Update failed"),
            status_code=result.status_code or status.HTTP_400_BAD_REQUEST,
        )
    return render(
        request,
        auth,
        "profile.html",
        {"registration": workflow, "editing": False},
        notice=success("Profile updated successfully"),
    )

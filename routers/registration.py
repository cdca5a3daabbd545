from fastapi import APIRouter, Request, status
from fastapi.responses import HTMLResponse

from gateway import ApiResult
from navigation import Route
from notices import notice_for
from registration import (
    BLOOD_GROUPS,
    GENDERS,
    ORGANS,
    REQUIRED_ATTACHMENTS,
    REQUIRED_FIELDS,
    URGENCY_LEVELS,
    RegistrationWorkflow,
)
from schemas import Variant
from .auth import ApiDep, AuthDep, guard, read_attachment, redirect, redirect_for, render, text

router = APIRouter(tags=["registration"])

ROUTES = {Variant.DONOR: Route.DONOR, Variant.RECEIVER: Route.RECEIVER}
WRONG_ROLE = {Variant.DONOR: "not-donor", Variant.RECEIVER: "not-receiver"}


def _form_context(variant: Variant, form_data: dict) -> dict:
    return {
        "variant": variant.value,
        "form_data": form_data,
        "organs": ORGANS,
        "urgency_levels": URGENCY_LEVELS,
        "genders": GENDERS,
        "blood_groups": BLOOD_GROUPS,
    }


async def _show(request: Request, auth, api, variant: Variant):
    blocked = guard(ROUTES[variant], auth)
    if blocked:
        return blocked

    workflow = RegistrationWorkflow(api, auth, variant)
    if not workflow.may_register():
        return redirect(Route.HOME.value, WRONG_ROLE[variant])

    result = await workflow.check_existing_record(auth.identity.id)
    leave = redirect_for(result)
    if leave:
        return leave

    if workflow.has_record:
        return render(
            request,
            auth,
            "registration_status.html",
            {"variant": variant.value, "workflow": workflow},
        )
    return render(
        request,
        auth,
        "registration_form.html",
        _form_context(variant, {}),
        notice=notice_for(result),
    )


def _form_error(request: Request, auth, variant: Variant, form_data: dict, organs: dict, result):
    context = _form_context(variant, form_data)
    context["pledged"] = [organ for organ, chosen in organs.items() if chosen]
    return render(
        request,
        auth,
        "registration_form.html",
        context,
        notice=notice_for(result, "Registration Failed"),
        status_code=result.status_code or status.HTTP_400_BAD_REQUEST,
    )


async def _submit(request: Request, auth, api, variant: Variant):
    blocked = guard(ROUTES[variant], auth)
    if blocked:
        return blocked

    workflow = RegistrationWorkflow(api, auth, variant)
    if not workflow.may_register():
        return redirect(Route.HOME.value, WRONG_ROLE[variant])

    form = await request.form()
    form_data = {field: text(form, field) for field, _ in REQUIRED_FIELDS[variant]}
    attachments = {
        name: await read_attachment(form, name) for name in REQUIRED_ATTACHMENTS[variant]
    }
    organs = {organ: form.get(f"organ_{organ}") is not None for organ in ORGANS}
    agreement = form.get("agreement") is not None

    # An incomplete form never reaches the backend
    problem = workflow.validate(form_data, attachments, agreement)
    if problem:
        return _form_error(request, auth, variant, form_data, organs, ApiResult.invalid(problem))

    existing = await workflow.check_existing_record(auth.identity.id)
    leave = redirect_for(existing)
    if leave:
        return leave
    if workflow.has_record:
        return redirect(ROUTES[variant].value)

    result = await workflow.submit(form_data, attachments, organs=organs, agreement=agreement)
    leave = redirect_for(result)
    if leave:
        return leave
    if not result.ok:
        return _form_error(request, auth, variant, form_data, organs, result)
    return redirect(Route.PROFILE.value, "registration-submitted")


@router.get("/donor", response_class=HTMLResponse)
async def donor_page(request: Request, auth: AuthDep, api: ApiDep):
    return await _show(request, auth, api, Variant.DONOR)


@router.post("/donor")
async def donor_register(request: Request, auth: AuthDep, api: ApiDep):
    return await _submit(request, auth, api, Variant.DONOR)


@router.get("/receiver", response_class=HTMLResponse)
async def receiver_page(request: Request, auth: AuthDep, api: ApiDep):
    return await _show(request, auth, api, Variant.RECEIVER)


@router.post("/receiver")
async def receiver_register(request: Request, auth: AuthDep, api: ApiDep):
    return await _submit(request, auth, api, Variant.RECEIVER)

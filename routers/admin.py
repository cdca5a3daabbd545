import asyncio
from typing import Annotated, Set

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse

from admin_review import STATUS_TABS, AdminReviewWorkflow
from discovery import pledged_organs
from gateway import ErrorKind
from navigation import Route
from notices import notice_for
from schemas import Variant
from .auth import ApiDep, AuthDep, guard, redirect, redirect_for, render, text

router = APIRouter(prefix="/admin", tags=["admin"])

ADMIN_VIEWS = ("home", "donors", "receivers", "messages")


def get_in_flight(request: Request) -> Set:
    """Records with a status change or removal in progress, shared by every request."""
    return request.app.state.admin_in_flight


InFlightDep = Annotated[Set, Depends(get_in_flight)]


def _variant(value: str) -> Variant:
    try:
        return Variant(value)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown record type")


async def _load(workflow: AdminReviewWorkflow):
    records, stats, messages = await asyncio.gather(
        workflow.load_all(), workflow.load_stats(), workflow.load_messages()
    )
    for result in (records, stats, messages):
        if not result.ok:
            return result
    return records


def _dashboard(request: Request, auth, workflow: AdminReviewWorkflow, notice=None,
               status_code: int = status.HTTP_200_OK):
    tab = request.query_params.get("tab", "pending")
    if tab not in STATUS_TABS:
        tab = "pending"
    view = request.query_params.get("view", "home")
    if view not in ADMIN_VIEWS:
        view = "home"
    return render(
        request,
        auth,
        "admin.html",
        {
            "view": view,
            "tab": tab,
            "tabs": STATUS_TABS,
            "requests": workflow.filter(tab),
            "donors": workflow.by_variant(Variant.DONOR),
            "receivers": workflow.by_variant(Variant.RECEIVER),
            "summary": workflow.summary,
            "stats": workflow.stats,
            "messages": workflow.messages,
            "pledged_organs": pledged_organs,
        },
        notice=notice,
        status_code=status_code,
    )


@router.get("", response_class=HTMLResponse)
async def admin_dashboard(request: Request, auth: AuthDep, api: ApiDep):
    blocked = guard(Route.ADMIN, auth)
    if blocked:
        return blocked

    workflow = AdminReviewWorkflow(api)
    result = await _load(workflow)
    leave = redirect_for(result)
    if leave:
        return leave
    return _dashboard(request, auth, workflow, notice=notice_for(result))


def _fallback_status(result) -> int:
    if result.kind == ErrorKind.CANCELLED:
        return status.HTTP_200_OK
    return status.HTTP_400_BAD_REQUEST


async def _failed(request: Request, auth, workflow: AdminReviewWorkflow, result, fallback: str):
    loaded = await _load(workflow)
    leave = redirect_for(loaded)
    if leave:
        return leave
    return _dashboard(
        request,
        auth,
        workflow,
        notice=notice_for(result, fallback),
        status_code=result.status_code or _fallback_status(result),
    )


@router.post("/{variant}/{record_id}/status", response_class=HTMLResponse)
async def change_status(
    variant: str, record_id: str, request: Request, auth: AuthDep, api: ApiDep, in_flight: InFlightDep
):
    blocked = guard(Route.ADMIN, auth)
    if blocked:
        return blocked

    kind = _variant(variant)
    form = await request.form()
    new_status = text(form, "status")

    workflow = AdminReviewWorkflow(api, in_flight=in_flight)
    result = await workflow.set_status(record_id, kind, new_status, refresh=False)
    leave = redirect_for(result)
    if leave:
        return leave
    if not result.ok:
        return await _failed(request, auth, workflow, result, "Status update failed")
    return redirect(Route.ADMIN.value, f"request-{new_status}")


@router.get("/{variant}/{record_id}/delete", response_class=HTMLResponse)
async def confirm_delete(variant: str, record_id: str, request: Request, auth: AuthDep, api: ApiDep):
    """Ask before removing anything; the POST below only runs with confirm=yes."""
    blocked = guard(Route.ADMIN, auth)
    if blocked:
        return blocked

    kind = _variant(variant)
    workflow = AdminReviewWorkflow(api)
    result = await workflow.load_all()
    leave = redirect_for(result)
    if leave:
        return leave

    record = workflow.find(record_id, kind)
    if record is None:
        return redirect(Route.ADMIN.value)
    return render(
        request,
        auth,
        "admin_confirm_delete.html",
        {"record": record, "variant": kind.value},
    )


@router.post("/{variant}/{record_id}/delete", response_class=HTMLResponse)
async def delete_record(
    variant: str, record_id: str, request: Request, auth: AuthDep, api: ApiDep, in_flight: InFlightDep
):
    blocked = guard(Route.ADMIN, auth)
    if blocked:
        return blocked

    kind = _variant(variant)
    form = await request.form()
    confirmed = text(form, "confirm") == "yes"

    workflow = AdminReviewWorkflow(api, in_flight=in_flight)
    result = await workflow.remove(record_id, kind, lambda prompt: confirmed, refresh=False)
    leave = redirect_for(result)
    if leave:
        return leave
    if not result.ok:
        return await _failed(request, auth, workflow, result, "Failed to remove user")
    return redirect(Route.ADMIN.value, f"{kind.value}-removed")

import asyncio

from fastapi import APIRouter, Request, status
from fastapi.responses import HTMLResponse

from discovery import (
    SORT_ORDERS,
    Discovery,
    filter_donors,
    filter_receivers,
    is_match,
    owner_id,
    pledged_organs,
)
from navigation import Route
from notices import notice_for, success
from registration import URGENCY_LEVELS
from .auth import ApiDep, AuthDep, guard, redirect_for, render, text

router = APIRouter(tags=["discovery"])


def _sort(request: Request) -> str:
    order = request.query_params.get("sort", "newest")
    return order if order in SORT_ORDERS else "newest"


def _donors_page(request: Request, auth, discovery: Discovery, notice=None,
                 status_code: int = status.HTTP_200_OK):
    search = request.query_params.get("search", "")
    donors = filter_donors(discovery.donors, search, _sort(request))
    return render(
        request,
        auth,
        "donors_list.html",
        {
            "donors": donors,
            "search": search,
            "sort": _sort(request),
            "pledged_organs": pledged_organs,
            "owner_id": owner_id,
            "is_match": lambda donor: is_match(donor, discovery.receiver_profile),
        },
        notice=notice,
        status_code=status_code,
    )


@router.get("/aura", response_class=HTMLResponse)
async def donors_list(request: Request, auth: AuthDep, api: ApiDep):
    blocked = guard(Route.DONORS_LIST, auth)
    if blocked:
        return blocked

    discovery = Discovery(api, auth)
    donors, profile = await asyncio.gather(
        discovery.load_donors(), discovery.load_receiver_profile()
    )
    for result in (donors, profile):
        leave = redirect_for(result)
        if leave:
            return leave
    return _donors_page(request, auth, discovery, notice=notice_for(donors))


@router.post("/contact-donor", response_class=HTMLResponse)
async def contact_donor(request: Request, auth: AuthDep, api: ApiDep):
    blocked = guard(Route.DONORS_LIST, auth)
    if blocked:
        return blocked

    form = await request.form()
    donor_user_id = text(form, "donorUserId")

    discovery = Discovery(api, auth)
    result = await discovery.contact_donor(donor_user_id)
    leave = redirect_for(result)
    if leave:
        return leave

    await discovery.load_donors()
    if not result.ok:
        return _donors_page(
            request,
            auth,
            discovery,
            notice=notice_for(result, "Failed to send contact request."),
            status_code=result.status_code or status.HTTP_400_BAD_REQUEST,
        )

    donor = discovery.find_donor(donor_user_id)
    name = donor.field("firstName", "the donor") if donor else "the donor"
    return _donors_page(
        request,
        auth,
        discovery,
        notice=success(
            f"Contact request successfully sent to {name}. "
            "They will now be able to view your profile."
        ),
    )


@router.get("/receivers-list", response_class=HTMLResponse)
async def receivers_list(request: Request, auth: AuthDep, api: ApiDep):
    blocked = guard(Route.RECEIVERS_LIST, auth)
    if blocked:
        return blocked

    discovery = Discovery(api, auth)
    result = await discovery.load_receivers()
    leave = redirect_for(result)
    if leave:
        return leave

    search = request.query_params.get("search", "")
    urgency = request.query_params.get("urgency", "all")
    receivers = filter_receivers(discovery.receivers, search, urgency, _sort(request))
    return render(
        request,
        auth,
        "receivers_list.html",
        {
            "receivers": receivers,
            "search": search,
            "urgency": urgency,
            "urgency_levels": URGENCY_LEVELS,
            "sort": _sort(request),
        },
        notice=notice_for(result),
    )

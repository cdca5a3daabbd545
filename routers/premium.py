from fastapi import APIRouter, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from navigation import Route
from notices import notice_for
from premium import DOCTORS, PRICE_LABEL, TIME_SLOTS, PremiumWorkflow
from .auth import ApiDep, AuthDep, guard, redirect, redirect_for, render, text

router = APIRouter(tags=["premium"])


@router.get("/premium", response_class=HTMLResponse)
def premium_page(request: Request, auth: AuthDep):
    blocked = guard(Route.PREMIUM, auth)
    if blocked:
        return blocked
    return render(request, auth, "premium.html", {"price": PRICE_LABEL})


@router.post("/premium/checkout")
async def start_checkout(request: Request, auth: AuthDep, api: ApiDep):
    if not auth.is_authorized:
        return redirect(Route.LOGIN.value, "login-required")

    result = await PremiumWorkflow(api, auth).start_checkout()
    leave = redirect_for(result)
    if leave:
        return leave
    if not result.ok:
        return render(
            request,
            auth,
            "premium.html",
            {"price": PRICE_LABEL},
            notice=notice_for(result, "Failed to initiate payment."),
            status_code=result.status_code or status.HTTP_400_BAD_REQUEST,
        )
    # Off to the provider-hosted checkout page
    return RedirectResponse(url=result.data, status_code=303)


@router.get("/payment-success", response_class=HTMLResponse)
async def payment_success(request: Request, auth: AuthDep, api: ApiDep):
    session_id = request.query_params.get("session_id")
    if not session_id:
        return redirect(Route.HOME.value)
    blocked = guard(Route.PAYMENT_SUCCESS, auth)
    if blocked:
        return blocked

    result = await PremiumWorkflow(api, auth).verify(session_id)
    leave = redirect_for(result)
    if leave:
        return leave
    if not result.ok:
        return redirect(Route.PREMIUM.value, "payment-failed")
    return render(request, auth, "payment_success.html")


@router.get("/book-doctor", response_class=HTMLResponse)
def book_doctor_page(request: Request, auth: AuthDep):
    blocked = guard(Route.CONSULTATION, auth)
    if blocked:
        return blocked
    return render(request, auth, "book_doctor.html", {"doctors": DOCTORS, "slots": TIME_SLOTS})


@router.post("/book-doctor", response_class=HTMLResponse)
async def book_doctor(request: Request, auth: AuthDep, api: ApiDep):
    blocked = guard(Route.CONSULTATION, auth)
    if blocked:
        return blocked

    form = await request.form()
    try:
        doctor_id = int(text(form, "doctor"))
    except ValueError:
        doctor_id = 0

    result = PremiumWorkflow(api, auth).book(doctor_id, text(form, "slot"))
    if not result.ok:
        return render(
            request,
            auth,
            "book_doctor.html",
            {"doctors": DOCTORS, "slots": TIME_SLOTS},
            notice=notice_for(result),
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    return redirect(Route.PROFILE.value, "booking-confirmed")

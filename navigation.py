"""Which links a user sees and which pages they may open.

Everything here is a pure function of the current identity (or None).
"""

from enum import Enum
from typing import FrozenSet, List, NamedTuple, Optional

from schemas import Identity, Role


class Route(str, Enum):
    HOME = "/"
    ABOUT = "/about"
    CONTACT = "/contact"
    LOGIN = "/login"
    REGISTER = "/register"
    DONOR = "/donor"
    RECEIVER = "/receiver"
    DONORS_LIST = "/aura"
    RECEIVERS_LIST = "/receivers-list"
    PREMIUM = "/premium"
    PAYMENT_SUCCESS = "/payment-success"
    CONSULTATION = "/book-doctor"
    PROFILE = "/profile"
    ADMIN = "/admin"


class NavEntry(NamedTuple):
    route: Route
    label: str

    @property
    def path(self) -> str:
        return self.route.value


class Access(NamedTuple):
    allowed: bool
    redirect: Optional[Route] = None
    notice: Optional[str] = None


PUBLIC_ROUTES: FrozenSet[Route] = frozenset(
    {Route.HOME, Route.ABOUT, Route.CONTACT, Route.LOGIN, Route.REGISTER}
)

# Display order of the header links
NAV_ORDER = (
    NavEntry(Route.HOME, "Home"),
    NavEntry(Route.ABOUT, "About Us"),
    NavEntry(Route.DONOR, "Donor"),
    NavEntry(Route.RECEIVER, "Receiver"),
    NavEntry(Route.RECEIVERS_LIST, "Receivers List"),
    NavEntry(Route.DONORS_LIST, "Donors List"),
    NavEntry(Route.CONTACT, "Contact"),
    NavEntry(Route.CONSULTATION, "Consultation"),
    NavEntry(Route.PREMIUM, "Go Premium"),
    NavEntry(Route.ADMIN, "Admin"),
    NavEntry(Route.PROFILE, "Profile"),
)

_DENIED_NOTICES = {
    Route.DONOR: "not-donor",
    Route.RECEIVER: "not-receiver",
    Route.RECEIVERS_LIST: "donors-only",
    Route.ADMIN: "admin-only",
}


def compute_visible_routes(identity: Optional[Identity]) -> FrozenSet[Route]:
    if identity is None:
        return frozenset({Route.HOME, Route.ABOUT, Route.CONTACT})

    role = identity.role
    visible = {Route.HOME, Route.ABOUT, Route.CONTACT, Route.DONORS_LIST, Route.PROFILE}

    if role == Role.ADMIN:
        visible |= {Route.DONOR, Route.RECEIVER, Route.RECEIVERS_LIST, Route.ADMIN}
    else:
        # Unknown roles fall through to both registration entry points
        if role != Role.RECEIVER:
            visible.add(Route.DONOR)
        if role != Role.DONOR:
            visible.add(Route.RECEIVER)
        if role == Role.DONOR:
            visible.add(Route.RECEIVERS_LIST)

    visible.add(Route.CONSULTATION if identity.is_premium else Route.PREMIUM)
    return frozenset(visible)


def allowed_routes(identity: Optional[Identity]) -> FrozenSet[Route]:
    if identity is None:
        return PUBLIC_ROUTES

    allowed = set(PUBLIC_ROUTES) | compute_visible_routes(identity)
    allowed |= {Route.PREMIUM, Route.PAYMENT_SUCCESS, Route.PROFILE}
    if not identity.is_premium:
        allowed.discard(Route.CONSULTATION)
    return frozenset(allowed)


def check_access(route: Route, identity: Optional[Identity]) -> Access:
    if route in allowed_routes(identity):
        return Access(True)
    if identity is None:
        return Access(False, Route.LOGIN, "login-required")
    if route == Route.CONSULTATION:
        return Access(False, Route.PREMIUM, "premium-required")
    return Access(False, Route.HOME, _DENIED_NOTICES.get(route, "forbidden"))


def nav_entries(identity: Optional[Identity]) -> List[NavEntry]:
    visible = compute_visible_routes(identity)
    return [entry for entry in NAV_ORDER if entry.route in visible]


def landing_route(identity: Identity) -> Route:
    """Where a user goes right after logging in."""
    return {
        Role.ADMIN.value: Route.ADMIN,
        Role.DONOR.value: Route.DONOR,
        Role.RECEIVER.value: Route.RECEIVER,
    }.get(identity.role, Route.HOME)

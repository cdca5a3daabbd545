from typing import Any, Callable, Dict, List, Optional

import structlog
from pydantic import ValidationError

from schemas import Identity
from session_store import SessionStore

log = structlog.get_logger(__name__)

Listener = Callable[["AuthState"], None]


class AuthState:
    """Who is logged in for one browser session.

    Two states only: unauthenticated and authenticated. Every transition goes
    through the session store first and then notifies subscribers, so anything
    rendering role-gated content can recompute from ``identity``.
    """

    def __init__(self, store: SessionStore) -> None:
        self._store = store
        self._listeners: List[Listener] = []
        session = store.load()
        self._token: Optional[str] = session.token if session else None
        self._identity: Optional[Identity] = session.identity if session else None

    @property
    def is_authorized(self) -> bool:
        return self._token is not None

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def role(self) -> Optional[str]:
        return self._identity.role if self._identity else None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def login(self, identity: Identity, token: str) -> None:
        self._store.save(identity, token)
        self._identity = identity
        self._token = token
        log.info("auth_login", user_id=identity.id, role=identity.role)
        self._publish()

    def logout(self) -> None:
        self._store.clear()
        was_authorized = self.is_authorized
        self._identity = None
        self._token = None
        if was_authorized:
            log.info("auth_logout")
        self._publish()

    def force_logout(self, reason: str = "unauthorized") -> bool:
        """Drop the session after the backend rejected the token.

        Only the first call after a login does anything; concurrent 401s that
        arrive afterwards find the state already unauthenticated.
        """
        if not self.is_authorized:
            return False
        log.warning("auth_forced_logout", reason=reason)
        self.logout()
        return True

    def update_identity(self, partial: Dict[str, Any]) -> bool:
        """Merge backend-shaped fields into the identity and re-persist it."""
        if self._identity is None or self._token is None:
            return False
        merged = {**self._identity.to_wire(), **_to_wire_keys(partial)}
        try:
            identity = Identity.model_validate(merged)
        except ValidationError as exc:
            log.warning("identity_update_rejected", error=str(exc))
            return False
        self._store.save(identity, self._token)
        self._identity = identity
        self._publish()
        return True


def _to_wire_keys(partial: Dict[str, Any]) -> Dict[str, Any]:
    aliases = {
        name: field.alias
        for name, field in Identity.model_fields.items()
        if field.alias
    }
    return {aliases.get(key, key): value for key, value in partial.items()}

import json
from collections.abc import MutableMapping
from typing import Optional

import structlog
from pydantic import ValidationError

from schemas import Identity, Session

log = structlog.get_logger(__name__)

TOKEN_KEY = "token"
IDENTITY_KEY = "existingUser"


class SessionStore:
    """Token + cached identity kept in a browser-session scoped mapping.

    In the web app the mapping is ``request.session``: a cookie signed by
    Starlette's SessionMiddleware with no max-age, so it lives until the
    browser session ends and survives navigation and reloads.
    """

    def __init__(self, storage: MutableMapping) -> None:
        self._storage = storage

    def save(self, identity: Identity, token: str) -> None:
        # Serialize before touching storage so a failure leaves both keys as they were
        payload = json.dumps(identity.to_wire())
        self._storage[IDENTITY_KEY] = payload
        self._storage[TOKEN_KEY] = token

    def load(self) -> Optional[Session]:
        token = self._storage.get(TOKEN_KEY)
        raw = self._storage.get(IDENTITY_KEY)
        if not token or not raw:
            return None
        try:
            identity = Identity.model_validate(json.loads(raw))
        except (ValueError, TypeError, ValidationError) as exc:
            log.warning("session_identity_unreadable", error=str(exc))
            return None
        return Session(token=token, identity=identity)

    def clear(self) -> None:
        self._storage.pop(IDENTITY_KEY, None)
        self._storage.pop(TOKEN_KEY, None)

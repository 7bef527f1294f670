"""Identity provider - durable user id and per-process session id."""

from __future__ import annotations

import secrets
import string
import uuid
from dataclasses import dataclass, field

from .store import InMemoryStore, KeyValueStore


USER_ID_KEY = "usage_analytics.userID"
SESSION_ID_KEY = "usage_analytics.sessionID"

_SESSION_ID_ALPHABET = string.ascii_lowercase + string.digits
SESSION_ID_LENGTH = 10


def _new_session_id() -> str:
    return "".join(secrets.choice(_SESSION_ID_ALPHABET) for _ in range(SESSION_ID_LENGTH))


@dataclass
class IdentityProvider:
    """
    Creates identifiers once and hands back the stored value afterwards.

    The user id lives in `persistent_store` and is reused across sessions;
    the session id lives in `session_store` and lasts as long as that store.
    """
    persistent_store: KeyValueStore = field(default_factory=InMemoryStore)
    session_store: KeyValueStore = field(default_factory=InMemoryStore)

    def get_or_create_persistent_id(self) -> str:
        user_id = self.persistent_store.get(USER_ID_KEY)
        if not user_id:
            user_id = str(uuid.uuid4())
            self.persistent_store.set(USER_ID_KEY, user_id)
        return user_id

    def get_or_create_session_id(self) -> str:
        session_id = self.session_store.get(SESSION_ID_KEY)
        if not session_id:
            session_id = _new_session_id()
            self.session_store.set(SESSION_ID_KEY, session_id)
        return session_id

from __future__ import annotations

import logging
from typing import Protocol

from resume_analyzer.core.errors import AuthError
from resume_analyzer.storage.records_store import RecordStore, get_record_store

logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    def resolve(self, token: str) -> str | None: ...


class SessionTokenIdentityProvider:
    """Resolves opaque session tokens issued into the record store."""

    def __init__(self, store: RecordStore):
        self._store = store

    def resolve(self, token: str) -> str | None:
        return self._store.resolve_session(token)


def extract_token(authorization: str | None) -> str | None:
    value = (authorization or "").strip()
    if not value:
        return None
    scheme, _, remainder = value.partition(" ")
    if scheme.lower() == "bearer":
        value = remainder.strip()
    return value or None


def resolve_user_id(authorization: str | None, provider: IdentityProvider) -> str:
    token = extract_token(authorization)
    if not token:
        raise AuthError()
    user_id = provider.resolve(token)
    if not user_id:
        logger.warning("auth_token_rejected")
        raise AuthError()
    return user_id


def issue_session_token(user_id: str, store: RecordStore | None = None) -> str:
    """Return the user's current session token, creating one on first use.

    Development and CLI path. Tokens never expire and are reused across runs.
    """
    store = store or get_record_store()
    return store.latest_session(user_id) or store.create_session(user_id)

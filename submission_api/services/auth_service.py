"""
Caller identity and user lookups.

Callers authenticate with an HS256 JWT. The decoded claims become a
``CallerIdentity`` that endpoints consult for ownership and admin checks.
Display names and username lookups go through the ``users`` collection.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional

import jwt

from .document_store import USERS, DocumentStore

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_EXPIRATION_MINUTES = 60


@dataclass(frozen=True)
class CallerIdentity:
    uid: str
    claims: Dict[str, Any] = field(default_factory=dict)


def extract_bearer_token(headers: Mapping[str, str]) -> Optional[str]:
    """
    Pull the raw token out of ``Authorization`` or ``X-Authorization``.

    Returns ``None`` when neither header is present and ``""`` when a header
    is present but carries no token.
    """
    raw = headers.get("authorization")
    if raw is None:
        raw = headers.get("x-authorization")
    if raw is None:
        return None
    raw = raw.strip()
    scheme, _, rest = raw.partition(" ")
    if scheme.lower() == "bearer":
        return rest.strip()
    return raw


def verify_jwt_token(token: str, secret: str, algorithm: str = "HS256") -> Optional[Dict[str, Any]]:
    """Decode and validate a JWT, returning its claims or ``None``."""
    try:
        return jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired JWT")
        return None
    except jwt.InvalidTokenError as e:
        logger.info(f"Rejected invalid JWT: {e}")
        return None


def create_jwt_token(
    claims: Mapping[str, Any],
    secret: str,
    algorithm: str = "HS256",
    expires_in: timedelta = timedelta(minutes=DEFAULT_TOKEN_EXPIRATION_MINUTES),
) -> str:
    """Sign a token carrying ``claims`` plus issued-at and expiry."""
    now = datetime.now(timezone.utc)
    payload = dict(claims)
    payload.setdefault("iat", now)
    payload.setdefault("exp", now + expires_in)
    return jwt.encode(payload, secret, algorithm=algorithm)


def identity_from_claims(claims: Mapping[str, Any]) -> Optional[CallerIdentity]:
    uid = claims.get("uid") or claims.get("sub") or claims.get("user_id")
    if not isinstance(uid, str) or not uid:
        return None
    return CallerIdentity(uid=uid, claims=dict(claims))


def is_admin(identity: Optional[CallerIdentity]) -> bool:
    if identity is None:
        return False
    if identity.claims.get("admin") is True:
        return True
    roles = identity.claims.get("roles") or []
    return isinstance(roles, (list, tuple)) and "admin" in roles


class IdentityDirectory:
    """User lookups backed by the ``users`` collection."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def get_user(self, uid: str) -> Optional[Dict[str, Any]]:
        doc = self._store.get(USERS, uid)
        return doc.data if doc is not None else None

    def display_name(self, uid: str) -> Optional[str]:
        user = self.get_user(uid)
        if user is None:
            return None
        return user.get("displayName") or user.get("username")

    def find_uid_by_username(self, username: str) -> Optional[str]:
        docs = self._store.query(USERS, filters={"username": username}, limit=1)
        return docs[0].id if docs else None

"""Current principal from a Bearer JWT. Authorization policy is not decided here. No FastAPI."""

import logging
from dataclasses import dataclass
from typing import Optional

import jwt

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


@dataclass(frozen=True)
class Principal:
    subject: str
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.subject


def principal_from_authorization(
    authorization: Optional[str],
    secret: str,
    algorithm: str,
) -> Optional[Principal]:
    """
    Decode 'Authorization: Bearer <jwt>' and return its principal.
    Missing, malformed, expired or subject-less tokens yield None (anonymous).
    """
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    try:
        claims = jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.PyJWTError as exc:
        logger.debug("Ignoring invalid bearer token: %s", exc.__class__.__name__)
        return None
    subject = claims.get("sub")
    if not subject:
        return None
    return Principal(subject=str(subject), name=claims.get("name"))

"""Local, unverified decoding of the bearer token's claims.

The backend issues JWTs. The client never verifies them (it has no key);
it only reads claims to recover the owner id and a display name.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from jose import JWTError, jwt

logger = logging.getLogger(__name__)

OWNER_ID_CLAIM = "user_id"


def decode_claims(token: str) -> dict[str, Any]:
    """Return the token's claims without signature verification.

    Raises:
        JWTError: If the token is not a decodable JWT.
    """
    return jwt.get_unverified_claims(token)


def owner_id_from_token(token: Optional[str]) -> Optional[str]:
    """Owner id carried in the token, or None when it cannot be recovered."""
    if not token:
        return None
    try:
        claims = decode_claims(token)
    except JWTError as e:
        logger.debug("Token claims not decodable: %s", e)
        return None
    owner_id = claims.get(OWNER_ID_CLAIM)
    if owner_id is None or owner_id == "":
        return None
    return str(owner_id)


def display_name_from_token(token: Optional[str]) -> str:
    """Human-readable user name from the token's name claims."""
    if not token:
        return ""
    try:
        claims = decode_claims(token)
    except JWTError:
        return ""
    # The backend issues Spanish claim names; OIDC names are accepted too
    parts = [
        claims.get("nombre") or claims.get("given_name"),
        claims.get("apellido") or claims.get("family_name"),
    ]
    name = " ".join(str(part) for part in parts if part)
    return name or str(claims.get("name") or "")

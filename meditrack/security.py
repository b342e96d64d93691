import datetime
import secrets
from typing import Optional

import jwt


def new_session_key() -> str:
    """Opaque key identifying one browser's console session."""
    return secrets.token_urlsafe(32)


def token_claims(token: str) -> dict:
    """
    Read the claims of a backend token without verifying it.
    The console never holds the signing key; the backend re-validates every call.
    Returns an empty dict for opaque (non-JWT) tokens.
    """
    try:
        return jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
    except jwt.InvalidTokenError:
        return {}


def token_expired(token: str, now: Optional[datetime.datetime] = None) -> bool:
    exp = token_claims(token).get("exp")
    if exp is None:
        return False
    now = now or datetime.datetime.now(datetime.timezone.utc)
    return datetime.datetime.fromtimestamp(exp, tz=datetime.timezone.utc) <= now


def user_id_from_token(token: str) -> Optional[int]:
    """Numeric user id carried by the token (`id`, `userId` or a numeric `sub`)."""
    claims = token_claims(token)
    for key in ("id", "userId", "sub"):
        value = claims.get(key)
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.isdigit():
            return int(value)
    return None

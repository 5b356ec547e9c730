"""Signed bearer tokens for logged-in users.

Tokens are HS256 JWTs carrying the user id as `sub` and type "session".
Settings are re-read from the environment on every call, the same way the
auth dependency reads them, so a rotated SECRET_KEY applies to both paths.
"""
from datetime import datetime, timedelta, UTC
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from config import Settings, load_settings_from_env

SESSION_TOKEN_TYPE = "session"


def create_session_token(user_id: str, email: Optional[str] = None, settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Issue a token for user_id. Returns {"token", "expires_at"} (epoch seconds)."""
    settings = settings or load_settings_from_env()
    issued_at = datetime.now(UTC)
    expires_at = issued_at + timedelta(hours=settings.JWT_EXPIRATION_HOURS)

    claims: Dict[str, Any] = {
        "sub": user_id,
        "type": SESSION_TOKEN_TYPE,
        "iat": issued_at,
        "exp": expires_at,
    }
    if email:
        claims["email"] = email

    return {
        "token": jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM),
        "expires_at": int(expires_at.timestamp()),
    }


def decode_session_token(token: str, settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Verify a token and return its claims. Raises ValueError when it is not a valid session."""
    settings = settings or load_settings_from_env()
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise ValueError("Invalid or expired session token") from exc

    if claims.get("type") != SESSION_TOKEN_TYPE:
        raise ValueError("Not a session token")
    if not claims.get("sub"):
        raise ValueError("Session token has no subject")
    return claims

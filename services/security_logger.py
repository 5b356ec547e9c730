"""Security event logging.

Authentication failures are written to a dedicated "security" logger so
operators can route them separately from application logs.
"""
import logging
from typing import Optional

security_logger = logging.getLogger("security")


def log_auth_failure(user_id: Optional[str], reason: str):
    """Record a rejected credential."""
    security_logger.warning(f"AUTH_FAILURE user_id={user_id or '-'} reason={reason}")


def log_login_attempt(email: str, success: bool):
    """Record a login attempt by email."""
    if success:
        security_logger.info(f"LOGIN_SUCCESS email={email}")
    else:
        security_logger.warning(f"LOGIN_FAILURE email={email}")

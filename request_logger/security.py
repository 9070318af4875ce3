"""CSRF nonces and admin-token checks for the admin actions."""

import base64
import binascii
import hashlib
import hmac
import time

from request_logger.errors import AuthError

CLEAR_LOGS_ACTION = "clear_request_logs"
NONCE_MAX_AGE = 60 * 60 * 24  # 1 day


def _sign(secret: str, payload: str) -> str:
    return hmac.new(secret.encode(), payload.encode(), hashlib.sha256).hexdigest()


def create_nonce(secret: str, action: str, now: float | None = None) -> str:
    """Return an action-bound token of the form ``<expires>:<signature>``."""
    expires = int((now if now is not None else time.time()) + NONCE_MAX_AGE)
    return f"{expires}:{_sign(secret, f'{action}:{expires}')}"


def verify_nonce(secret: str, action: str, nonce: str | None, now: float | None = None) -> bool:
    if not nonce:
        return False
    parts = nonce.split(":")
    if len(parts) != 2:
        return False
    expires_str, sig = parts
    try:
        expires = int(expires_str)
    except ValueError:
        return False
    if (now if now is not None else time.time()) > expires:
        return False
    expected = _sign(secret, f"{action}:{expires_str}")
    return hmac.compare_digest(sig, expected)


def _presented_token(authorization: str | None) -> str | None:
    """Token from a ``Bearer <token>`` header, or the password of a ``Basic`` one."""
    if not authorization:
        return None
    scheme, _, value = authorization.partition(" ")
    scheme = scheme.lower()
    if scheme == "bearer":
        return value.strip()
    if scheme == "basic":
        try:
            decoded = base64.b64decode(value.strip(), validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return None
        _, sep, password = decoded.partition(":")
        return password if sep else None
    return None


def check_admin_token(expected: str | None, authorization: str | None) -> bool:
    """True only if an admin token is configured and the request presents it.

    With no token configured every admin request is refused.
    """
    if not expected:
        return False
    token = _presented_token(authorization)
    if token is None:
        return False
    return hmac.compare_digest(token.encode(), expected.encode())


def authorize_clear(secret: str, admin_token: str | None, nonce: str | None,
                    authorization: str | None):
    """Raise AuthError unless the clear-logs action is allowed."""
    if not verify_nonce(secret, CLEAR_LOGS_ACTION, nonce):
        raise AuthError("Invalid security token")
    if not check_admin_token(admin_token, authorization):
        raise AuthError("Insufficient permissions")

from typing import Any

from jose import JWTError, jwt

from hms_core.core.config import get_settings


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a JWT token.
    Raises ValueError with descriptive message if token is invalid or expired.

    Tokens are issued elsewhere; this core only verifies them. Expected claims:
    ``sub`` (actor id) and ``roles`` (list of role names).
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        # Check if it's an expiration error
        error_str = str(exc).lower()
        if "expired" in error_str:
            raise ValueError("Token has expired. Please log in again.") from None
        raise ValueError("Invalid token") from exc
    return payload

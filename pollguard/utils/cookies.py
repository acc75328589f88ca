from typing import Optional
from flask import current_app, request

from .device_token import sign_value, unsign_value


def device_cookie_name(poll_id: int) -> str:
    return f"dbt_{poll_id}"


def voted_cookie_name(poll_id: int) -> str:
    return f"voted_{poll_id}"


def read_signed_cookie(name: str) -> Optional[str]:
    """Signed cookie value, or None when absent or tampered with."""
    raw = request.cookies.get(name)
    if not raw:
        return None
    value = unsign_value(raw)
    if value is None:
        current_app.logger.warning("Ignoring tampered cookie %s", name)
    return value


def set_signed_cookie(response, name: str, value: str) -> None:
    response.set_cookie(
        name,
        sign_value(value),
        max_age=current_app.config.get("DEVICE_COOKIE_MAX_AGE", 31536000),
        path="/",
        samesite="Lax",
        httponly=True,
        secure=current_app.config.get("DEVICE_COOKIE_SECURE", False),
    )

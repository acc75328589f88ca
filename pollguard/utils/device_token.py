import secrets
import hmac
import hashlib
from typing import Optional
from flask import current_app


def generate_raw_token(length: int = 32) -> str:
    return secrets.token_urlsafe(length)


def _secret() -> bytes:
    return current_app.config["SECRET_KEY"].encode("utf-8")


def token_digest(raw_token: str) -> str:
    """
    Deterministic digest using HMAC-SHA256 with SECRET_KEY.
    Safe to store in DB; raw token stays client-side.
    """
    return hmac.new(_secret(), raw_token.encode("utf-8"), hashlib.sha256).hexdigest()


def sign_value(value: str) -> str:
    """Append an HMAC so a client-held value is tamper-evident: '<value>.<sig>'."""
    sig = hmac.new(_secret(), b"cookie:" + value.encode("utf-8"), hashlib.sha256).hexdigest()
    return f"{value}.{sig}"


def unsign_value(signed: Optional[str]) -> Optional[str]:
    """Return the original value, or None when missing or tampered."""
    if not signed or "." not in signed:
        return None
    value, _, sig = signed.rpartition(".")
    expected = sign_value(value).rpartition(".")[2]
    if not hmac.compare_digest(sig, expected):
        return None
    return value

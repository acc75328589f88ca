"""
Device fingerprint hashing.

The signature is a heuristic device proxy, not an identity guarantee:
identically configured machines collide, and changing any tracked attribute
evades it. Tune the trade-off through FINGERPRINT_FIELDS and
FINGERPRINT_MIN_ATTRIBUTES rather than adding entropy.
"""
import hashlib
from typing import Any, Dict, Iterable, Mapping, Optional

SERVER_FIELDS = ("userAgent", "platform", "model", "language")
CLIENT_FIELDS = (
    "screenWidth",
    "screenHeight",
    "colorDepth",
    "language",
    "timezone",
    "hardwareConcurrency",
    "deviceMemory",
    "touchSupport",
)


def _strip_quotes(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.replace('"', "").strip() or None


def extract_server_signals(headers: Mapping[str, str]) -> Dict[str, Any]:
    """Attributes the server observes directly: user agent and client hints."""
    accept_language = headers.get("Accept-Language") or ""
    primary = accept_language.split(",")[0].split(";")[0].strip()
    language = primary.split("-")[0] if primary else None

    return {
        "userAgent": headers.get("User-Agent") or "",
        "platform": _strip_quotes(headers.get("Sec-CH-UA-Platform")),
        "model": _strip_quotes(headers.get("Sec-CH-UA-Model")),
        "language": language or None,
    }


def _canonical_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class FingerprintHasher:
    def __init__(self, secret: str, fields: Iterable[str], min_attributes: int = 1):
        self.secret = secret
        self.fields = tuple(fields)
        self.min_attributes = min_attributes

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "FingerprintHasher":
        return cls(
            secret=config["FINGERPRINT_SECRET"],
            fields=config["FINGERPRINT_FIELDS"],
            min_attributes=config.get("FINGERPRINT_MIN_ATTRIBUTES", 1),
        )

    @staticmethod
    def merge(server_signals: Mapping[str, Any], client_signals: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        # Client-reported values win when both sides supply a field
        merged = {k: v for k, v in server_signals.items() if v not in (None, "")}
        for key, value in (client_signals or {}).items():
            if value not in (None, ""):
                merged[key] = value
        return merged

    def populated_count(self, attributes: Mapping[str, Any]) -> int:
        return sum(1 for f in self.fields if attributes.get(f) not in (None, ""))

    def is_sufficient(self, attributes: Mapping[str, Any]) -> bool:
        return self.populated_count(attributes) >= self.min_attributes

    def canonical(self, attributes: Mapping[str, Any]) -> str:
        return "|".join(_canonical_value(attributes.get(f)) for f in self.fields)

    def fingerprint(self, server_signals: Mapping[str, Any], client_signals: Optional[Mapping[str, Any]] = None) -> str:
        attributes = self.merge(server_signals, client_signals)
        salted = f"{self.canonical(attributes)}|{self.secret}"
        return hashlib.sha256(salted.encode("utf-8")).hexdigest()

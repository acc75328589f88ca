import hashlib
import hmac


def create_voter_hash(ip: str, user_agent: str, secret: str) -> str:
    """One-way hash of the voter's network identity. Never reversed."""
    data = f"{ip}|{user_agent}|{secret}"
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def keys_match(presented: str, expected: str) -> bool:
    return hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))

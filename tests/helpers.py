"""Request builders shared by the API tests."""


def device_headers(ip: str = "203.0.113.10", user_agent: str = "Mozilla/5.0 (X11; Linux x86_64) Firefox/128.0") -> dict:
    return {
        "X-Forwarded-For": ip,
        "User-Agent": user_agent,
        "Accept-Language": "en-GB,en;q=0.9",
    }


def client_signals(**overrides) -> dict:
    signals = {
        "screenWidth": 1920,
        "screenHeight": 1080,
        "colorDepth": 24,
        "language": "en-GB",
        "timezone": "Europe/London",
        "hardwareConcurrency": 8,
        "deviceMemory": 8,
        "touchSupport": False,
    }
    signals.update(overrides)
    return signals

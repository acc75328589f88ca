import pytest

from pollguard.config import DEFAULT_FINGERPRINT_FIELDS
from pollguard.services.fingerprint import FingerprintHasher, extract_server_signals

FIELDS = DEFAULT_FINGERPRINT_FIELDS.split(",")


@pytest.fixture
def hasher():
    return FingerprintHasher(secret="s3cret", fields=FIELDS)


SERVER = {"userAgent": "Mozilla/5.0", "platform": "Linux", "model": None, "language": "en"}
CLIENT = {"screenWidth": 1920, "screenHeight": 1080, "language": "en-GB", "touchSupport": False}


class TestServerSignals:
    def test_extracts_user_agent_and_client_hints(self):
        signals = extract_server_signals({
            "User-Agent": "Mozilla/5.0",
            "Sec-CH-UA-Platform": '"macOS"',
            "Sec-CH-UA-Model": '""',
            "Accept-Language": "fr-CA,fr;q=0.9,en;q=0.8",
        })

        assert signals == {"userAgent": "Mozilla/5.0", "platform": "macOS", "model": None, "language": "fr"}

    def test_missing_headers(self):
        assert extract_server_signals({}) == {"userAgent": "", "platform": None, "model": None, "language": None}


class TestFingerprintHasher:
    def test_deterministic(self, hasher):
        assert hasher.fingerprint(SERVER, CLIENT) == hasher.fingerprint(dict(SERVER), dict(CLIENT))

    def test_fixed_length_hex(self, hasher):
        signature = hasher.fingerprint(SERVER, CLIENT)
        assert len(signature) == 64
        int(signature, 16)

    def test_client_value_wins_over_server(self, hasher):
        merged = hasher.merge(SERVER, CLIENT)
        assert merged["language"] == "en-GB"
        assert merged["platform"] == "Linux"

    def test_empty_client_value_does_not_erase_server_value(self, hasher):
        merged = hasher.merge(SERVER, {"language": None})
        assert merged["language"] == "en"

    def test_secret_changes_signature(self):
        a = FingerprintHasher(secret="one", fields=FIELDS).fingerprint(SERVER, CLIENT)
        b = FingerprintHasher(secret="two", fields=FIELDS).fingerprint(SERVER, CLIENT)
        assert a != b

    def test_changing_a_tracked_attribute_changes_signature(self, hasher):
        resized = dict(CLIENT, screenWidth=1280)
        assert hasher.fingerprint(SERVER, CLIENT) != hasher.fingerprint(SERVER, resized)

    def test_untracked_attribute_is_ignored(self):
        narrow = FingerprintHasher(secret="s", fields=["userAgent", "timezone"])
        assert narrow.fingerprint(SERVER, CLIENT) == narrow.fingerprint(SERVER, dict(CLIENT, screenWidth=1))

    def test_canonical_form_is_order_stable(self, hasher):
        shuffled = dict(reversed(list(CLIENT.items())))
        assert hasher.canonical(hasher.merge(SERVER, CLIENT)) == hasher.canonical(hasher.merge(SERVER, shuffled))

    def test_canonical_value_formatting(self):
        narrow = FingerprintHasher(secret="s", fields=["deviceMemory", "touchSupport", "model"])
        assert narrow.canonical({"deviceMemory": 8.0, "touchSupport": True}) == "8|true|"

    def test_min_attributes_threshold(self):
        strict = FingerprintHasher(secret="s", fields=FIELDS, min_attributes=3)
        assert strict.is_sufficient(strict.merge({"userAgent": "UA"}, None)) is False
        assert strict.is_sufficient(strict.merge(SERVER, None)) is True

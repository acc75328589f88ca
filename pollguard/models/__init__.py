from .poll import Poll  # noqa: F401
from .device_binding import DeviceBinding  # noqa: F401
from .fingerprint_block import FingerprintBlock  # noqa: F401
from .vote import Vote  # noqa: F401
from .audit_log import AuditLog  # noqa: F401
from .token_blocklist import TokenBlocklist  # noqa: F401

# Import ALL models so SQLAlchemy registers them

__all__ = [
    "Poll",
    "DeviceBinding",
    "FingerprintBlock",
    "Vote",
    "AuditLog",
    "TokenBlocklist",
]

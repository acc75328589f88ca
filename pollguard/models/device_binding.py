import uuid
from datetime import datetime
from ..extensions import db


class DeviceBinding(db.Model):
    __tablename__ = "device_bindings"

    STATUS_ACTIVE = "ACTIVE"
    STATUS_VOTED = "VOTED"
    VALID_STATUSES = (STATUS_ACTIVE, STATUS_VOTED)

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    poll_id = db.Column(db.Integer, db.ForeignKey("polls.id", ondelete="CASCADE"), nullable=False, index=True)

    # Store only an HMAC digest of the token; the raw token stays client-side
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    status = db.Column(db.String(10), nullable=False, default=STATUS_ACTIVE)
    voted_at = db.Column(db.DateTime, nullable=True)
    fingerprint_signature = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    __table_args__ = (
        db.CheckConstraint(
            "(status = 'VOTED' AND voted_at IS NOT NULL) OR (status = 'ACTIVE' AND voted_at IS NULL)",
            name="ck_device_bindings_status_voted_at",
        ),
    )

    @property
    def has_voted(self) -> bool:
        return self.status == self.STATUS_VOTED

from datetime import datetime
from ..extensions import db


class FingerprintBlock(db.Model):
    __tablename__ = "fingerprint_blocks"

    id = db.Column(db.Integer, primary_key=True)
    poll_id = db.Column(db.Integer, db.ForeignKey("polls.id", ondelete="CASCADE"), nullable=False, index=True)
    signature = db.Column(db.String(64), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("poll_id", "signature", name="uq_fingerprint_blocks_poll_signature"),
    )

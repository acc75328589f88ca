import uuid
from datetime import datetime
from ..extensions import db


class Vote(db.Model):
    __tablename__ = "votes"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    poll_id = db.Column(db.Integer, db.ForeignKey("polls.id", ondelete="CASCADE"), nullable=False, index=True)
    option = db.Column(db.Integer, nullable=False)

    # sha256(ip|user-agent|HASH_SECRET)
    voter_hash = db.Column(db.String(64), nullable=False, index=True)

    # Explicit link to the binding that cast this vote.
    # Cleared (not deleted) when an admin reset retains the vote.
    device_binding_id = db.Column(
        db.Uuid,
        db.ForeignKey("device_bindings.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    __table_args__ = (
        db.CheckConstraint("option >= 1", name="ck_votes_option_positive"),
    )

from datetime import datetime
from ..extensions import db


class Poll(db.Model):
    __tablename__ = "polls"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=True)

    is_open = db.Column(db.Boolean, nullable=False, default=True)
    # Options are numbered 1..option_count
    option_count = db.Column(db.Integer, nullable=False, default=6)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def accepts_option(self, option: int) -> bool:
        return 1 <= option <= self.option_count

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from flask import current_app
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models.device_binding import DeviceBinding
from ..models.vote import Vote
from .exceptions import StorageError
from .fingerprint_block import ALREADY_EXISTS, FingerprintBlockStore


class CommitOutcome(str, Enum):
    SUCCESS = "success"
    ALREADY_VOTED = "already_voted"
    CONFLICT = "conflict"


@dataclass
class CommitResult:
    outcome: CommitOutcome
    vote: Optional[Vote] = None

    @property
    def ok(self) -> bool:
        return self.outcome is CommitOutcome.SUCCESS


class VoteCommitTransaction:
    """
    The only writer of votes, VOTED bindings and fingerprint blocks.

    Vote insert, ACTIVE->VOTED transition and block insert are committed as
    one unit. Losing a race on any of them rolls everything back and is
    reported as a duplicate outcome, never as a generic failure.
    """

    def __init__(self, block_store: Optional[FingerprintBlockStore] = None):
        self.block_store = block_store or FingerprintBlockStore()

    def _claim_binding(self, binding: DeviceBinding, signature: str, now: datetime) -> bool:
        if inspect(binding).transient:
            binding.status = DeviceBinding.STATUS_VOTED
            binding.voted_at = now
            binding.fingerprint_signature = signature
            db.session.add(binding)
            db.session.flush()
            return True

        # Conditional transition: a concurrent committer that already moved
        # this row to VOTED leaves nothing to update.
        claimed = (
            DeviceBinding.query
            .filter_by(id=binding.id, status=DeviceBinding.STATUS_ACTIVE)
            .update(
                {
                    "status": DeviceBinding.STATUS_VOTED,
                    "voted_at": now,
                    "fingerprint_signature": signature,
                },
                synchronize_session=False,
            )
        )
        return claimed == 1

    def commit(self, poll_id: int, option: int, binding: DeviceBinding, signature: str, voter_hash: str) -> CommitResult:
        now = datetime.utcnow()

        try:
            if not self._claim_binding(binding, signature, now):
                db.session.rollback()
                current_app.logger.info("Vote commit lost binding race poll_id=%s", poll_id)
                return CommitResult(CommitOutcome.ALREADY_VOTED)

            vote = Vote(
                poll_id=poll_id,
                option=option,
                voter_hash=voter_hash,
                device_binding_id=binding.id,
                created_at=now,
            )
            db.session.add(vote)
            db.session.flush()

            if self.block_store.insert(poll_id, signature) == ALREADY_EXISTS:
                db.session.rollback()
                current_app.logger.info("Vote commit lost fingerprint race poll_id=%s", poll_id)
                return CommitResult(CommitOutcome.CONFLICT)

            db.session.commit()

        except IntegrityError:
            db.session.rollback()
            current_app.logger.info("Vote commit hit uniqueness conflict poll_id=%s", poll_id)
            return CommitResult(CommitOutcome.CONFLICT)

        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception("DB error while committing vote poll_id=%s", poll_id)
            raise StorageError("Failed to record vote") from e

        return CommitResult(CommitOutcome.SUCCESS, vote=vote)

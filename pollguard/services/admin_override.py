from dataclasses import dataclass, field
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.device_binding import DeviceBinding
from ..models.fingerprint_block import FingerprintBlock
from ..models.poll import Poll
from ..models.vote import Vote
from ..utils.audit import audit_log
from .device_binding import DeviceBindingResolver
from .exceptions import StorageError
from .fingerprint_block import FingerprintBlockStore

NO_REASON = "No reason provided"


@dataclass
class ResetResult:
    found: bool
    binding_id: Optional[str] = None
    block_removed: bool = False
    vote_removed: bool = False
    vote_detached: bool = False


@dataclass
class ClearResult:
    mode: str
    deleted: dict = field(default_factory=dict)


class AdminOverrideService:
    """
    Operator-only reversal of the vote pipeline.

    reset() is the single path that moves a DeviceBinding from VOTED back to
    ACTIVE. Whether the linked vote is deleted or kept in the tally is an
    explicit switch (remove_vote), defaulting to ADMIN_RESET_REMOVES_VOTE.
    """

    def __init__(self, resolver: Optional[DeviceBindingResolver] = None, block_store: Optional[FingerprintBlockStore] = None):
        self.resolver = resolver or DeviceBindingResolver()
        self.block_store = block_store or FingerprintBlockStore()

    def reset(self, token: str, reason: Optional[str] = None, remove_vote: Optional[bool] = None) -> ResetResult:
        binding = self.resolver.find_any_poll(token)
        if binding is None:
            return ResetResult(found=False)

        if remove_vote is None:
            remove_vote = current_app.config.get("ADMIN_RESET_REMOVES_VOTE", True)
        reason = reason or NO_REASON
        result = ResetResult(found=True, binding_id=str(binding.id))

        try:
            # Re-read under a row lock; a vote committed since the lookup
            # must have its block removed too
            db.session.refresh(binding, with_for_update=True)
            signature = binding.fingerprint_signature
            previous_status = binding.status

            binding.status = DeviceBinding.STATUS_ACTIVE
            binding.voted_at = None
            binding.fingerprint_signature = None

            if signature:
                result.block_removed = self.block_store.delete(binding.poll_id, signature) > 0

            vote = Vote.query.filter_by(device_binding_id=binding.id).first()
            if vote is not None:
                if remove_vote:
                    db.session.delete(vote)
                    result.vote_removed = True
                else:
                    vote.device_binding_id = None
                    result.vote_detached = True

            audit_log(
                action="DEVICE_RESET",
                entity_type="DEVICE",
                entity_id=str(binding.id),
                details={
                    "poll_id": binding.poll_id,
                    "token_prefix": binding.token_hash[:8],
                    "reason": reason,
                    "previous_status": previous_status,
                    "remove_vote": bool(remove_vote),
                    "block_removed": result.block_removed,
                    "vote_removed": result.vote_removed,
                    "vote_detached": result.vote_detached,
                },
            )
            db.session.commit()

        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception("DB error while resetting device")
            raise StorageError("Failed to reset device") from e

        current_app.logger.info(
            "Admin override: reset device %s... reason=%s", binding.token_hash[:8], reason
        )
        return result

    def clear_votes(self, poll_id: int) -> ClearResult:
        """Soft clear: delete the poll's votes only. Bindings and blocks stay."""
        try:
            deleted = Vote.query.filter_by(poll_id=poll_id).delete(synchronize_session=False)
            audit_log(
                action="VOTES_CLEARED",
                entity_type="POLL",
                entity_id=str(poll_id),
                details={"mode": "soft", "votes_deleted": deleted},
            )
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception("DB error while clearing votes")
            raise StorageError("Failed to clear votes") from e

        return ClearResult(mode="soft", deleted={"votes": deleted})

    def hard_reset(self, poll_id: int) -> ClearResult:
        """Wipe votes, bindings and blocks, then reopen the poll."""
        try:
            votes = Vote.query.filter_by(poll_id=poll_id).delete(synchronize_session=False)
            blocks = FingerprintBlock.query.filter_by(poll_id=poll_id).delete(synchronize_session=False)
            bindings = DeviceBinding.query.filter_by(poll_id=poll_id).delete(synchronize_session=False)

            poll = db.session.get(Poll, poll_id)
            if poll is None:
                poll = Poll(id=poll_id, option_count=current_app.config.get("DEFAULT_OPTION_COUNT", 6))
                db.session.add(poll)
            poll.is_open = True

            deleted = {"votes": votes, "fingerprint_blocks": blocks, "device_bindings": bindings}
            audit_log(
                action="POLL_HARD_RESET",
                entity_type="POLL",
                entity_id=str(poll_id),
                details={"mode": "hard", **deleted},
            )
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception("DB error during hard reset")
            raise StorageError("Failed to hard reset poll") from e

        db.session.expire_all()
        return ClearResult(mode="hard", deleted=deleted)

from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models.fingerprint_block import FingerprintBlock

CREATED = "created"
ALREADY_EXISTS = "already_exists"


def _insert_ignoring_conflict():
    dialect = db.session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as pg_insert
        return pg_insert(FingerprintBlock).on_conflict_do_nothing(
            index_elements=["poll_id", "signature"]
        )
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as sqlite_insert
        return sqlite_insert(FingerprintBlock).on_conflict_do_nothing(
            index_elements=["poll_id", "signature"]
        )
    if dialect in ("mysql", "mariadb"):
        return insert(FingerprintBlock).prefix_with("IGNORE")
    return None


class FingerprintBlockStore:
    """
    Per-poll record of signatures that have consumed a vote.

    The (poll_id, signature) unique constraint is the enforcement primitive;
    is_blocked() is only a fast pre-check.
    """

    def is_blocked(self, poll_id: int, signature: str) -> bool:
        return (
            db.session.query(FingerprintBlock.id)
            .filter_by(poll_id=poll_id, signature=signature)
            .first()
            is not None
        )

    def insert(self, poll_id: int, signature: str) -> str:
        """
        Insert within the caller's transaction. Idempotent: reports
        ALREADY_EXISTS instead of raising when the row is present.
        """
        stmt = _insert_ignoring_conflict()
        if stmt is None:
            return self._insert_in_savepoint(poll_id, signature)

        result = db.session.execute(stmt.values(poll_id=poll_id, signature=signature))
        return CREATED if result.rowcount == 1 else ALREADY_EXISTS

    def _insert_in_savepoint(self, poll_id: int, signature: str) -> str:
        # No conflict-ignoring insert on this dialect; let the constraint decide
        try:
            with db.session.begin_nested():
                db.session.add(FingerprintBlock(poll_id=poll_id, signature=signature))
        except IntegrityError:
            return ALREADY_EXISTS
        return CREATED

    def delete(self, poll_id: int, signature: str) -> int:
        return (
            FingerprintBlock.query
            .filter_by(poll_id=poll_id, signature=signature)
            .delete(synchronize_session=False)
        )

    def count(self, poll_id: int) -> int:
        return FingerprintBlock.query.filter_by(poll_id=poll_id).count()

from dataclasses import dataclass
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models.device_binding import DeviceBinding
from ..utils.device_token import generate_raw_token, token_digest
from .exceptions import StorageError, TokenCollisionError


@dataclass
class ResolvedBinding:
    binding: DeviceBinding
    raw_token: str
    created: bool


class DeviceBindingResolver:
    """
    Resolves a presented device-bound token to its binding, or mints a new one.

    Resolution never mutates an existing binding and never fails for a bad
    token; an unknown token simply yields a fresh ACTIVE binding.
    """

    def find(self, poll_id: int, raw_token: Optional[str]) -> Optional[DeviceBinding]:
        if not raw_token:
            return None
        return DeviceBinding.query.filter_by(poll_id=poll_id, token_hash=token_digest(raw_token)).first()

    def find_any_poll(self, raw_token: str) -> Optional[DeviceBinding]:
        return DeviceBinding.query.filter_by(token_hash=token_digest(raw_token)).first()

    def mint(self, poll_id: int) -> ResolvedBinding:
        """Build a new ACTIVE binding without adding it to the session."""
        raw_token = generate_raw_token()
        digest = token_digest(raw_token)

        if db.session.query(DeviceBinding.id).filter_by(token_hash=digest).first() is not None:
            current_app.logger.warning("Minted device token collided with an existing binding")
            raise TokenCollisionError("Minted device token already exists")

        binding = DeviceBinding(
            poll_id=poll_id,
            token_hash=digest,
            status=DeviceBinding.STATUS_ACTIVE,
        )
        return ResolvedBinding(binding=binding, raw_token=raw_token, created=True)

    def resolve(self, poll_id: int, presented_token: Optional[str] = None, persist: bool = True) -> ResolvedBinding:
        """
        Return the binding for `presented_token`, minting one if it is absent or unknown.

        With persist=False a minted binding is left transient so that only the
        vote commit makes it durable.
        """
        existing = self.find(poll_id, presented_token)
        if existing is not None:
            return ResolvedBinding(binding=existing, raw_token=presented_token, created=False)

        resolved = self.mint(poll_id)
        if not persist:
            return resolved

        try:
            db.session.add(resolved.binding)
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise TokenCollisionError("Minted device token already exists") from e
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception("DB error while creating device binding")
            raise StorageError("Failed to create device binding") from e

        return resolved

from typing import Optional, Dict, Any
from flask import request, current_app
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity, get_jwt

from ..extensions import db
from ..models.audit_log import AuditLog
from .client_ip import get_client_ip


def _optional_actor():
    """
    Returns (identity, role) or (None, None).
    Works for both authenticated and anonymous requests.
    """
    try:
        verify_jwt_in_request(optional=True)
        claims = get_jwt()
        return get_jwt_identity(), claims.get("role")
    except Exception:
        return None, None


def audit_log(
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """Stage an audit row on the current session; the caller commits."""
    actor, role = _optional_actor()
    ua = request.headers.get("User-Agent")

    log = AuditLog(
        actor=str(actor) if actor else None,
        actor_role=role,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id if entity_id else None,
        ip_address=get_client_ip(),
        user_agent=ua[:255] if ua else None,
        details=details or None,
    )
    db.session.add(log)
    return log


def safe_audit(action: str, entity_type: str, entity_id: Optional[str] = None, details: Optional[dict] = None):
    """
    Best-effort audit for read-only or rejected requests.
    Commits the audit row on its own and never breaks the response.
    """
    try:
        audit_log(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details or {},
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Audit logging failed: %s", action)

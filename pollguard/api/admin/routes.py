from datetime import datetime, timedelta, timezone
from flask import Blueprint, request, current_app
from flasgger import swag_from
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ...errors import error_response
from ...extensions import db, rate_limiter
from ...models.audit_log import AuditLog
from ...models.device_binding import DeviceBinding
from ...models.poll import Poll
from ...models.vote import Vote
from ...schemas.admin import (
    AuditLogQuerySchema,
    AuditLogReadSchema,
    DeviceBindingReadSchema,
    DeviceResetSchema,
    HardResetSchema,
    PollStateSchema,
    RateLimitStatusSchema,
)
from ...services.admin_override import AdminOverrideService
from ...services.exceptions import StorageError
from ...services.fingerprint_block import FingerprintBlockStore
from ...utils.audit import audit_log, safe_audit
from ...utils.client_ip import get_client_ip
from ...utils.rbac import admin_required
from ...utils.validation import load_or_abort

admin_bp = Blueprint("admin", __name__)

device_reset_schema = DeviceResetSchema()
hard_reset_schema = HardResetSchema()
poll_state_schema = PollStateSchema()
device_read_many_schema = DeviceBindingReadSchema(many=True)
rate_limit_status_schema = RateLimitStatusSchema()
audit_log_query_schema = AuditLogQuerySchema()
audit_log_read_many_schema = AuditLogReadSchema(many=True)

RECENT_DEVICES_LIMIT = 100


def _naive_utc(value: datetime) -> datetime:
    # Timestamps are stored as naive UTC
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@admin_bp.post("/polls/<int:poll_id>/state")
@admin_required
@swag_from({
    "tags": ["Admin"],
    "security": [{"BearerAuth": []}],
    "summary": "Open or close a poll (creates it if absent)",
    "parameters": [{
        "in": "body",
        "name": "body",
        "required": True,
        "schema": {
            "type": "object",
            "properties": {
                "isOpen": {"type": "boolean"},
                "optionCount": {"type": "integer", "example": 6},
                "title": {"type": "string"},
            },
            "required": ["isOpen"],
        },
    }],
    "responses": {200: {"description": "Updated"}, 400: {"description": "Validation error"}, 403: {"description": "Forbidden"}},
})
def set_poll_state(poll_id):
    payload = request.get_json(silent=True) or {}
    data = load_or_abort(poll_state_schema, payload)

    try:
        poll = db.session.get(Poll, poll_id)
        created = poll is None
        if created:
            poll = Poll(id=poll_id, option_count=current_app.config.get("DEFAULT_OPTION_COUNT", 6))
            db.session.add(poll)

        poll.is_open = data["is_open"]
        if "option_count" in data:
            poll.option_count = data["option_count"]
        if "title" in data:
            poll.title = data["title"] or None

        audit_log(
            action="POLL_CREATED" if created else "POLL_STATE_CHANGED",
            entity_type="POLL",
            entity_id=str(poll_id),
            details={"is_open": poll.is_open, "option_count": poll.option_count},
        )
        db.session.commit()

    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("DB error updating poll state")
        return error_response("INTERNAL_SERVER_ERROR", "Failed to update poll state", status=500)

    return {"success": True, "isOpen": poll.is_open, "optionCount": poll.option_count, "created": created}, 200


@admin_bp.get("/polls/<int:poll_id>/results")
@admin_required
@swag_from({
    "tags": ["Admin"],
    "security": [{"BearerAuth": []}],
    "summary": "Per-option vote counts",
    "responses": {200: {"description": "Results"}, 404: {"description": "Poll not found"}, 403: {"description": "Forbidden"}},
})
def poll_results(poll_id):
    poll = db.session.get(Poll, poll_id)
    if not poll:
        return error_response("NOT_FOUND", "Poll not found", status=404)

    try:
        rows = (
            db.session.query(Vote.option, func.count(Vote.id))
            .filter(Vote.poll_id == poll_id)
            .group_by(Vote.option)
            .all()
        )
    except SQLAlchemyError:
        current_app.logger.exception("DB error fetching results")
        return error_response("INTERNAL_SERVER_ERROR", "Failed to fetch results", status=500)

    counts = [0] * poll.option_count
    for option, count in rows:
        if 1 <= option <= poll.option_count:
            counts[option - 1] = int(count)

    return {"pollId": poll_id, "counts": counts, "total": sum(counts)}, 200


@admin_bp.get("/polls/<int:poll_id>/devices")
@admin_required
@swag_from({
    "tags": ["Admin"],
    "security": [{"BearerAuth": []}],
    "summary": "Recent device bindings, block stats and vote activity",
    "responses": {200: {"description": "Devices"}, 403: {"description": "Forbidden"}},
})
def list_devices(poll_id):
    since_24h = datetime.utcnow() - timedelta(hours=24)

    try:
        devices = (
            DeviceBinding.query
            .filter_by(poll_id=poll_id)
            .order_by(DeviceBinding.created_at.desc())
            .limit(RECENT_DEVICES_LIMIT)
            .all()
        )
        total_devices = DeviceBinding.query.filter_by(poll_id=poll_id).count()
        voted_devices = DeviceBinding.query.filter(
            DeviceBinding.poll_id == poll_id,
            DeviceBinding.voted_at.isnot(None),
        ).count()
        fingerprint_blocks = FingerprintBlockStore().count(poll_id)
        recent_votes = (
            db.session.query(Vote.created_at)
            .filter(Vote.poll_id == poll_id, Vote.created_at >= since_24h)
            .all()
        )
    except SQLAlchemyError:
        current_app.logger.exception("DB error fetching device data")
        return error_response("INTERNAL_SERVER_ERROR", "Failed to fetch device data", status=500)

    by_hour = {}
    for (created_at,) in recent_votes:
        by_hour[created_at.hour] = by_hour.get(created_at.hour, 0) + 1

    return {
        "devices": device_read_many_schema.dump(devices),
        "stats": {
            "totalDevices": total_devices,
            "votedDevices": voted_devices,
            "fingerprintBlocks": fingerprint_blocks,
            "rateLimitStatus": rate_limit_status_schema.dump(rate_limiter.status(get_client_ip())),
        },
        "votesByHour": [{"hour": h, "count": c} for h, c in sorted(by_hour.items())],
    }, 200


@admin_bp.post("/devices/reset")
@admin_required
@swag_from({
    "tags": ["Admin"],
    "security": [{"BearerAuth": []}],
    "summary": "Reset a device so it may vote once more",
    "description": (
        "Returns the binding to ACTIVE, deletes its fingerprint block and, "
        "depending on removeVote (default ADMIN_RESET_REMOVES_VOTE), deletes "
        "the linked vote or keeps it in the tally."
    ),
    "parameters": [{
        "in": "body",
        "name": "body",
        "required": True,
        "schema": {
            "type": "object",
            "properties": {
                "token": {"type": "string"},
                "reason": {"type": "string"},
                "removeVote": {"type": "boolean"},
            },
            "required": ["token"],
        },
    }],
    "responses": {200: {"description": "Reset"}, 400: {"description": "Validation error"}, 404: {"description": "Device not found"}},
})
def reset_device():
    payload = request.get_json(silent=True) or {}
    data = load_or_abort(device_reset_schema, payload)

    try:
        result = AdminOverrideService().reset(
            data["token"],
            reason=data.get("reason"),
            remove_vote=data.get("remove_vote"),
        )
    except StorageError:
        return error_response("RESET_FAILED", "Failed to process action", status=500)

    if not result.found:
        safe_audit(
            action="DEVICE_RESET_NOT_FOUND",
            entity_type="DEVICE",
            details={"reason": data.get("reason")},
        )
        return error_response("DEVICE_NOT_FOUND", "Device not found", status=404)

    return {
        "success": True,
        "bindingId": result.binding_id,
        "blockRemoved": result.block_removed,
        "voteRemoved": result.vote_removed,
        "voteDetached": result.vote_detached,
    }, 200


@admin_bp.post("/polls/<int:poll_id>/clear-votes")
@admin_required
@swag_from({
    "tags": ["Admin"],
    "security": [{"BearerAuth": []}],
    "summary": "Soft clear: delete all votes, keep device bindings and fingerprint blocks",
    "responses": {200: {"description": "Cleared"}, 403: {"description": "Forbidden"}},
})
def clear_votes(poll_id):
    try:
        result = AdminOverrideService().clear_votes(poll_id)
    except StorageError:
        return error_response("CLEAR_FAILED", "Failed to clear votes", status=500)

    return {"success": True, "resetType": result.mode, "deletedCount": result.deleted["votes"]}, 200


@admin_bp.post("/polls/<int:poll_id>/hard-reset")
@admin_required
@swag_from({
    "tags": ["Admin"],
    "security": [{"BearerAuth": []}],
    "summary": "Hard reset: wipe votes, device bindings and fingerprint blocks, reopen the poll",
    "parameters": [{
        "in": "body",
        "name": "body",
        "required": True,
        "schema": {
            "type": "object",
            "properties": {"confirm": {"type": "string", "example": "HARD_RESET"}},
            "required": ["confirm"],
        },
    }],
    "responses": {200: {"description": "Wiped"}, 400: {"description": "Missing confirmation"}, 403: {"description": "Forbidden"}},
})
def hard_reset(poll_id):
    payload = request.get_json(silent=True) or {}
    load_or_abort(hard_reset_schema, payload)

    try:
        result = AdminOverrideService().hard_reset(poll_id)
    except StorageError:
        return error_response("HARD_RESET_FAILED", "Failed to hard reset poll", status=500)

    return {
        "success": True,
        "resetType": result.mode,
        "message": "Hard reset completed - all data cleared",
        "deleted": result.deleted,
    }, 200


@admin_bp.get("/rate-limit")
@admin_required
@swag_from({
    "tags": ["Admin"],
    "security": [{"BearerAuth": []}],
    "summary": "Rate-limit window for an identity (defaults to the caller's IP)",
    "parameters": [{"in": "query", "name": "identity", "type": "string", "required": False}],
    "responses": {200: {"description": "Status"}},
})
def rate_limit_status():
    identity = request.args.get("identity") or get_client_ip()
    status = rate_limiter.status(identity)
    return {"identity": identity, **rate_limit_status_schema.dump(status)}, 200


@admin_bp.get("/audit-logs")
@admin_required
@swag_from({
    "tags": ["Admin"],
    "security": [{"BearerAuth": []}],
    "summary": "Audit trail of admin overrides, rejected votes and logins",
    "parameters": [
        {"in": "query", "name": "action", "type": "string", "required": False, "description": "e.g. DEVICE_RESET"},
        {"in": "query", "name": "entityType", "type": "string", "required": False, "description": "DEVICE, POLL, VOTE or AUTH"},
        {"in": "query", "name": "entityId", "type": "string", "required": False, "description": "Device binding id or poll id"},
        {"in": "query", "name": "from", "type": "string", "required": False, "description": "ISO date-time, UTC if no offset"},
        {"in": "query", "name": "to", "type": "string", "required": False, "description": "ISO date-time, UTC if no offset"},
        {"in": "query", "name": "limit", "type": "integer", "required": False, "default": 50},
        {"in": "query", "name": "offset", "type": "integer", "required": False, "default": 0},
    ],
    "responses": {200: {"description": "Logs, newest first"}, 400: {"description": "Validation error"}, 403: {"description": "Forbidden"}},
})
def audit_logs():
    query = load_or_abort(audit_log_query_schema, request.args.to_dict())

    filters = [
        getattr(AuditLog, column) == query[column]
        for column in ("action", "entity_type", "entity_id")
        if query.get(column)
    ]
    if "since" in query:
        filters.append(AuditLog.created_at >= _naive_utc(query["since"]))
    if "until" in query:
        filters.append(AuditLog.created_at <= _naive_utc(query["until"]))

    try:
        q = AuditLog.query.filter(*filters)
        total = q.count()
        logs = (
            q.order_by(AuditLog.created_at.desc())
            .offset(query["offset"])
            .limit(query["limit"])
            .all()
        )
    except SQLAlchemyError:
        current_app.logger.exception("DB error querying audit logs")
        return error_response("INTERNAL_SERVER_ERROR", "Failed to query audit logs", status=500)

    return {
        "total": total,
        "limit": query["limit"],
        "offset": query["offset"],
        "logs": audit_log_read_many_schema.dump(logs),
    }, 200

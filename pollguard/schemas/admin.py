from datetime import timezone

from marshmallow import EXCLUDE, Schema, fields, validate

from ..extensions import ma

HARD_RESET_CONFIRMATION = "HARD_RESET"


class DeviceResetSchema(Schema):
    token = fields.Str(required=True, validate=validate.Length(min=1, max=128))
    reason = fields.Str(required=False, allow_none=True, validate=validate.Length(max=500))
    # Explicit vote policy; falls back to ADMIN_RESET_REMOVES_VOTE when omitted
    remove_vote = fields.Bool(data_key="removeVote", required=False, allow_none=True)


class PollStateSchema(Schema):
    is_open = fields.Bool(data_key="isOpen", required=True)
    option_count = fields.Int(data_key="optionCount", required=False, strict=True, validate=validate.Range(min=1, max=100))
    title = fields.Str(required=False, allow_none=True, validate=validate.Length(max=200))


class HardResetSchema(Schema):
    confirm = fields.Str(
        required=True,
        validate=validate.Equal(HARD_RESET_CONFIRMATION, error=f"Must be exactly '{HARD_RESET_CONFIRMATION}'"),
    )


class DeviceBindingReadSchema(ma.Schema):
    id = fields.UUID()
    token = fields.Method("truncated_token", data_key="dbt")
    status = fields.Str()
    voted_at = fields.DateTime(data_key="votedAt", allow_none=True)
    created_at = fields.DateTime(data_key="createdAt")

    def truncated_token(self, obj):
        return obj.token_hash[:8] + "..."


class RateLimitStatusSchema(Schema):
    count = fields.Int()
    remaining = fields.Int()
    reset_at = fields.Float(data_key="resetAt")


class AuditLogQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    action = fields.Str(validate=validate.Length(max=80))
    entity_type = fields.Str(data_key="entityType", validate=validate.Length(max=50))
    # e.g. a device binding id, to follow one device's reset history
    entity_id = fields.Str(data_key="entityId", validate=validate.Length(max=64))
    since = fields.AwareDateTime(data_key="from", default_timezone=timezone.utc)
    until = fields.AwareDateTime(data_key="to", default_timezone=timezone.utc)
    limit = fields.Int(load_default=50, validate=validate.Range(min=1, max=200))
    offset = fields.Int(load_default=0, validate=validate.Range(min=0))


class AuditLogReadSchema(ma.Schema):
    id = fields.UUID()
    created_at = fields.DateTime(data_key="createdAt")
    actor = fields.Str(allow_none=True)
    actor_role = fields.Str(data_key="actorRole", allow_none=True)
    action = fields.Str()
    entity_type = fields.Str(data_key="entityType", allow_none=True)
    entity_id = fields.Str(data_key="entityId", allow_none=True)
    ip_address = fields.Str(data_key="ipAddress", allow_none=True)
    details = fields.Dict(allow_none=True)

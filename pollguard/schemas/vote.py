from marshmallow import Schema, fields, validate, pre_load, ValidationError, EXCLUDE


class ClientSignalsSchema(Schema):
    """Browser-reported device attributes; keys mirror the browser API names."""

    class Meta:
        unknown = EXCLUDE

    screenWidth = fields.Int(allow_none=True, validate=validate.Range(min=0, max=100000))
    screenHeight = fields.Int(allow_none=True, validate=validate.Range(min=0, max=100000))
    colorDepth = fields.Int(allow_none=True, validate=validate.Range(min=0, max=256))
    language = fields.Str(allow_none=True, validate=validate.Length(max=35))
    timezone = fields.Str(allow_none=True, validate=validate.Length(max=64))
    hardwareConcurrency = fields.Int(allow_none=True, validate=validate.Range(min=0, max=4096))
    deviceMemory = fields.Float(allow_none=True, validate=validate.Range(min=0))
    touchSupport = fields.Bool(allow_none=True)


class VoteSubmitSchema(Schema):
    option = fields.Int(required=True, strict=True, validate=validate.Range(min=1))
    # Device-bound token (optional; the cookie is preferred when present)
    token = fields.Str(required=False, allow_none=True, validate=validate.Length(max=128))
    client_signals = fields.Nested(ClientSignalsSchema, data_key="clientSignals", required=False, allow_none=True)

    @pre_load
    def reject_boolean_option(self, data, **kwargs):
        # JSON true/false would otherwise pass as 1/0
        if isinstance(data, dict) and isinstance(data.get("option"), bool):
            raise ValidationError("Not a valid integer.", field_name="option")
        return data


class VoteReceiptSchema(Schema):
    success = fields.Bool(required=True)
    vote_id = fields.Str(data_key="voteId")
    poll_id = fields.Int(data_key="pollId")
    option = fields.Int()
    token = fields.Str(allow_none=True)  # returned so the client can mirror it

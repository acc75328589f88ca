from marshmallow import Schema, fields, validate


class AdminLoginSchema(Schema):
    admin_key = fields.Str(data_key="adminKey", required=True, validate=validate.Length(min=1, max=256))

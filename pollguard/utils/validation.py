from flask import abort
from marshmallow import ValidationError


def validation_abort(errors, message: str = "Validation error"):
    abort(
        400,
        description={
            "code": "VALIDATION_ERROR",
            "message": message,
            "errors": errors,
        },
    )


def load_or_abort(schema, payload):
    """Deserialize `payload` with `schema`, aborting 400 with field errors on failure."""
    try:
        return schema.load(payload)
    except ValidationError as err:
        validation_abort(err.messages)

from flask import Blueprint, request, current_app, make_response
from flasgger import swag_from

from ...errors import error_response
from ...extensions import db
from ...models.poll import Poll
from ...services.device_binding import DeviceBindingResolver
from ...services.exceptions import PollGuardError
from ...utils.cookies import device_cookie_name, read_signed_cookie, set_signed_cookie

device_bp = Blueprint("device", __name__)


@device_bp.get("/<int:poll_id>/device/bootstrap")
@swag_from({
    "tags": ["Device"],
    "summary": "Return the caller's device-bound token, minting one if needed",
    "description": (
        "The token is read from the signed dbt cookie, or from the `token` query "
        "parameter when the client recovers it from its own storage. Unknown or "
        "missing tokens yield a new ACTIVE binding. The token is set as a "
        "long-lived, signed, HttpOnly cookie."
    ),
    "parameters": [{"in": "query", "name": "token", "required": False, "type": "string"}],
    "responses": {200: {"description": "Token"}, 404: {"description": "Poll not found"}, 500: {"description": "Server error"}},
})
def bootstrap(poll_id):
    if db.session.get(Poll, poll_id) is None:
        return error_response("NOT_FOUND", "Poll not found", status=404)

    presented = read_signed_cookie(device_cookie_name(poll_id)) or request.args.get("token")

    try:
        resolved = DeviceBindingResolver().resolve(poll_id, presented)
    except PollGuardError:
        current_app.logger.exception("Failed to bootstrap device poll_id=%s", poll_id)
        return error_response("BOOTSTRAP_FAILED", "Failed to bootstrap device", status=500)

    response = make_response({
        "dbt": resolved.raw_token,
        "status": resolved.binding.status,
        "created": resolved.created,
    }, 200)
    set_signed_cookie(response, device_cookie_name(poll_id), resolved.raw_token)
    return response

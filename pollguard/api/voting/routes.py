from flask import Blueprint, request, current_app, make_response
from flasgger import swag_from
from sqlalchemy.exc import SQLAlchemyError

from ...errors import error_response
from ...extensions import db, rate_limiter
from ...models.poll import Poll
from ...schemas.vote import VoteSubmitSchema, VoteReceiptSchema
from ...services.exceptions import PollGuardError
from ...services.fingerprint import FingerprintHasher, extract_server_signals
from ...services.vote_gate import GateOutcome, VoteAttempt, VotePipeline
from ...utils.audit import safe_audit
from ...utils.client_ip import get_client_ip
from ...utils.cookies import device_cookie_name, voted_cookie_name, read_signed_cookie, set_signed_cookie
from ...utils.security import create_voter_hash
from ...utils.validation import load_or_abort, validation_abort

voting_bp = Blueprint("voting", __name__)
vote_submit_schema = VoteSubmitSchema()
vote_receipt_schema = VoteReceiptSchema()


def _rate_limit_headers(rate_limit) -> dict:
    if rate_limit is None:
        return {}
    return {
        "X-RateLimit-Limit": rate_limit.limit,
        "X-RateLimit-Remaining": rate_limit.remaining,
        "X-RateLimit-Reset": int(rate_limit.reset_at),
    }


def _throttled_response(rate_limit):
    retry_after = rate_limit.retry_after(rate_limiter.clock())
    headers = _rate_limit_headers(rate_limit)
    headers["Retry-After"] = retry_after
    return error_response(
        "RATE_LIMITED",
        "Too many requests. Please try again later.",
        details={
            "retryAfter": retry_after,
            "remaining": rate_limit.remaining,
            "resetAt": rate_limit.reset_at,
        },
        status=429,
        headers=headers,
    )


@voting_bp.post("/<int:poll_id>/vote")
@swag_from({
    "tags": ["Voting"],
    "summary": "Submit a vote",
    "description": (
        "Gated by, in order: poll open, per-IP rate limit, voted cookie, "
        "device token state, fingerprint block, atomic commit. "
        "Every duplicate layer answers with the same 409."
    ),
    "parameters": [{
        "in": "body",
        "name": "body",
        "required": True,
        "schema": {
            "type": "object",
            "properties": {
                "option": {"type": "integer", "example": 3},
                "token": {"type": "string", "example": "optional-device-token"},
                "clientSignals": {"$ref": "#/definitions/ClientSignals"},
            },
            "required": ["option"],
        },
    }],
    "responses": {
        201: {"description": "Vote recorded"},
        400: {"description": "Validation error"},
        403: {"description": "Poll closed"},
        409: {"description": "Already voted"},
        429: {"description": "Rate limited"},
        500: {"description": "Server error"},
    },
})
def submit_vote(poll_id):
    payload = request.get_json(silent=True) or {}
    data = load_or_abort(vote_submit_schema, payload)
    option = data["option"]
    client_signals = data.get("client_signals")

    poll = db.session.get(Poll, poll_id)
    if poll is not None and not poll.accepts_option(option):
        validation_abort(
            {"option": [f"Must be between 1 and {poll.option_count}."]},
            message="Invalid option",
        )

    hasher = FingerprintHasher.from_config(current_app.config)
    server_signals = extract_server_signals(request.headers)
    if not hasher.is_sufficient(hasher.merge(server_signals, client_signals)):
        validation_abort(
            {"clientSignals": [f"At least {hasher.min_attributes} device attributes are required."]},
            message="Insufficient device signals",
        )

    ip = get_client_ip()
    user_agent = request.headers.get("User-Agent") or ""
    attempt = VoteAttempt(
        poll=poll,
        option=option,
        identity=ip,
        voter_hash=create_voter_hash(ip, user_agent, current_app.config.get("HASH_SECRET", "")),
        server_signals=server_signals,
        client_signals=client_signals,
        presented_token=read_signed_cookie(device_cookie_name(poll_id)) or data.get("token"),
        voted_marker_token=read_signed_cookie(voted_cookie_name(poll_id)),
    )

    try:
        result = VotePipeline(rate_limiter, hasher).submit(attempt)
    except PollGuardError:
        current_app.logger.exception("Vote pipeline failed poll_id=%s", poll_id)
        return error_response("VOTE_FAILED", "Failed to record vote", status=500)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("DB error while submitting vote poll_id=%s", poll_id)
        return error_response("VOTE_FAILED", "Failed to record vote", status=500)

    outcome = result.decision.outcome

    if outcome is GateOutcome.CLOSED:
        # Not throttled, so no audit row: log only
        current_app.logger.info("Vote on closed poll ip=%s poll_id=%s", ip, poll_id)
        return error_response("POLL_CLOSED", "Voting is closed", status=403)

    if outcome is GateOutcome.THROTTLED:
        current_app.logger.info("Vote rate limited ip=%s poll_id=%s", ip, poll_id)
        return _throttled_response(result.rate_limit)

    if outcome is GateOutcome.DUPLICATE:
        current_app.logger.info("Duplicate vote attempt poll_id=%s layer=%s", poll_id, result.decision.reason)
        safe_audit(
            action="VOTE_DUPLICATE_ATTEMPT",
            entity_type="VOTE",
            details={"poll_id": poll_id, "layer": result.decision.reason},
        )
        return error_response(
            "ALREADY_VOTED",
            "Already voted",
            status=409,
            headers=_rate_limit_headers(result.rate_limit),
        )

    safe_audit(
        action="VOTE_SUBMITTED",
        entity_type="VOTE",
        entity_id=result.vote_id,
        details={"poll_id": poll_id, "option": option, "token_issued": result.token_created},
    )

    body = vote_receipt_schema.dump({
        "success": True,
        "vote_id": result.vote_id,
        "poll_id": poll_id,
        "option": option,
        "token": result.raw_token,
    })
    response = make_response(body, 201)
    for key, value in _rate_limit_headers(result.rate_limit).items():
        response.headers[key] = str(value)

    set_signed_cookie(response, device_cookie_name(poll_id), result.raw_token)
    set_signed_cookie(response, voted_cookie_name(poll_id), result.raw_token)
    return response

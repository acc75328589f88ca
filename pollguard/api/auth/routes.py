from flask import Blueprint, request, current_app
from flasgger import swag_from
from flask_jwt_extended import (
    create_access_token,
    get_jwt_identity,
    jwt_required,
    get_jwt,
    verify_jwt_in_request,
)
from sqlalchemy.exc import SQLAlchemyError

from ...errors import error_response
from ...extensions import db
from ...models.token_blocklist import TokenBlocklist
from ...schemas.auth import AdminLoginSchema
from ...utils.audit import audit_log, safe_audit
from ...utils.rbac import ROLE_SYSTEM_ADMIN
from ...utils.security import keys_match
from ...utils.validation import load_or_abort

auth_bp = Blueprint("auth", __name__)

admin_login_schema = AdminLoginSchema()

ADMIN_IDENTITY = "admin"


@auth_bp.post("/admin/login")
@swag_from({
    "tags": ["Auth"],
    "summary": "Exchange the operator key for an admin access token",
    "parameters": [{
        "in": "body",
        "name": "body",
        "required": True,
        "schema": {
            "type": "object",
            "properties": {"adminKey": {"type": "string"}},
            "required": ["adminKey"],
        },
    }],
    "responses": {
        200: {"description": "Access token issued"},
        400: {"description": "Validation error"},
        401: {"description": "Invalid admin key"},
        500: {"description": "ADMIN_KEY not configured"},
    },
})
def admin_login():
    payload = request.get_json(silent=True) or {}
    data = load_or_abort(admin_login_schema, payload)

    expected = current_app.config.get("ADMIN_KEY")
    if not expected:
        current_app.logger.error("ADMIN_KEY environment variable not set")
        return error_response("MISCONFIGURED", "Server configuration error", status=500)

    if not keys_match(data["admin_key"], expected):
        safe_audit(action="ADMIN_LOGIN_FAILED", entity_type="AUTH")
        return error_response("UNAUTHORIZED", "Invalid admin key", status=401)

    access_token = create_access_token(
        identity=ADMIN_IDENTITY,
        additional_claims={"role": ROLE_SYSTEM_ADMIN},
    )
    safe_audit(action="ADMIN_LOGIN_SUCCESS", entity_type="AUTH")

    return {"success": True, "access_token": access_token, "token_type": "bearer"}, 200


@auth_bp.get("/admin/status")
@swag_from({
    "tags": ["Auth"],
    "summary": "Whether the caller holds a valid admin token",
    "responses": {200: {"description": "OK"}},
})
def admin_status():
    try:
        verify_jwt_in_request(optional=True)
        role = (get_jwt() or {}).get("role")
    except Exception as e:
        current_app.logger.debug("Optional JWT check failed: %s", e)
        role = None

    return {"isAuthenticated": role == ROLE_SYSTEM_ADMIN}, 200


@auth_bp.post("/admin/logout")
@jwt_required()
@swag_from({
    "tags": ["Auth"],
    "security": [{"BearerAuth": []}],
    "summary": "Logout (revoke access token)",
    "responses": {
        200: {"description": "Logged out"},
        401: {"description": "Unauthorized"},
        422: {"description": "Invalid token"},
    },
})
def admin_logout():
    jti = get_jwt().get("jti")
    if not jti:
        return error_response("INVALID_TOKEN", "Invalid token", status=400)

    try:
        audit_log(
            action="ADMIN_LOGOUT",
            entity_type="AUTH",
            details={"identity": str(get_jwt_identity()), "jti": jti},
        )
        db.session.add(TokenBlocklist(jti=jti))
        db.session.commit()
        return {"message": "Logged out successfully"}, 200

    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("DB error during logout")
        return error_response("LOGOUT_FAILED", "Logout failed", status=500)

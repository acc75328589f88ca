from functools import wraps
from flask import abort, current_app, request
from flask_jwt_extended import get_jwt, verify_jwt_in_request

ROLE_SYSTEM_ADMIN = "SYSTEM_ADMIN"


def roles_required(*allowed_roles: str):
    """
    Verify the bearer token and restrict the endpoint to the given roles.
    Missing or revoked tokens are answered by the JWT manager (401).
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            role = get_jwt().get("role")
            if role not in allowed_roles:
                current_app.logger.warning("Forbidden role=%s endpoint=%s", role, request.endpoint)
                abort(403, description="Insufficient permissions")
            return fn(*args, **kwargs)
        return wrapper
    return decorator


admin_required = roles_required(ROLE_SYSTEM_ADMIN)

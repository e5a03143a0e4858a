# Overview: Request authentication and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services.auth_service import TokenError, resolve_token
from .storage import get_storage


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'tenant_id')


def require_auth(f):
    """
    Require authentication and establish tenant context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.tenant_id: The shop ID (tenant context) taken from the token
    - g.tenant: The Tenant object

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid or expired token
    - User account deactivated
    - Shop deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1].strip()

        try:
            context = resolve_token(get_storage(), token)
        except TokenError as e:
            return jsonify({"error": "Invalid or expired token", "message": str(e)}), 401

        g.current_user = context.user
        g.tenant_id = context.tenant_id
        g.tenant = context.tenant

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Require the authenticated user to hold one of the given roles.

    Must be applied below @require_auth.
    """
    allowed = set(roles)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            user = g.current_user
            if user.role not in allowed:
                current_app.logger.warning(
                    "Role denied: user=%s role=%s tenant=%s path=%s required=%s",
                    user.id, user.role, g.tenant_id, request.path, ",".join(roles),
                )
                return jsonify({
                    "error": "Insufficient permissions",
                    "required_roles": list(roles),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_json_object(f):
    """
    Reject request bodies that parse as JSON but are not an object.

    A missing or unparseable body is left to the handler, which treats it
    as an empty payload.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        data = request.get_json(silent=True)
        if data is not None and not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload"}), 400
        return f(*args, **kwargs)

    return decorated_function

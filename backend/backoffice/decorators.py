# Overview: Request decorators for API routes.

from functools import wraps

from flask import g, jsonify, request

from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, "acting_user")


def require_auth(f):
    """
    Require a valid bearer session.

    Sets on Flask g:
    - g.current_user: the authenticated User row
    - g.acting_user: ActingUser(id, username, roles), passed to services
    - g.session_context: the full SessionContext

    Returns 401 if the header is missing, the token is invalid or expired,
    or the account is deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]
        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.acting_user = context.acting_user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """
    Require the admin role. Use below @require_auth.

    Guards rejections, rejection chat, inspections, direct stock
    adjustment and material deletion.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401

        if not g.acting_user.is_admin:
            return jsonify({"error": "Admin role required"}), 403

        return f(*args, **kwargs)

    return decorated_function

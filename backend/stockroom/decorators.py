# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, session

from .extensions import db
from .models import User

SESSION_USER_KEY = "user_id"


def current_user() -> User | None:
    """Resolve the signed-in user from the session; inactive users count as signed out."""
    user_id = session.get(SESSION_USER_KEY)
    if user_id is None:
        return None
    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user


def client_ip() -> str | None:
    return request.remote_addr


def require_auth(f):
    """
    Require a signed-in, active user.

    Returns 401 if:
    - No user in the session
    - User no longer exists
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if current_user() is None:
            return jsonify({"error": "Authentication required"}), 401
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Require the signed-in user to hold one of `roles`.

    Must be stacked under @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = current_user()
            if user is None:
                return jsonify({"error": "Authentication required"}), 401

            if user.role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                    "message": f"Requires one of: {', '.join(roles)}",
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator

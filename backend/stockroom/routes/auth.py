# Overview: Flask API routes for sign-in and sign-out; the identity seam the stock routes rely on.

# backend/stockroom/routes/auth.py
"""
Authentication API routes

The signed-in user id lives in the Flask session (signed cookie). Stock
routes resolve it through decorators.current_user(); nothing below the
route layer ever reads the session for identity.
"""

from flask import Blueprint, request, jsonify, current_app, session

from ..services import auth_service
from ..services.activity_log_service import log_activity
from ..models.audit import ACTION_LOGIN, ACTION_LOGOUT, ENTITY_USER
from ..decorators import require_auth, current_user, client_ip, SESSION_USER_KEY


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user with email + password and start a session.

    Records a Login activity on success.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user = auth_service.authenticate(email, password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        # Keep any anonymous cart; only the identity changes
        session[SESSION_USER_KEY] = user.id
        session.permanent = True

        log_activity(
            user_id=user.id,
            action=ACTION_LOGIN,
            entity_type=ENTITY_USER,
            description="User logged in successfully",
            ip_address=client_ip(),
        )

        return jsonify({"user": user.to_dict(), "message": "Login successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """End the session. The cart goes with it."""
    try:
        user = current_user()
        log_activity(
            user_id=user.id,
            action=ACTION_LOGOUT,
            entity_type=ENTITY_USER,
            description="User logged out",
            ip_address=client_ip(),
        )
        session.clear()
        return jsonify({"message": "Logged out"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": current_user().to_dict()}), 200

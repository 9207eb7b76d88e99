# Overview: Flask API routes for categories; Admin-only maintenance of the grouping stock items hang off.

# backend/stockroom/routes/categories.py
"""
Category routes.

SECURITY: Listing is open to any signed-in user (the stock form needs it);
everything else is Admin only.
"""
from flask import Blueprint, request, jsonify, current_app

from ..errors import StockroomError
from ..models import Category, ROLE_ADMIN
from ..services import category_service
from ..validation import ModelValidationPolicy, validate_payload, ValidationError, ConflictError
from ..decorators import require_auth, require_role, current_user, client_ip

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "is_active"},
    required_on_create={"name"},
)

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
def list_categories_route():
    active_only = request.args.get("active_only", "false").lower() in ("1", "true", "yes")
    items = category_service.list_categories(active_only=active_only)
    return jsonify({"items": items, "count": len(items)}), 200


@categories_bp.get("/<int:category_id>")
@require_auth
@require_role(ROLE_ADMIN)
def get_category_route(category_id: int):
    category = category_service.get_category(category_id)
    return jsonify({"category": category.to_dict()}), 200


@categories_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_category_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
        category = category_service.create_category(
            patch=patch,
            actor_id=current_user().id,
            ip_address=client_ip(),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify({"category": category.to_dict()}), 201


@categories_bp.put("/<int:category_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_category_route(category_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
        category = category_service.update_category(
            category_id,
            patch=patch,
            actor_id=current_user().id,
            ip_address=client_ip(),
        )
    except StockroomError as e:
        return jsonify(e.to_dict()), e.status_code
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify({"category": category.to_dict()}), 200


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_category_route(category_id: int):
    """
    Delete an empty category.

    409 REFERENTIAL_INTEGRITY while stock items still reference it.
    """
    try:
        category_service.delete_category(category_id, actor_id=current_user().id, ip_address=client_ip())
    except StockroomError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete category")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"ok": True}), 200

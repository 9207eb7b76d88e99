# Overview: Flask API routes for stock items and the direct buy flow; parses input and returns JSON responses.

# backend/stockroom/routes/stock.py
"""
Stock item routes.

SECURITY: All routes require authentication.
- Viewing and buying: any signed-in user
- Creating items: Admin or Staff
- Editing / deleting items and reading item history: Admin only
"""
from flask import Blueprint, request, jsonify, current_app

from ..errors import StockroomError
from ..models import StockItem, ROLE_ADMIN, ROLE_STAFF
from ..models.audit import ENTITY_STOCK_ITEM
from ..services import stock_service, purchase_service, activity_log_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_stock_item,
    parse_purchase_quantity,
    ValidationError,
)
from ..decorators import require_auth, require_role, current_user, client_ip

STOCK_ITEM_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "category_id",
        "quantity",
        "price_cents",
        "purchase_date",
        "supplier",
        "description",
        "location",
        "sku",
        "minimum_quantity",
        "reorder_point",
        "is_active",
    },
    required_on_create={"name", "category_id", "quantity", "price_cents", "supplier"},
)

stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.get("")
@require_auth
def list_stock_route():
    """
    List stock items.

    Query params:
    - search: str (optional) - matches name, supplier, or category name
    - category_id: int (optional)
    - sort: name | name_desc | date | date_desc | quantity | quantity_desc
    - page: int (optional, 1-indexed, default 1)
    - per_page: int (optional, default 10, max 100)
    """
    return stock_service.list_items(
        search=request.args.get("search"),
        category_id=request.args.get("category_id", type=int),
        sort=request.args.get("sort"),
        page=request.args.get("page", default=1, type=int),
        per_page=request.args.get("per_page", type=int),
    ), 200


@stock_bp.get("/<int:item_id>")
@require_auth
def get_stock_route(item_id: int):
    item = stock_service.get_item(item_id)
    return {"item": item.to_dict()}, 200


@stock_bp.post("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_STAFF)
def create_stock_route():
    """Create a stock item. Records a Create activity."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=StockItem, payload=payload, policy=STOCK_ITEM_POLICY, partial=False)
        enforce_rules_stock_item(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        item = stock_service.create_item(patch=patch, actor_id=current_user().id, ip_address=client_ip())
    except StockroomError as e:
        return jsonify(e.to_dict()), e.status_code
    except ValidationError as e:
        return {"error": str(e)}, 400

    return {"item": item.to_dict()}, 201


@stock_bp.put("/<int:item_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_stock_route(item_id: int):
    """
    Administrative edit. Quantity may be corrected to any value >= 0.

    Records an Update activity (old -> new name, and quantity when it changed).
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=StockItem, payload=payload, policy=STOCK_ITEM_POLICY, partial=True)
        enforce_rules_stock_item(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        item = stock_service.adjust_item(
            item_id,
            patch=patch,
            actor_id=current_user().id,
            ip_address=client_ip(),
        )
    except StockroomError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update stock item")
        return jsonify({"error": "Internal server error"}), 500

    return {"item": item.to_dict()}, 200


@stock_bp.delete("/<int:item_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_stock_route(item_id: int):
    try:
        stock_service.delete_item(item_id, actor_id=current_user().id, ip_address=client_ip())
    except StockroomError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete stock item")
        return jsonify({"error": "Internal server error"}), 500

    return {"ok": True}, 200


@stock_bp.get("/<int:item_id>/buy")
@require_auth
def buy_form_route(item_id: int):
    """What the buy form needs: name, unit price, available quantity, default quantity."""
    return purchase_service.get_buy_form(item_id), 200


@stock_bp.post("/<int:item_id>/buy")
@require_auth
def buy_route(item_id: int):
    """
    Buy units of one item directly (no cart).

    Body: {"quantity": int >= 1}

    Returns:
    - 201 with receipt on success
    - 400 INVALID_QUANTITY when quantity < 1
    - 404 when the item is missing or inactive
    - 409 INSUFFICIENT_STOCK with details.available when quantity exceeds stock
    - 409 WRITE_CONFLICT when retries on a busy row are exhausted
    """
    data = request.get_json(silent=True) or {}

    try:
        quantity = parse_purchase_quantity(data.get("quantity"))
        receipt = purchase_service.buy_one(
            item_id,
            quantity,
            current_user().id,
            ip_address=client_ip(),
        )
    except StockroomError as e:
        return jsonify(e.to_dict()), e.status_code
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to buy stock item")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "receipt": receipt.to_dict(),
        "message": f"You purchased {receipt.quantity} unit(s) of {receipt.item_name}.",
    }), 201


@stock_bp.get("/<int:item_id>/activity")
@require_auth
@require_role(ROLE_ADMIN)
def stock_activity_route(item_id: int):
    """Audit trail for one item; still readable after the item is deleted."""
    rows = activity_log_service.list_for_entity(ENTITY_STOCK_ITEM, item_id)
    return jsonify({"items": [r.to_dict() for r in rows]}), 200

# Overview: Flask API routes for the session cart; parses input and returns JSON responses.

# backend/stockroom/routes/cart.py
"""
Session cart routes.

The cart lives in the caller's session and never touches committed stock
until checkout. Viewing and editing the cart works without signing in;
checkout needs a signed-in user to attribute the purchases to.

Each request loads the cart, applies one operation, and saves the result.
"""
from flask import Blueprint, request, jsonify, current_app, session

from ..errors import StockroomError, NotFound
from ..services import purchase_service
from ..services.cart_service import load_cart, save_cart
from ..services.stock_service import get_item
from ..validation import parse_purchase_quantity, parse_item_id, ValidationError
from ..decorators import require_auth, current_user, client_ip


cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


@cart_bp.before_request
def _keep_session_alive():
    session.permanent = True


@cart_bp.get("")
def view_cart_route():
    """Current lines and total."""
    cart = load_cart(session)
    return jsonify({"cart": cart.to_dict()}), 200


@cart_bp.post("/add")
def add_to_cart_route():
    """
    Add units of an item to the cart.

    Body: {"item_id": int, "quantity": int >= 1}

    Adding an item already in the cart increases that line's quantity.
    """
    data = request.get_json(silent=True) or {}

    try:
        item_id = parse_item_id(data.get("item_id"))
        quantity = parse_purchase_quantity(data.get("quantity", 1))
        item = get_item(item_id)
        if not item.is_active:
            raise NotFound(f"Stock item {item_id} is not available", details={"item_id": item_id})
    except StockroomError as e:
        return jsonify(e.to_dict()), e.status_code
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    cart = load_cart(session).add_item(item.id, item.name, item.price_cents, quantity)
    save_cart(session, cart)
    return jsonify({"cart": cart.to_dict()}), 200


@cart_bp.post("/remove")
def remove_from_cart_route():
    """Remove an item's line. Removing an item that is not in the cart is a no-op."""
    data = request.get_json(silent=True) or {}

    try:
        item_id = parse_item_id(data.get("item_id"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    cart = load_cart(session).remove_item(item_id)
    save_cart(session, cart)
    return jsonify({"cart": cart.to_dict()}), 200


@cart_bp.post("/clear")
def clear_cart_route():
    cart = load_cart(session).clear()
    save_cart(session, cart)
    return jsonify({"cart": cart.to_dict()}), 200


@cart_bp.post("/checkout")
@require_auth
def checkout_route():
    """
    Buy every line in the cart, each as its own ledger transaction.

    Returns:
    - 201 when every line committed
    - 207 when some lines committed and some were rejected
    - 409 when every line was rejected
    - 400 when the cart is empty

    Committed lines leave the cart; rejected lines stay so the caller can
    fix the quantity and resubmit.
    """
    cart = load_cart(session)
    if cart.is_empty:
        return jsonify({"error": "Cart is empty"}), 400

    try:
        result, remaining = purchase_service.checkout_cart(
            cart,
            current_user().id,
            ip_address=client_ip(),
        )
    except Exception:
        current_app.logger.exception("Failed to check out cart")
        return jsonify({"error": "Internal server error"}), 500

    save_cart(session, remaining)

    status_code = {"complete": 201, "partial": 207}.get(result.status, 409)
    return jsonify({
        "checkout": result.to_dict(),
        "cart": remaining.to_dict(),
    }), status_code

# Overview: Flask API routes for retail sales; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..domain.entities import CartItem
from ..domain.state import AppState
from ..services import ledger_service, sales_service, settings_service, state_service
from ..services.ledger_service import PartNotFoundError
from ..validation import ValidationError, coerce_amount, coerce_date, coerce_int
from .common import DOMAIN_ERRORS, error_response, json_body


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _cart_from_payload(state: AppState, branch_id: str, raw) -> list[CartItem]:
    """Cart lines from request items; price and labels default to the part's."""
    if not isinstance(raw, list) or not raw:
        raise ValidationError("items must be a non-empty list")
    parts = state.part_map()
    cart = []
    for line in raw:
        if not isinstance(line, dict):
            raise ValidationError("Each item must be an object")
        part_id = line.get("part_id")
        part = parts.get(part_id)
        if part is None:
            raise PartNotFoundError(f"Part not found: {part_id}", details={"part_id": part_id})
        price = line.get("selling_price")
        cart.append(CartItem(
            part_id=part.id,
            part_name=part.name,
            sku=part.sku,
            quantity=coerce_int("quantity", line.get("quantity")),
            selling_price=part.selling_price if price is None else coerce_amount("selling_price", price),
            stock=part.stock_in(branch_id),
            discount=coerce_amount("discount", line.get("discount", 0)),
            warranty_period=part.warranty_period,
        ))
    return cart


def _sale_context(state: AppState, data: dict) -> dict:
    customer = None
    if data.get("customer_id"):
        customer = state.find_customer(data["customer_id"])
        if customer is None:
            raise ValidationError("Unknown customer")
    user = None
    if data.get("user_id"):
        user = state.find_user(data["user_id"])
        if user is None:
            raise ValidationError("Unknown user")
    return {
        "order_discount": coerce_amount("order_discount", data.get("order_discount", 0)),
        "customer": customer,
        "user": user,
        "timestamp": coerce_date("timestamp", data["timestamp"]) if data.get("timestamp") else None,
        "notes": data.get("notes"),
        "customer_name": data.get("customer_name"),
    }


def _record_sale(state: AppState, data: dict):
    branch_id = settings_service.resolve_branch(state, data.get("branch_id"))
    cart = _cart_from_payload(state, branch_id, data.get("items"))
    sale_id = data.get("sale_id") or ledger_service.new_sale_id()
    return ledger_service.record_retail_sale(state, branch_id, sale_id, cart, **_sale_context(state, data))


def _edit_sale(state: AppState, sale_id: str, data: dict):
    rows = state.sale_rows(sale_id)
    if not rows:
        raise ledger_service.SaleNotFoundError(f"Sale not found: {sale_id}", details={"sale_id": sale_id})
    cart = _cart_from_payload(state, rows[0].branch_id, data.get("items"))
    return ledger_service.edit_retail_sale(state, sale_id, cart, **_sale_context(state, data))


@sales_bp.get("")
def list_sales():
    """Sales history for a branch (query: branch_id), newest first."""
    try:
        state = state_service.load_state()
        branch_id = settings_service.resolve_branch(state, request.args.get("branch_id"))
        sales = sales_service.sales_history(state.transactions, branch_id)
        return jsonify({"branch_id": branch_id, "items": [s.to_dict() for s in sales], "count": len(sales)})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("")
def create_sale():
    try:
        result = state_service.run_command(_record_sale, json_body())
        body = result.to_dict()
        body["sale_id"] = result.transactions[0].sale_id
        return jsonify(body), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<sale_id>/edit")
def get_sale_for_edit(sale_id: str):
    try:
        state = state_service.load_state()
        rows = state.sale_rows(sale_id)
        branch_id = rows[0].branch_id if rows else state.current_branch_id
        editable = sales_service.cart_for_edit(state, sale_id, branch_id)
        return jsonify(editable.to_dict())
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load sale for edit")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.put("/<sale_id>")
def edit_sale(sale_id: str):
    try:
        result = state_service.run_command(_edit_sale, sale_id, json_body())
        body = result.to_dict()
        body["sale_id"] = sale_id
        return jsonify(body)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to edit sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/<sale_id>")
def delete_sale(sale_id: str):
    """Delete a sale and return its stock. Unknown ids are a no-op."""
    try:
        state_service.run_command(ledger_service.delete_retail_sale, sale_id)
        return jsonify({"deleted": sale_id})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error"}), 500

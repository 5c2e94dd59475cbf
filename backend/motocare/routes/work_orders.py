# Overview: Flask API routes for repair work orders; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..services import settings_service, state_service, work_order_service
from ..validation import (
    FIELD_AMOUNT,
    FIELD_DATE,
    FIELD_LIST,
    ModelValidationPolicy,
    validate_payload,
)
from .common import DOMAIN_ERRORS, error_response, json_body


work_orders_bp = Blueprint("work_orders", __name__, url_prefix="/api/work-orders")


WORK_ORDER_POLICY = ModelValidationPolicy(
    writable_fields={
        "customer_name", "customer_phone", "vehicle_model", "license_plate",
        "issue_description", "technician_name", "notes", "processing_type",
        "labor_cost", "customer_quote", "discount", "status", "creation_date",
        "parts_used", "branch_id",
    },
    required_on_create={"customer_name"},
    field_types={
        "labor_cost": FIELD_AMOUNT,
        "customer_quote": FIELD_AMOUNT,
        "discount": FIELD_AMOUNT,
        "creation_date": FIELD_DATE,
        "parts_used": FIELD_LIST,
    },
    nullable_fields={"notes", "processing_type", "customer_quote", "discount"},
)


def _consume_stock() -> bool:
    return bool(current_app.config.get("WORK_ORDER_CONSUMES_STOCK"))


@work_orders_bp.get("")
def list_work_orders():
    """Query: branch_id, status, search (id, customer, phone, plate, model)."""
    try:
        state = state_service.load_state()
        branch_id = settings_service.resolve_branch(state, request.args.get("branch_id"))
        orders = work_order_service.list_work_orders(
            state, branch_id, status=request.args.get("status"), search=request.args.get("search", ""),
        )
        return jsonify({"branch_id": branch_id, "items": [wo.to_dict() for wo in orders], "count": len(orders)})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list work orders")
        return jsonify({"error": "Internal server error"}), 500


@work_orders_bp.post("")
def create_work_order():
    try:
        data = validate_payload(payload=json_body(), policy=WORK_ORDER_POLICY, partial=False)
        result = state_service.run_command(
            work_order_service.create_work_order, data, consume_stock=_consume_stock(),
        )
        return jsonify({"work_order": result.value.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create work order")
        return jsonify({"error": "Internal server error"}), 500


@work_orders_bp.get("/<work_order_id>")
def get_work_order(work_order_id: str):
    state = state_service.load_state()
    for wo in state.work_orders:
        if wo.id == work_order_id:
            return jsonify({"work_order": wo.to_dict()})
    return jsonify({"error": "Work order not found"}), 404


@work_orders_bp.patch("/<work_order_id>")
def update_work_order(work_order_id: str):
    try:
        patch = validate_payload(payload=json_body(), policy=WORK_ORDER_POLICY, partial=True)
        patch.pop("branch_id", None)
        result = state_service.run_command(
            work_order_service.update_work_order, work_order_id, patch, consume_stock=_consume_stock(),
        )
        return jsonify({"work_order": result.value.to_dict()})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update work order")
        return jsonify({"error": "Internal server error"}), 500


@work_orders_bp.delete("/<work_order_id>")
def delete_work_order(work_order_id: str):
    try:
        state_service.run_command(work_order_service.delete_work_order, work_order_id)
        return jsonify({"deleted": work_order_id})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete work order")
        return jsonify({"error": "Internal server error"}), 500

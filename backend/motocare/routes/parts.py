# Overview: Flask API routes for parts and categories; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..services import catalog_service, reporting_service, settings_service, state_service
from ..services.reporting_service import stock_status
from ..time_utils import parse_iso_date
from ..validation import (
    FIELD_AMOUNT,
    FIELD_DATE,
    ModelValidationPolicy,
    ValidationError,
    validate_payload,
)
from .common import DOMAIN_ERRORS, error_response, json_body


parts_bp = Blueprint("parts", __name__, url_prefix="/api/parts")


PART_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "sku", "price", "selling_price", "category", "description",
        "warranty_period", "expiry_date", "opening_stock", "branch_id",
    },
    required_on_create={"name"},
    field_types={
        "price": FIELD_AMOUNT,
        "selling_price": FIELD_AMOUNT,
        "opening_stock": FIELD_AMOUNT,
        "expiry_date": FIELD_DATE,
    },
    nullable_fields={"category", "description", "warranty_period", "expiry_date"},
)


def part_view(part, branch_id: str) -> dict:
    data = part.to_dict()
    qty = part.stock_in(branch_id)
    data["branchStock"] = qty
    data["stockStatus"] = stock_status(qty)
    return data


@parts_bp.get("")
def list_parts():
    """
    Parts for the inventory screen.

    Query: branch_id, status (all|in-stock|out-of-stock|low-stock|slow-moving),
    search (name or SKU), category, today (YYYY-MM-DD, for slow-moving).
    """
    try:
        state = state_service.load_state()
        branch_id = settings_service.resolve_branch(state, request.args.get("branch_id"))
        today = parse_iso_date(request.args.get("today")) if request.args.get("today") else None
        parts = reporting_service.filter_parts(
            state.parts,
            state.transactions,
            branch_id,
            status=request.args.get("status", "all"),
            search=request.args.get("search", ""),
            category=request.args.get("category", "all"),
            today=today,
        )
        return jsonify({
            "branch_id": branch_id,
            "items": [part_view(p, branch_id) for p in parts],
            "count": len(parts),
            "summary": reporting_service.inventory_summary(state.parts, branch_id),
        })
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except ValueError:
        return jsonify({"error": "today must be an ISO-8601 date"}), 400
    except Exception:
        current_app.logger.exception("Failed to list parts")
        return jsonify({"error": "Internal server error"}), 500


@parts_bp.post("")
def create_part():
    try:
        patch = validate_payload(payload=json_body(), policy=PART_POLICY, partial=False)
        opening_stock = patch.pop("opening_stock", 0) or 0
        branch_id = patch.pop("branch_id", None)
        result = state_service.run_command(
            catalog_service.create_part, patch, branch_id=branch_id, opening_stock=opening_stock,
        )
        return jsonify({"part": result.value.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create part")
        return jsonify({"error": "Internal server error"}), 500


@parts_bp.get("/<part_id>")
def get_part(part_id: str):
    state = state_service.load_state()
    part = state.find_part(part_id)
    if part is None:
        return jsonify({"error": "Part not found"}), 404
    return jsonify({"part": part.to_dict()})


@parts_bp.patch("/<part_id>")
def update_part(part_id: str):
    try:
        patch = validate_payload(payload=json_body(), policy=PART_POLICY, partial=True)
        if "opening_stock" in patch or "branch_id" in patch:
            raise ValidationError("Stock changes go through receipts, adjustments or transfers")
        result = state_service.run_command(catalog_service.update_part, part_id, patch)
        return jsonify({"part": result.value.to_dict()})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update part")
        return jsonify({"error": "Internal server error"}), 500


@parts_bp.delete("/<part_id>")
def delete_part(part_id: str):
    try:
        state_service.run_command(catalog_service.delete_part, part_id)
        return jsonify({"deleted": part_id})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete part")
        return jsonify({"error": "Internal server error"}), 500


@parts_bp.get("/categories")
def list_categories():
    state = state_service.load_state()
    categories = catalog_service.list_categories(state)
    return jsonify({"items": categories, "count": len(categories)})


@parts_bp.put("/categories/<path:name>")
def rename_category(name: str):
    try:
        new_name = json_body().get("name")
        if not isinstance(new_name, str):
            raise ValidationError("name must be a string")
        result = state_service.run_command(catalog_service.rename_category, name, new_name)
        return jsonify({"category": result.value})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to rename category")
        return jsonify({"error": "Internal server error"}), 500


@parts_bp.delete("/categories/<path:name>")
def delete_category(name: str):
    try:
        state_service.run_command(catalog_service.delete_category, name)
        return jsonify({"deleted": name})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete category")
        return jsonify({"error": "Internal server error"}), 500

# Overview: Flask API routes for customers and suppliers; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..services import catalog_service, state_service
from ..validation import FIELD_INT, ModelValidationPolicy, validate_payload
from .common import DOMAIN_ERRORS, error_response, json_body


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")
suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "vehicle", "license_plate", "loyalty_points"},
    required_on_create={"name", "phone"},
    field_types={"loyalty_points": FIELD_INT},
)

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "address", "email"},
    required_on_create={"name", "phone"},
    nullable_fields={"address", "email"},
)


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------

@customers_bp.get("")
def list_customers():
    state = state_service.load_state()
    items = catalog_service.search_contacts(state.customers, request.args.get("search", ""))
    return jsonify({"items": [c.to_dict() for c in items], "count": len(items)})


@customers_bp.post("")
def create_customer():
    try:
        data = validate_payload(payload=json_body(), policy=CUSTOMER_POLICY, partial=False)
        result = state_service.run_command(catalog_service.create_customer, data)
        return jsonify({"customer": result.value.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.patch("/<customer_id>")
def update_customer(customer_id: str):
    try:
        patch = validate_payload(payload=json_body(), policy=CUSTOMER_POLICY, partial=True)
        result = state_service.run_command(catalog_service.update_customer, customer_id, patch)
        return jsonify({"customer": result.value.to_dict()})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.delete("/<customer_id>")
def delete_customer(customer_id: str):
    try:
        state_service.run_command(catalog_service.delete_customer, customer_id)
        return jsonify({"deleted": customer_id})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete customer")
        return jsonify({"error": "Internal server error"}), 500


# ---------------------------------------------------------------------------
# Suppliers
# ---------------------------------------------------------------------------

@suppliers_bp.get("")
def list_suppliers():
    state = state_service.load_state()
    items = catalog_service.search_contacts(state.suppliers, request.args.get("search", ""))
    return jsonify({"items": [s.to_dict() for s in items], "count": len(items)})


@suppliers_bp.post("")
def create_supplier():
    try:
        data = validate_payload(payload=json_body(), policy=SUPPLIER_POLICY, partial=False)
        result = state_service.run_command(catalog_service.create_supplier, data)
        return jsonify({"supplier": result.value.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create supplier")
        return jsonify({"error": "Internal server error"}), 500


@suppliers_bp.patch("/<supplier_id>")
def update_supplier(supplier_id: str):
    try:
        patch = validate_payload(payload=json_body(), policy=SUPPLIER_POLICY, partial=True)
        result = state_service.run_command(catalog_service.update_supplier, supplier_id, patch)
        return jsonify({"supplier": result.value.to_dict()})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update supplier")
        return jsonify({"error": "Internal server error"}), 500


@suppliers_bp.delete("/<supplier_id>")
def delete_supplier(supplier_id: str):
    try:
        state_service.run_command(catalog_service.delete_supplier, supplier_id)
        return jsonify({"deleted": supplier_id})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete supplier")
        return jsonify({"error": "Internal server error"}), 500

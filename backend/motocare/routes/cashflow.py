# Overview: Flask API routes for cash book entries and payment sources.

from flask import Blueprint, current_app, jsonify, request

from ..services import cashflow_service, settings_service, state_service
from ..time_utils import parse_iso_date
from ..validation import (
    FIELD_AMOUNT,
    FIELD_BOOL,
    FIELD_DATE,
    ModelValidationPolicy,
    ValidationError,
    validate_payload,
)
from .common import DOMAIN_ERRORS, error_response, json_body


cashflow_bp = Blueprint("cashflow", __name__, url_prefix="/api/cashflow")


CASH_POLICY = ModelValidationPolicy(
    writable_fields={
        "type", "amount", "contact_id", "contact_name", "payment_source_id",
        "branch_id", "notes", "date",
    },
    required_on_create={"type", "amount", "payment_source_id"},
    field_types={"amount": FIELD_AMOUNT, "date": FIELD_DATE},
)

SOURCE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "balance", "is_default"},
    required_on_create={"name"},
    field_types={"balance": FIELD_AMOUNT, "is_default": FIELD_BOOL},
)


def _date_arg(name: str):
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date")


@cashflow_bp.get("/transactions")
def list_transactions():
    """Query: branch_id, type (income|expense), start, end. Includes totals."""
    try:
        state = state_service.load_state()
        branch_id = settings_service.resolve_branch(state, request.args.get("branch_id"))
        items = cashflow_service.list_cash_transactions(
            state, branch_id, start=_date_arg("start"), end=_date_arg("end"), type=request.args.get("type"),
        )
        return jsonify({
            "branch_id": branch_id,
            "items": [t.to_dict() for t in items],
            "count": len(items),
            "summary": cashflow_service.cash_summary(items),
        })
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list cash transactions")
        return jsonify({"error": "Internal server error"}), 500


@cashflow_bp.post("/transactions")
def create_transaction():
    try:
        data = validate_payload(payload=json_body(), policy=CASH_POLICY, partial=False)
        result = state_service.run_command(_record, data)
        return jsonify({"transaction": result.value.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record cash transaction")
        return jsonify({"error": "Internal server error"}), 500


def _record(state, data: dict):
    return cashflow_service.record_cash_transaction(
        state,
        type=data["type"],
        amount=data["amount"],
        contact_id=data.get("contact_id", ""),
        contact_name=data.get("contact_name", ""),
        payment_source_id=data["payment_source_id"],
        branch_id=settings_service.resolve_branch(state, data.get("branch_id")),
        notes=data.get("notes", ""),
        when=data.get("date"),
    )


@cashflow_bp.get("/payment-sources")
def list_payment_sources():
    state = state_service.load_state()
    return jsonify({
        "items": [s.to_dict() for s in state.payment_sources],
        "count": len(state.payment_sources),
    })


@cashflow_bp.post("/payment-sources")
def create_payment_source():
    try:
        data = validate_payload(payload=json_body(), policy=SOURCE_POLICY, partial=False)
        result = state_service.run_command(
            cashflow_service.create_payment_source,
            data["name"],
            data.get("balance", 0),
            data.get("is_default", False),
        )
        return jsonify({"payment_source": result.value.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create payment source")
        return jsonify({"error": "Internal server error"}), 500


@cashflow_bp.patch("/payment-sources/<source_id>")
def update_payment_source(source_id: str):
    try:
        patch = validate_payload(payload=json_body(), policy=SOURCE_POLICY, partial=True)
        result = state_service.run_command(cashflow_service.update_payment_source, source_id, patch)
        return jsonify({"payment_source": result.value.to_dict()})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update payment source")
        return jsonify({"error": "Internal server error"}), 500


@cashflow_bp.delete("/payment-sources/<source_id>")
def delete_payment_source(source_id: str):
    try:
        state_service.run_command(cashflow_service.delete_payment_source, source_id)
        return jsonify({"deleted": source_id})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete payment source")
        return jsonify({"error": "Internal server error"}), 500

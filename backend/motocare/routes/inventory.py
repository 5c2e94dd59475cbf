# Overview: Flask API routes for stock movements (receipts, transfers, adjustments, CSV import).

from flask import Blueprint, current_app, jsonify, request

from ..domain.entities import STOCK_IN, STOCK_OUT, Part, ReceiptItem
from ..services import import_service, ledger_service, reporting_service, settings_service, state_service
from ..time_utils import parse_iso_date
from ..validation import ValidationError, coerce_amount, coerce_int, coerce_date
from .common import DOMAIN_ERRORS, error_response, json_body


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _ledger_response(result, status: int = 201):
    return jsonify(result.to_dict()), status


def _required_str(data: dict, key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} is required")
    return value.strip()


def _date_field(data: dict):
    return coerce_date("date", data["date"]) if data.get("date") else None


def _parse_receipt_items(raw) -> list[ReceiptItem]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("items must be a non-empty list")
    items = []
    for line in raw:
        if not isinstance(line, dict):
            raise ValidationError("Each item must be an object")
        selling_price = line.get("selling_price")
        items.append(ReceiptItem(
            part_id=_required_str(line, "part_id"),
            quantity=coerce_int("quantity", line.get("quantity")),
            purchase_price=coerce_amount("purchase_price", line.get("purchase_price")),
            selling_price=None if selling_price is None else coerce_amount("selling_price", selling_price),
        ))
    return items


def _parse_new_parts(raw) -> list[Part]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("new_parts must be a list")
    parts = []
    for data in raw:
        if not isinstance(data, dict):
            raise ValidationError("Each new part must be an object")
        parts.append(Part(
            id=_required_str(data, "id"),
            name=_required_str(data, "name"),
            sku=_required_str(data, "sku"),
            price=coerce_amount("price", data.get("price", 0)),
            selling_price=coerce_amount("selling_price", data.get("selling_price", 0)),
            category=data.get("category"),
            description=data.get("description"),
            warranty_period=data.get("warranty_period"),
        ))
    return parts


@inventory_bp.get("/transactions")
def list_transactions():
    """
    Ledger rows for a branch, newest first.

    Query: branch_id, type (Nhập kho|Xuất kho), part_id, start, end (YYYY-MM-DD).
    """
    try:
        state = state_service.load_state()
        branch_id = settings_service.resolve_branch(state, request.args.get("branch_id"))
        type_ = request.args.get("type")
        part_id = request.args.get("part_id")
        start = coerce_date("start", request.args["start"]) if request.args.get("start") else None
        end = coerce_date("end", request.args["end"]) if request.args.get("end") else None

        rows = []
        for t in state.transactions:
            if t.branch_id != branch_id:
                continue
            if type_ and t.type != type_:
                continue
            if part_id and t.part_id != part_id:
                continue
            if start and t.date < start:
                continue
            if end and t.date > end:
                continue
            rows.append(t)
        return jsonify({"branch_id": branch_id, "items": [t.to_dict() for t in rows], "count": len(rows)})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list transactions")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/receipts")
def create_receipt():
    try:
        data = json_body()
        result = state_service.run_command(
            _receipt_command,
            data.get("branch_id"),
            _parse_receipt_items(data.get("items")),
            new_parts=_parse_new_parts(data.get("new_parts")),
            supplier_id=data.get("supplier_id"),
            receipt_id=data.get("receipt_id"),
            today=_date_field(data),
        )
        return _ledger_response(result)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record goods receipt")
        return jsonify({"error": "Internal server error"}), 500


def _receipt_command(state, branch_id, items, **kwargs):
    branch_id = settings_service.resolve_branch(state, branch_id)
    return ledger_service.record_goods_receipt(state, branch_id, items, **kwargs)


@inventory_bp.post("/transfers")
def create_transfer():
    try:
        data = json_body()
        result = state_service.run_command(
            ledger_service.record_branch_transfer,
            _required_str(data, "part_id"),
            _required_str(data, "from_branch_id"),
            _required_str(data, "to_branch_id"),
            coerce_int("quantity", data.get("quantity")),
            data.get("notes") or "",
            today=_date_field(data),
        )
        return _ledger_response(result)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record branch transfer")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/adjustments")
def create_adjustment():
    try:
        data = json_body()
        type_ = data.get("type")
        if type_ not in (STOCK_IN, STOCK_OUT):
            raise ValidationError(f"type must be '{STOCK_IN}' or '{STOCK_OUT}'")
        unit_price = data.get("unit_price")
        result = state_service.run_command(
            _adjustment_command,
            _required_str(data, "part_id"),
            data.get("branch_id"),
            type_,
            coerce_int("quantity", data.get("quantity")),
            None if unit_price is None else coerce_amount("unit_price", unit_price),
            data.get("notes") or "",
            today=_date_field(data),
        )
        return _ledger_response(result)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record stock adjustment")
        return jsonify({"error": "Internal server error"}), 500


def _adjustment_command(state, part_id, branch_id, *args, **kwargs):
    branch_id = settings_service.resolve_branch(state, branch_id)
    return ledger_service.record_manual_adjustment(state, part_id, branch_id, *args, **kwargs)


@inventory_bp.post("/import")
def import_csv():
    """
    Import the shop's CSV price list.

    Accepts a multipart upload (field "file") or a JSON body {"csv": "..."};
    branch_id comes from the form, the JSON body or the query string.
    """
    try:
        upload = request.files.get("file")
        if upload is not None:
            text = upload.read().decode("utf-8-sig")
            branch_id = request.form.get("branch_id") or request.args.get("branch_id")
        else:
            data = json_body()
            text = data.get("csv")
            if not isinstance(text, str):
                raise ValidationError("Provide a CSV file upload or a 'csv' text field")
            branch_id = data.get("branch_id") or request.args.get("branch_id")

        result = state_service.run_command(_import_command, text, branch_id)
        return jsonify({
            "summary": result.summary.to_dict(),
            "transactions": [t.to_dict() for t in result.transactions],
        }), 201
    except UnicodeDecodeError:
        return jsonify({"error": "CSV file must be UTF-8 encoded"}), 400
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to import CSV")
        return jsonify({"error": "Internal server error"}), 500


def _import_command(state, text, branch_id):
    branch_id = settings_service.resolve_branch(state, branch_id)
    return import_service.import_parts_csv(state, text, branch_id)


@inventory_bp.get("/summary")
def stock_summary():
    try:
        state = state_service.load_state()
        branch_id = settings_service.resolve_branch(state, request.args.get("branch_id"))
        today = parse_iso_date(request.args["today"]) if request.args.get("today") else None
        summary = reporting_service.inventory_summary(state.parts, branch_id)
        summary["branch_id"] = branch_id
        summary["expiring_soon"] = [p.id for p in reporting_service.expiring_soon(state.parts, today)]
        return jsonify(summary)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except ValueError:
        return jsonify({"error": "today must be an ISO-8601 date"}), 400
    except Exception:
        current_app.logger.exception("Failed to compute stock summary")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/drift")
def stock_drift():
    """Branch stock figures that disagree with the ledger projection."""
    state = state_service.load_state()
    drift = [
        {"part_id": part_id, "branch_id": branch_id, "cached": cached, "projected": projected}
        for part_id, branch_id, cached, projected in ledger_service.stock_drift(state)
    ]
    return jsonify({"items": drift, "count": len(drift)})

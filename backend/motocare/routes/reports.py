# Overview: Flask API routes for dashboard, inventory and revenue reports.

from datetime import timedelta

from flask import Blueprint, current_app, jsonify, request

from ..services import reporting_service, settings_service, state_service
from ..time_utils import parse_iso_date, utcnow
from ..validation import ValidationError
from .common import DOMAIN_ERRORS, error_response


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _date_arg(name: str, default=None):
    raw = request.args.get(name)
    if not raw:
        return default
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date")


@reports_bp.get("/dashboard")
def dashboard():
    try:
        state = state_service.load_state()
        branch_id = settings_service.resolve_branch(state, request.args.get("branch_id"))
        return jsonify(reporting_service.dashboard_summary(state, branch_id))
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build dashboard")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/inventory")
def inventory():
    """Low stock, expiring soon and slow-moving parts (query: branch_id, today)."""
    try:
        state = state_service.load_state()
        branch_id = settings_service.resolve_branch(state, request.args.get("branch_id"))
        report = reporting_service.inventory_report(
            state.parts,
            state.transactions,
            branch_id,
            state.store_settings.branch_ids(),
            today=_date_arg("today"),
        )
        body = report.to_dict()
        body["branch_id"] = branch_id
        return jsonify(body)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build inventory report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/revenue")
def revenue():
    """
    Revenue, cost and profit for a branch.

    Query: branch_id, start/end (YYYY-MM-DD, default the last 30 days),
    period (day|week|month), cost_basis (current|snapshot).
    """
    try:
        state = state_service.load_state()
        branch_id = settings_service.resolve_branch(state, request.args.get("branch_id"))
        end = _date_arg("end", utcnow().date())
        start = _date_arg("start", end - timedelta(days=29))
        cost_basis = request.args.get("cost_basis", "current")
        if cost_basis not in reporting_service.COST_BASES:
            raise ValidationError(f"cost_basis must be one of: {', '.join(reporting_service.COST_BASES)}")

        lines = reporting_service.revenue_lines(state, branch_id, cost_basis=cost_basis)
        report = reporting_service.revenue_report(lines, start, end, period=request.args.get("period", "day"))
        report["branch_id"] = branch_id
        report["cost_basis"] = cost_basis
        return jsonify(report)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build revenue report")
        return jsonify({"error": "Internal server error"}), 500

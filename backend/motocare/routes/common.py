# Overview: Error-to-response mapping and small request helpers shared by the blueprints.

from __future__ import annotations

from flask import jsonify, request

from ..services.cashflow_service import CashflowError, PaymentSourceNotFoundError
from ..services.catalog_service import CatalogConflictError, CatalogError, CatalogNotFoundError
from ..services.import_service import CsvImportError
from ..services.ledger_service import (
    InsufficientStockError,
    LedgerError,
    PartNotFoundError,
    SaleNotFoundError,
)
from ..services.reporting_service import ReportError
from ..services.settings_service import SettingsError
from ..services.user_service import UserConflictError, UserError, UserNotFoundError
from ..services.work_order_service import WorkOrderError, WorkOrderNotFoundError
from ..validation import ConflictError, ValidationError


# Errors a route answers itself; anything else is logged and becomes a 500
DOMAIN_ERRORS = (
    ValidationError,
    ConflictError,
    LedgerError,
    CatalogError,
    WorkOrderError,
    CashflowError,
    UserError,
    SettingsError,
    CsvImportError,
    ReportError,
)

NOT_FOUND_ERRORS = (
    PartNotFoundError,
    SaleNotFoundError,
    CatalogNotFoundError,
    WorkOrderNotFoundError,
    UserNotFoundError,
    PaymentSourceNotFoundError,
)

CONFLICT_ERRORS = (
    ConflictError,
    InsufficientStockError,
    CatalogConflictError,
    UserConflictError,
)


def error_response(exc: Exception):
    status = 400
    if isinstance(exc, NOT_FOUND_ERRORS):
        status = 404
    elif isinstance(exc, CONFLICT_ERRORS):
        status = 409
    body = {"error": str(exc)}
    details = getattr(exc, "details", None)
    if details:
        body["details"] = details
    return jsonify(body), status


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data

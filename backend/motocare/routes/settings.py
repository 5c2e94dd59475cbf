# Overview: Flask API routes for shop settings and the selected branch.

from flask import Blueprint, current_app, jsonify

from ..services import settings_service, state_service
from ..validation import FIELD_LIST, ModelValidationPolicy, ValidationError, validate_payload
from .common import DOMAIN_ERRORS, error_response, json_body


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


SETTINGS_POLICY = ModelValidationPolicy(
    writable_fields=set(settings_service.SETTINGS_FIELDS) | {"branches"},
    field_types={"branches": FIELD_LIST},
)


def _settings_body(state) -> dict:
    return {"settings": state.store_settings.to_dict(), "current_branch_id": state.current_branch_id}


@settings_bp.get("")
def get_settings():
    return jsonify(_settings_body(state_service.load_state()))


@settings_bp.patch("")
def update_settings():
    try:
        patch = validate_payload(payload=json_body(), policy=SETTINGS_POLICY, partial=True)
        result = state_service.run_command(settings_service.update_settings, patch)
        return jsonify(_settings_body(result.state))
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update settings")
        return jsonify({"error": "Internal server error"}), 500


@settings_bp.post("/branch")
def select_branch():
    try:
        branch_id = json_body().get("branch_id")
        if not isinstance(branch_id, str) or not branch_id:
            raise ValidationError("branch_id is required")
        result = state_service.run_command(settings_service.select_branch, branch_id)
        return jsonify(_settings_body(result.state))
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to select branch")
        return jsonify({"error": "Internal server error"}), 500

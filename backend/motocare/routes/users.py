# Overview: Flask API routes for staff accounts and departments.

from flask import Blueprint, current_app, jsonify, request

from ..services import state_service, user_service
from ..validation import FIELD_DICT, FIELD_LIST, ModelValidationPolicy, ValidationError, validate_payload
from .common import DOMAIN_ERRORS, error_response, json_body


users_bp = Blueprint("users", __name__, url_prefix="/api/users")
departments_bp = Blueprint("departments", __name__, url_prefix="/api/departments")


USER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "login_phone", "email", "status", "department_ids", "address", "password"},
    required_on_create={"name", "login_phone", "password"},
    field_types={"department_ids": FIELD_LIST},
    nullable_fields={"email", "address"},
)

DEPARTMENT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "permissions"},
    required_on_create={"name"},
    field_types={"permissions": FIELD_DICT},
    nullable_fields={"description"},
)


def _bcrypt_rounds() -> int:
    return int(current_app.config.get("BCRYPT_ROUNDS", 12))


@users_bp.get("")
def list_users():
    state = state_service.load_state()
    users = user_service.search_users(state, request.args.get("search", ""))
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)})


@users_bp.post("")
def create_user():
    try:
        data = validate_payload(payload=json_body(), policy=USER_POLICY, partial=False)
        password = data.pop("password")
        result = state_service.run_command(
            user_service.create_user, data, password, bcrypt_rounds=_bcrypt_rounds(),
        )
        return jsonify({"user": result.value.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.patch("/<user_id>")
def update_user(user_id: str):
    try:
        patch = validate_payload(payload=json_body(), policy=USER_POLICY, partial=True)
        password = patch.pop("password", None)
        result = state_service.run_command(
            user_service.update_user, user_id, patch, password, bcrypt_rounds=_bcrypt_rounds(),
        )
        return jsonify({"user": result.value.to_dict()})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.delete("/<user_id>")
def delete_user(user_id: str):
    try:
        state_service.run_command(user_service.delete_user, user_id)
        return jsonify({"deleted": user_id})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.get("/<user_id>/permissions")
def check_permission(user_id: str):
    """Query: module (required), action (optional detail flag)."""
    try:
        module = request.args.get("module")
        if not module:
            raise ValidationError("module is required")
        state = state_service.load_state()
        user = state.find_user(user_id)
        if user is None:
            raise user_service.UserNotFoundError("User not found", details={"user_id": user_id})
        action = request.args.get("action")
        return jsonify({
            "user_id": user_id,
            "module": module,
            "action": action,
            "allowed": user_service.has_permission(state, user, module, action),
        })
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to check permission")
        return jsonify({"error": "Internal server error"}), 500


@departments_bp.get("")
def list_departments():
    state = state_service.load_state()
    return jsonify({"items": [d.to_dict() for d in state.departments], "count": len(state.departments)})


@departments_bp.post("")
def create_department():
    try:
        data = validate_payload(payload=json_body(), policy=DEPARTMENT_POLICY, partial=False)
        result = state_service.run_command(user_service.save_department, data)
        return jsonify({"department": result.value.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create department")
        return jsonify({"error": "Internal server error"}), 500


@departments_bp.put("/<department_id>")
def replace_department(department_id: str):
    try:
        data = validate_payload(payload=json_body(), policy=DEPARTMENT_POLICY, partial=False)
        result = state_service.run_command(user_service.save_department, data, department_id)
        return jsonify({"department": result.value.to_dict()})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update department")
        return jsonify({"error": "Internal server error"}), 500


@departments_bp.delete("/<department_id>")
def delete_department(department_id: str):
    try:
        state_service.run_command(user_service.delete_department, department_id)
        return jsonify({"deleted": department_id})
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete department")
        return jsonify({"error": "Internal server error"}), 500

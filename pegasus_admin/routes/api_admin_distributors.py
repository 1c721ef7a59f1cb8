from flask import Blueprint, request
from sqlalchemy.exc import SQLAlchemyError

from pegasus_admin.services import credit_service, distributor_service
from pegasus_admin.services.api_response import (
    error_response,
    exception_response,
    json_body,
    success_response,
)
from pegasus_admin.services.db_guard import guard_write_request
from pegasus_admin.services.errors import PegasusError
from pegasus_admin.services.identity import IdentityError, get_identity_provider
from pegasus_admin.services.user_scope import current_user, require_admin

api_admin_distributors_bp = Blueprint("api_admin_distributors", __name__)


@api_admin_distributors_bp.before_request
def admin_required():
    return require_admin() or guard_write_request()


@api_admin_distributors_bp.route("/distributors", methods=["GET"])
def list_distributors():
    try:
        rows = distributor_service.list_distributors(request.args.get("status"))
    except ValueError as e:
        return error_response(message=str(e), code="INVALID_STATUS")
    return success_response(data=rows)


@api_admin_distributors_bp.route("/distributors", methods=["POST"])
def create_distributor():
    data = json_body()
    try:
        distributor = distributor_service.create_distributor(
            get_identity_provider(),
            name=str(data.get("name") or "").strip(),
            email=data.get("email"),
            password=data.get("password"),
            commission_rate=data.get("commission_rate"),
            website=data.get("website"),
            facebook=data.get("facebook"),
            credit_limit=data.get("credit_limit"),
            status=data.get("status") or "active",
        )
    except ValueError as e:
        return error_response(message=str(e), code="INVALID_INPUT")
    except IdentityError as e:
        return error_response(message=str(e), code="IDENTITY_REJECTED", status=422)
    except PegasusError as e:
        return exception_response(e)
    except SQLAlchemyError:
        return error_response(
            message="Error adding distributor.", code="DISTRIBUTOR_CREATE_FAILED", status=500
        )
    return success_response(
        data=distributor_service.get_distributor_details(distributor.id),
        status=201,
        code="DISTRIBUTOR_CREATED",
        message="Distributor added successfully.",
    )


@api_admin_distributors_bp.route("/distributors/<distributor_id>", methods=["GET"])
def get_distributor(distributor_id):
    details = distributor_service.get_distributor_details(distributor_id)
    if details is None:
        return error_response(message="Distributor not found.", code="NOT_FOUND", status=404)
    return success_response(data=details)


@api_admin_distributors_bp.route("/distributors/<distributor_id>", methods=["PATCH"])
def update_distributor(distributor_id):
    data = json_body()
    try:
        distributor_service.update_distributor(distributor_id, data)
    except ValueError as e:
        return error_response(message=str(e), code="INVALID_INPUT")
    except PegasusError as e:
        return exception_response(e)
    return success_response(
        data=distributor_service.get_distributor_details(distributor_id),
        code="DISTRIBUTOR_UPDATED",
        message="Distributor updated successfully.",
    )


@api_admin_distributors_bp.route("/distributors/<distributor_id>/credits", methods=["GET"])
def list_credits(distributor_id):
    limit = request.args.get("limit", default=100, type=int)
    try:
        entries = credit_service.list_distributor_credits(
            distributor_id, limit=max(1, min(limit, 500))
        )
    except PegasusError as e:
        return exception_response(e)
    return success_response(data=[entry.to_dict() for entry in entries])


@api_admin_distributors_bp.route("/distributors/<distributor_id>/credits", methods=["POST"])
def adjust_credits(distributor_id):
    data = json_body()
    try:
        entry = credit_service.adjust_distributor_balance(
            distributor_id,
            data.get("amount"),
            data.get("operation_type") or credit_service.OPERATION_ADD,
            description=data.get("description"),
            admin_id=current_user().id,
        )
    except ValueError as e:
        return error_response(message=str(e), code="INVALID_AMOUNT")
    except PegasusError as e:
        return exception_response(e)
    return success_response(
        data={
            "entry": entry.to_dict(),
            "distributor": distributor_service.get_distributor_details(distributor_id),
        },
        status=201,
        code="CREDIT_OPERATION_APPLIED",
        message="Credit operation successful.",
    )

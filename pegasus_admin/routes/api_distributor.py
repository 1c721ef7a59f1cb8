from flask import Blueprint

from pegasus_admin import db
from pegasus_admin.services import credit_service
from pegasus_admin.services.api_response import (
    error_response,
    exception_response,
    json_body,
    success_response,
)
from pegasus_admin.services.db_guard import guard_write_request
from pegasus_admin.services.errors import PegasusError
from pegasus_admin.services.subscription_service import renew_subscription
from pegasus_admin.services.user_scope import (
    current_distributor,
    get_scoped_user,
    require_distributor,
)

api_distributor_bp = Blueprint("api_distributor", __name__)


@api_distributor_bp.before_request
def distributor_required():
    return require_distributor() or guard_write_request()


@api_distributor_bp.route("/credits", methods=["GET"])
def my_credits():
    distributor = current_distributor()
    entries = credit_service.list_distributor_credits(distributor.id)
    return success_response(
        data={
            "current_balance": float(distributor.current_balance or 0),
            "entries": [entry.to_dict() for entry in entries],
        }
    )


@api_distributor_bp.route("/transfers", methods=["POST"])
def transfer():
    data = json_body()
    distributor = current_distributor()
    user = get_scoped_user(str(data.get("user_id") or ""), distributor)
    if user is None:
        return error_response(message="User not found.", code="NOT_FOUND", status=404)

    try:
        ok = credit_service.transfer_credits(distributor.id, user.id, data.get("amount"))
    except ValueError as e:
        return error_response(message=str(e), code="INVALID_AMOUNT")
    except PegasusError as e:
        return exception_response(e)
    if not ok:
        return error_response(
            message="Transaction failed.", code="TRANSFER_FAILED", status=500
        )

    db.session.refresh(distributor)
    db.session.refresh(user)
    return success_response(
        data={
            "user_id": user.id,
            "credits": user.credits,
            "current_balance": float(distributor.current_balance),
        },
        code="CREDITS_TRANSFERRED",
        message="Credits added successfully.",
    )


@api_distributor_bp.route("/users/<user_id>/renew", methods=["POST"])
def renew(user_id):
    data = json_body()
    user = get_scoped_user(user_id, current_distributor())
    if user is None:
        return error_response(message="User not found.", code="NOT_FOUND", status=404)
    try:
        months = int(data.get("months"))
    except (TypeError, ValueError):
        return error_response(message="months must be an integer", code="INVALID_MONTHS")
    try:
        expiry = renew_subscription(user, months)
    except ValueError as e:
        return error_response(message=str(e), code="INVALID_MONTHS")
    return success_response(
        data={"user_id": user.id, "user_type": user.user_type, "expiry_time": expiry},
        code="SUBSCRIPTION_RENEWED",
        message="Subscription renewed successfully.",
    )

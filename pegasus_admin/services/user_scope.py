from __future__ import annotations

from typing import Optional

from flask import g
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException, NoAuthorizationError
from jwt.exceptions import PyJWTError

from pegasus_admin import db
from pegasus_admin.models import Distributor, User
from pegasus_admin.services.api_response import error_response as _error_response


def _unauthorized(message: str = "Authentication required."):
    return _error_response(message=message, code="UNAUTHORIZED", status=401)


def _forbidden(message: str):
    return _error_response(message=message, code="FORBIDDEN", status=403)


def attach_current_user(require: bool = False):
    """Attach current user to request context (g.current_user)."""
    user = None
    error = None

    try:
        verify_jwt_in_request(optional=not require)
    except NoAuthorizationError:
        if require:
            error = _unauthorized()
    except (JWTExtendedException, PyJWTError) as exc:
        error = _unauthorized(str(exc))
    else:
        identity = get_jwt_identity()
        if identity is not None:
            user = db.session.get(User, str(identity))

    g.current_user = user

    if user is None and error is not None:
        return error
    if require and user is None:
        return _unauthorized()
    return None


def current_user() -> Optional[User]:
    return getattr(g, "current_user", None)


def current_distributor() -> Optional[Distributor]:
    return getattr(g, "current_distributor", None)


def require_admin():
    """before_request hook: only dashboard admins pass."""
    auth_error = attach_current_user(require=True)
    if auth_error is not None:
        return auth_error
    if not current_user().is_admin:
        return _forbidden("Admin access required.")
    return None


def require_distributor():
    """before_request hook: resolve the caller's distributor account."""
    auth_error = attach_current_user(require=True)
    if auth_error is not None:
        return auth_error
    distributor = Distributor.query.filter_by(uid=current_user().id).first()
    if distributor is None:
        return _forbidden("Distributor account required.")
    if distributor.status != "active":
        return _forbidden(f"Distributor account is {distributor.status}.")
    g.current_distributor = distributor
    return None


def get_scoped_user(user_id: str, distributor: Optional[Distributor]) -> Optional[User]:
    """Load a user, restricted to the distributor's own users when given."""
    user = db.session.get(User, user_id)
    if user is None:
        return None
    if distributor is not None and user.distributor_id != distributor.id:
        return None
    return user

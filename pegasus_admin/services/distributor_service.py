"""Distributor management for dashboard admins.

Routes should delegate to these functions rather than implementing business logic.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from pegasus_admin import db
from pegasus_admin.models import (
    DISTRIBUTOR_STATUSES,
    EMAIL_TYPE_DISTRIBUTOR,
    Distributor,
    User,
)
from pegasus_admin.services.errors import NotFoundError
from pegasus_admin.services.identity import IdentityError
from pegasus_admin.services.transaction import transaction

logger = logging.getLogger(__name__)

_PROFILE_FIELDS = ("commission_rate", "website", "facebook", "credit_limit", "status")


def _validate_status(status: str) -> str:
    if status not in DISTRIBUTOR_STATUSES:
        raise ValueError(f"status must be one of {'|'.join(DISTRIBUTOR_STATUSES)}")
    return status


def _optional_decimal(value, name: str) -> Optional[Decimal]:
    if value in (None, ""):
        return None
    try:
        parsed = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{name} must be a number")
    if not parsed.is_finite():
        raise ValueError(f"{name} must be a finite number")
    if parsed < 0:
        raise ValueError(f"{name} must be >= 0")
    return parsed


def create_distributor(
    identity_provider,
    *,
    name: str,
    email: str,
    password: str,
    commission_rate: Optional[str] = None,
    website: Optional[str] = None,
    facebook: Optional[str] = None,
    credit_limit=None,
    status: str = "active",
) -> Distributor:
    """
    Create the auth identity, the ``users`` row and the distributor account.

    The identity is deleted again if the database rows cannot be written.

    Raises:
        ValueError: invalid input.
        IdentityError: the identity provider refused the account.
    """
    email = (email or "").strip().lower()
    if not email or not password:
        raise ValueError("Email and password are required")
    _validate_status(status)
    limit = _optional_decimal(credit_limit, "credit_limit")

    user_id = identity_provider.create_user(email, password, metadata={"name": name or ""})
    distributor = Distributor(
        uid=user_id,
        commission_rate=commission_rate,
        website=website,
        facebook=facebook,
        credit_limit=limit,
        current_balance=0,
        status=status,
    )
    try:
        with transaction():
            db.session.add(
                User(
                    id=user_id,
                    uid=user_id,
                    name=name,
                    email=email,
                    email_type=EMAIL_TYPE_DISTRIBUTOR,
                    activate="Active",
                    block="Not Blocked",
                    credits="0.0",
                )
            )
            db.session.add(distributor)
    except SQLAlchemyError:
        try:
            identity_provider.delete_user(user_id)
        except IdentityError as e:
            logger.error("Identity %s for %s is orphaned: %s", user_id, email, e)
        raise

    logger.info("Created distributor %s for %s", distributor.id, email)
    return distributor


def list_distributors(status: Optional[str] = None) -> List[dict]:
    """Distributors joined with their owning user's name and email."""
    query = db.session.query(Distributor, User).outerjoin(User, User.id == Distributor.uid)
    if status:
        query = query.filter(Distributor.status == _validate_status(status))
    rows = query.order_by(Distributor.created_at.desc()).all()
    return [_distributor_payload(distributor, user) for distributor, user in rows]


def get_distributor_details(distributor_id: str) -> Optional[dict]:
    distributor = db.session.get(Distributor, distributor_id)
    if distributor is None:
        return None
    user = db.session.get(User, distributor.uid)
    payload = _distributor_payload(distributor, user)
    payload["user_count"] = User.query.filter_by(distributor_id=distributor.id).count()
    return payload


def update_distributor(distributor_id: str, changes: dict) -> Distributor:
    """Update profile fields; balance changes go through the credit service."""
    distributor = db.session.get(Distributor, distributor_id)
    if distributor is None:
        raise NotFoundError("Distributor", distributor_id)

    for field_name in _PROFILE_FIELDS:
        if field_name not in changes:
            continue
        value = changes[field_name]
        if field_name == "status":
            value = _validate_status(value)
        elif field_name == "credit_limit":
            value = _optional_decimal(value, "credit_limit")
        setattr(distributor, field_name, value)

    with transaction():
        db.session.add(distributor)
    return distributor


def _distributor_payload(distributor: Distributor, user: Optional[User]) -> dict:
    payload = distributor.to_dict()
    payload["user_name"] = user.name if user else None
    payload["user_email"] = user.email if user else None
    return payload

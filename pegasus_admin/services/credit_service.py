"""Credit service: distributor balances, user credits and the credit ledger.

Every balance mutation runs in a single transaction. Debits are conditional
updates (``current_balance >= amount``), so concurrent transfers against the
same distributor cannot overdraw it.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from pegasus_admin import db
from pegasus_admin.models import Distributor, DistributorCredit, User
from pegasus_admin.services.errors import (
    InsufficientBalanceError,
    NotFoundError,
    PartialWriteError,
)
from pegasus_admin.services.transaction import transaction

logger = logging.getLogger(__name__)

OPERATION_ASSIGN = "assign"
OPERATION_ADD = "add"
OPERATION_SUBTRACT = "subtract"
ADJUSTMENT_TYPES = (OPERATION_ADD, OPERATION_SUBTRACT)
# Balance and ledger columns are Numeric(14, 2).
CENT = Decimal("0.01")


def parse_credits(value) -> Decimal:
    """Parse a decimal-as-string credit value; null, empty or garbage is 0."""
    if value is None:
        return Decimal(0)
    text = str(value).replace('"', "").strip()
    if not text:
        return Decimal(0)
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        logger.warning("Unparseable credits value %r, treating as 0", value)
        return Decimal(0)
    if not parsed.is_finite():
        return Decimal(0)
    return parsed


def format_credits(value: Decimal) -> str:
    """Serialise credits the way the dashboard shows them: 60, 60.5."""
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), "f")


def _positive_amount(amount) -> Decimal:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid amount: {amount!r}")
    if not value.is_finite() or value <= 0:
        raise ValueError(f"Amount must be > 0, got {amount!r}")
    try:
        exact = value == value.quantize(CENT)
    except InvalidOperation:
        exact = False
    if not exact:
        raise ValueError(f"Amount must have at most 2 decimal places, got {amount!r}")
    return value


def _get_distributor(distributor_id: str) -> Distributor:
    distributor = db.session.get(Distributor, distributor_id)
    if distributor is None:
        raise NotFoundError("Distributor", distributor_id)
    return distributor


def _debit(distributor_id: str, amount: Decimal) -> None:
    """Conditionally decrement a distributor balance."""
    result = db.session.execute(
        update(Distributor)
        .where(Distributor.id == distributor_id)
        .where(Distributor.current_balance >= amount)
        .values(current_balance=Distributor.current_balance - amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        balance = db.session.execute(
            select(Distributor.current_balance).where(Distributor.id == distributor_id)
        ).scalar_one_or_none()
        raise InsufficientBalanceError(distributor_id, balance, amount)


def _credit(distributor_id: str, amount: Decimal) -> None:
    db.session.execute(
        update(Distributor)
        .where(Distributor.id == distributor_id)
        .values(current_balance=Distributor.current_balance + amount)
        .execution_options(synchronize_session=False)
    )


def transfer_credits(distributor_id: str, user_id: str, amount) -> bool:
    """
    Move ``amount`` credits from a distributor balance to a user account.

    Returns:
        True when the transfer committed, False when a storage error (including
        one raised at commit) rolled it back.

    Raises:
        ValueError: amount is not a positive number with at most 2 decimals.
        NotFoundError: distributor or user does not exist.
        InsufficientBalanceError: the balance does not cover the amount,
            including when a concurrent transfer drained it first.
    """
    value = _positive_amount(amount)

    distributor = _get_distributor(distributor_id)
    if Decimal(distributor.current_balance or 0) < value:
        raise InsufficientBalanceError(distributor_id, distributor.current_balance, value)

    try:
        with transaction():
            _apply_transfer(distributor_id, user_id, value)
    except (PartialWriteError, SQLAlchemyError) as e:
        logger.error(
            "Credit transfer %s -> %s failed: %s", distributor_id, user_id, e.__cause__ or e
        )
        return False

    logger.info("Transferred %s credits from %s to %s", value, distributor_id, user_id)
    return True


def _apply_transfer(distributor_id: str, user_id: str, amount: Decimal) -> None:
    user = db.session.execute(
        select(User).where(User.id == user_id).with_for_update()
    ).scalar_one_or_none()
    if user is None:
        raise NotFoundError("User", user_id)

    try:
        _debit(distributor_id, amount)
        user.credits = format_credits(parse_credits(user.credits) + amount)
        db.session.add(
            DistributorCredit(
                distributor_id=distributor_id,
                amount=-amount,
                operation_type=OPERATION_ASSIGN,
                description=f"Credits added to user {user.email}",
                target_user_id=user.id,
            )
        )
        db.session.flush()
    except SQLAlchemyError as e:
        raise PartialWriteError(f"Credit transfer write failed: {e}") from e


def adjust_distributor_balance(
    distributor_id: str,
    amount,
    operation_type: str,
    description: Optional[str] = None,
    admin_id: Optional[str] = None,
) -> DistributorCredit:
    """
    Admin top-up or deduction of a distributor balance, with a ledger row.

    Raises:
        ValueError: bad amount or operation type.
        NotFoundError: unknown distributor.
        InsufficientBalanceError: a subtraction would go below zero.
    """
    if operation_type not in ADJUSTMENT_TYPES:
        raise ValueError(f"operation_type must be one of {'|'.join(ADJUSTMENT_TYPES)}")
    value = _positive_amount(amount)
    _get_distributor(distributor_id)

    entry = DistributorCredit(
        distributor_id=distributor_id,
        amount=value if operation_type == OPERATION_ADD else -value,
        operation_type=operation_type,
        description=description,
        admin_id=admin_id,
    )
    with transaction():
        if operation_type == OPERATION_ADD:
            _credit(distributor_id, value)
        else:
            _debit(distributor_id, value)
        db.session.add(entry)

    logger.info(
        "Admin %s applied %s %s to distributor %s",
        admin_id,
        operation_type,
        value,
        distributor_id,
    )
    return entry


def list_distributor_credits(distributor_id: str, limit: int = 100) -> List[DistributorCredit]:
    """Ledger rows for a distributor, newest first."""
    _get_distributor(distributor_id)
    return (
        DistributorCredit.query.filter_by(distributor_id=distributor_id)
        .order_by(DistributorCredit.created_at.desc())
        .limit(limit)
        .all()
    )

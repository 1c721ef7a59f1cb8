from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from pegasus_admin import db
from pegasus_admin.models import Distributor, DistributorCredit, User
from pegasus_admin.services import credit_service
from pegasus_admin.services.errors import InsufficientBalanceError, NotFoundError


def _seed(balance="200", credits="10.0"):
    distributor_user = User(id="dist-user", uid="dist-user", email="dist@example.com")
    distributor = Distributor(id="dist-1", uid="dist-user", current_balance=Decimal(balance))
    user = User(
        id="user-1",
        uid="user-1",
        email="user@example.com",
        credits=credits,
        distributor_id="dist-1",
    )
    db.session.add_all([distributor_user, distributor, user])
    db.session.commit()
    return distributor, user


def _reload():
    db.session.expire_all()
    return db.session.get(Distributor, "dist-1"), db.session.get(User, "user-1")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("10.0", Decimal("10.0")),
        ('"25"', Decimal("25")),
        ("", Decimal(0)),
        (None, Decimal(0)),
        ("abc", Decimal(0)),
        ("NaN", Decimal(0)),
    ],
)
def test_parse_credits(raw, expected):
    assert credit_service.parse_credits(raw) == expected


def test_format_credits_drops_trailing_zeroes():
    assert credit_service.format_credits(Decimal("60.0")) == "60"
    assert credit_service.format_credits(Decimal("60.50")) == "60.5"


def test_transfer_moves_credits_and_records_ledger(app):
    _seed(balance="200", credits="10.0")

    assert credit_service.transfer_credits("dist-1", "user-1", 50) is True

    distributor, user = _reload()
    assert distributor.current_balance == Decimal("150")
    assert user.credits == "60"
    entries = DistributorCredit.query.all()
    assert len(entries) == 1
    assert entries[0].amount == Decimal("-50")
    assert entries[0].operation_type == "assign"
    assert entries[0].target_user_id == "user-1"
    assert entries[0].description == "Credits added to user user@example.com"


def test_transfer_of_whole_balance_leaves_zero(app):
    _seed(balance="50", credits=None)

    assert credit_service.transfer_credits("dist-1", "user-1", "50") is True

    distributor, user = _reload()
    assert distributor.current_balance == Decimal("0")
    assert user.credits == "50"


def test_insufficient_balance_changes_nothing(app):
    _seed(balance="30")

    with pytest.raises(InsufficientBalanceError):
        credit_service.transfer_credits("dist-1", "user-1", 50)

    distributor, user = _reload()
    assert distributor.current_balance == Decimal("30")
    assert user.credits == "10.0"
    assert DistributorCredit.query.count() == 0


@pytest.mark.parametrize("amount", [0, -5, "abc", None])
def test_invalid_amount_is_rejected(app, amount):
    _seed()

    with pytest.raises(ValueError):
        credit_service.transfer_credits("dist-1", "user-1", amount)

    distributor, _ = _reload()
    assert distributor.current_balance == Decimal("200")


def test_unknown_distributor_or_user(app):
    _seed()

    with pytest.raises(NotFoundError):
        credit_service.transfer_credits("missing", "user-1", 5)
    with pytest.raises(NotFoundError):
        credit_service.transfer_credits("dist-1", "missing", 5)

    distributor, _ = _reload()
    assert distributor.current_balance == Decimal("200")
    assert DistributorCredit.query.count() == 0


def test_conditional_debit_stops_a_concurrent_overdraw(app, monkeypatch):
    """The pre-check saw a stale balance; the guarded update must still refuse."""
    _seed(balance="20")
    stale = Distributor(id="dist-1", uid="dist-user", current_balance=Decimal("500"))
    monkeypatch.setattr(credit_service, "_get_distributor", lambda distributor_id: stale)

    with pytest.raises(InsufficientBalanceError):
        credit_service.transfer_credits("dist-1", "user-1", 50)

    distributor, user = _reload()
    assert distributor.current_balance == Decimal("20")
    assert user.credits == "10.0"
    assert DistributorCredit.query.count() == 0


def test_storage_failure_rolls_back_and_returns_false(app, monkeypatch):
    _seed(balance="200")

    def _broken_ledger(**kwargs):
        raise OperationalError("INSERT INTO distributor_credits", {}, Exception("disk I/O"))

    monkeypatch.setattr(credit_service, "DistributorCredit", _broken_ledger)

    assert credit_service.transfer_credits("dist-1", "user-1", 50) is False

    distributor, user = _reload()
    assert distributor.current_balance == Decimal("200")
    assert user.credits == "10.0"
    assert DistributorCredit.query.count() == 0


def test_admin_adjustments(app):
    _seed(balance="100")

    added = credit_service.adjust_distributor_balance(
        "dist-1", "25.5", "add", description="top-up", admin_id="admin-1"
    )
    subtracted = credit_service.adjust_distributor_balance("dist-1", 40, "subtract")

    assert added.amount == Decimal("25.5")
    assert added.admin_id == "admin-1"
    assert subtracted.amount == Decimal("-40")
    distributor, _ = _reload()
    assert distributor.current_balance == Decimal("85.5")


def test_admin_subtraction_cannot_go_negative(app):
    _seed(balance="10")

    with pytest.raises(InsufficientBalanceError):
        credit_service.adjust_distributor_balance("dist-1", 11, "subtract")
    with pytest.raises(ValueError):
        credit_service.adjust_distributor_balance("dist-1", 5, "assign")

    distributor, _ = _reload()
    assert distributor.current_balance == Decimal("10")
    assert DistributorCredit.query.count() == 0


def test_ledger_is_listed_newest_first(app):
    _seed()
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for offset, description in enumerate(["first", "second", "third"]):
        db.session.add(
            DistributorCredit(
                distributor_id="dist-1",
                amount=Decimal(offset + 1),
                operation_type="add",
                description=description,
                created_at=base + timedelta(days=offset),
            )
        )
    db.session.commit()

    entries = credit_service.list_distributor_credits("dist-1", limit=2)

    assert [entry.description for entry in entries] == ["third", "second"]


@pytest.mark.parametrize("amount", ["0.004", "10.125", Decimal("1E-3")])
def test_sub_cent_amounts_are_rejected(app, amount):
    _seed(balance="200", credits="10.0")

    with pytest.raises(ValueError, match="2 decimal places"):
        credit_service.transfer_credits("dist-1", "user-1", amount)
    with pytest.raises(ValueError, match="2 decimal places"):
        credit_service.adjust_distributor_balance("dist-1", amount, "add")

    distributor, user = _reload()
    assert distributor.current_balance == Decimal("200")
    assert user.credits == "10.0"
    assert DistributorCredit.query.count() == 0


def test_cent_amounts_debit_exactly_what_is_credited(app):
    _seed(balance="200", credits="10.0")

    assert credit_service.transfer_credits("dist-1", "user-1", "0.05") is True

    distributor, user = _reload()
    assert distributor.current_balance == Decimal("199.95")
    assert user.credits == "10.05"
    assert DistributorCredit.query.one().amount == Decimal("-0.05")


def test_commit_failure_rolls_back_and_returns_false(app, monkeypatch):
    _seed(balance="200")

    def _failing_commit():
        raise OperationalError("COMMIT", {}, Exception("serialization failure"))

    monkeypatch.setattr(db.session, "commit", _failing_commit)

    assert credit_service.transfer_credits("dist-1", "user-1", 50) is False

    distributor, user = _reload()
    assert distributor.current_balance == Decimal("200")
    assert user.credits == "10.0"
    assert DistributorCredit.query.count() == 0

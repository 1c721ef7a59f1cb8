"""Database models for the target store."""

import uuid
from datetime import datetime, timezone

from pegasus_admin import db

LICENSE_CREDITS = "Credits License"
LICENSE_MONTHLY = "Monthly License"

EMAIL_TYPE_ADMIN = "Admin"
EMAIL_TYPE_DISTRIBUTOR = "Distributor"
EMAIL_TYPE_USER = "User"

DISTRIBUTOR_STATUSES = ("active", "inactive", "suspended")


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(db.Model):
    """A tool user; ``id`` is the identity-provider user id."""

    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True)
    uid = db.Column(db.String(128), nullable=False, index=True)
    name = db.Column(db.String(255))
    # Not unique: the migration does not dedupe re-runs.
    email = db.Column(db.String(255), nullable=False, index=True)
    password = db.Column(db.String(255))
    phone = db.Column(db.String(64))
    country = db.Column(db.String(128))
    activate = db.Column(db.String(32))
    block = db.Column(db.String(32))
    credits = db.Column(db.String(64), default="0.0")
    user_type = db.Column(db.String(32))
    email_type = db.Column(db.String(32), default=EMAIL_TYPE_USER)
    expiry_time = db.Column(db.String(64))
    start_date = db.Column(db.String(64))
    hwid = db.Column(db.String(255), default="Null")
    distributor_id = db.Column(
        db.String(36), db.ForeignKey("distributors.id"), nullable=True, index=True
    )

    @property
    def is_admin(self) -> bool:
        return self.email_type == EMAIL_TYPE_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "uid": self.uid,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "country": self.country,
            "activate": self.activate,
            "block": self.block,
            "credits": self.credits,
            "user_type": self.user_type,
            "email_type": self.email_type,
            "expiry_time": self.expiry_time,
            "start_date": self.start_date,
            "hwid": self.hwid,
            "distributor_id": self.distributor_id,
        }


class Operation(db.Model):
    """A device-service operation performed through the tool."""

    __tablename__ = "operations"

    operation_id = db.Column(db.String(36), primary_key=True, default=_new_id)
    legacy_key = db.Column(db.String(128), index=True)
    operation_type = db.Column(db.String(128))
    phone_sn = db.Column(db.String(128))
    brand = db.Column(db.String(128))
    model = db.Column(db.String(128))
    imei = db.Column(db.String(64))
    username = db.Column(db.String(255))
    credit = db.Column(db.String(64))
    time = db.Column(db.String(64))
    status = db.Column(db.String(64))
    android = db.Column(db.String(64))
    baseband = db.Column(db.String(128))
    carrier = db.Column(db.String(128))
    security_patch = db.Column(db.String(64))
    uid = db.Column(db.String(128), index=True)
    hwid = db.Column(db.String(255))
    log_operation = db.Column(db.Text)


class Distributor(db.Model):
    """A reseller holding a credit balance."""

    __tablename__ = "distributors"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    uid = db.Column(db.String(36), nullable=False, index=True)
    commission_rate = db.Column(db.String(32))
    website = db.Column(db.String(255))
    facebook = db.Column(db.String(255))
    credit_limit = db.Column(db.Numeric(14, 2))
    current_balance = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default="active")
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "uid": self.uid,
            "commission_rate": self.commission_rate,
            "website": self.website,
            "facebook": self.facebook,
            "credit_limit": (
                float(self.credit_limit) if self.credit_limit is not None else None
            ),
            "current_balance": float(self.current_balance or 0),
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class DistributorCredit(db.Model):
    """Append-only ledger of distributor balance movements."""

    __tablename__ = "distributor_credits"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    distributor_id = db.Column(
        db.String(36), db.ForeignKey("distributors.id"), nullable=False, index=True
    )
    amount = db.Column(db.Numeric(14, 2), nullable=False)
    operation_type = db.Column(db.String(32), nullable=False)
    description = db.Column(db.Text)
    admin_id = db.Column(db.String(36))
    target_user_id = db.Column(db.String(36))
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "distributor_id": self.distributor_id,
            "amount": float(self.amount),
            "operation_type": self.operation_type,
            "description": self.description,
            "admin_id": self.admin_id,
            "target_user_id": self.target_user_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


__all__ = [
    "User",
    "Operation",
    "Distributor",
    "DistributorCredit",
    "LICENSE_CREDITS",
    "LICENSE_MONTHLY",
    "EMAIL_TYPE_ADMIN",
    "EMAIL_TYPE_DISTRIBUTOR",
    "EMAIL_TYPE_USER",
    "DISTRIBUTOR_STATUSES",
]

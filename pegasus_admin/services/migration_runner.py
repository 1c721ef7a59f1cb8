"""
One-shot migration of legacy Firebase users and operations into the target store.

Usage:
    runner = MigrationRunner(config, FirebaseLegacyClient(config), identity_provider)
    stats = runner.run(admin_email, admin_password)

Sign-in and the users fetch are fatal; every other failure is per record,
logged and counted in the returned stats. Re-running against the same legacy
data creates new identities and rows: there is no dedup key.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from config.schema import MigrationConfig
from pegasus_admin import db
from pegasus_admin.models import Operation, User
from pegasus_admin.services.errors import FetchError, RecordError
from pegasus_admin.services.identity import IdentityError
from pegasus_admin.services.legacy_client import LegacySession
from pegasus_admin.services.transaction import transaction

logger = logging.getLogger(__name__)

USERS_PATH = "users"
OPERATIONS_PATH = "operations"


@dataclass
class EntityStats:
    total: int = 0
    migrated: int = 0
    errors: int = 0


@dataclass
class MigrationStats:
    users: EntityStats = field(default_factory=EntityStats)
    operations: EntityStats = field(default_factory=EntityStats)

    def to_dict(self) -> dict:
        return asdict(self)


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _coerce_time(value: Any) -> Optional[str]:
    """Normalise a legacy timestamp (epoch millis or ISO string) to ISO-8601."""
    if value in (None, ""):
        return None
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, (int, float)) or (isinstance(value, str) and value.isdigit()):
        try:
            moment = datetime.fromtimestamp(float(value) / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return str(value)
        return moment.isoformat()
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).isoformat()
    except ValueError:
        return text


class MigrationRunner:
    """Copies legacy users (with new identities) and their operations."""

    def __init__(self, config: MigrationConfig, legacy_client, identity_provider):
        self.config = config
        self.legacy = legacy_client
        self.identity = identity_provider

    def run(self, admin_email: str, admin_password: str) -> MigrationStats:
        """
        Run the migration.

        Raises:
            AuthenticationError: legacy sign-in failed (no side effects).
            FetchError: users collection missing/unreachable, or the
                operations collection could not be fetched.
        """
        logger.info("Starting migration process for %s", admin_email)
        stats = MigrationStats()

        session = self.legacy.sign_in(admin_email, admin_password)
        users = self._fetch_users(session)

        logger.info("Migrating %d users", len(users))
        uid_map = self._migrate_users(users, stats)

        operations = self.legacy.fetch_collection(OPERATIONS_PATH, session)
        if not operations:
            logger.info("No operations data found in Firebase")
            return stats

        logger.info("Migrating %d operations", len(operations))
        self._migrate_operations(operations, uid_map, stats)

        logger.info(
            "Migration completed: users %d/%d (errors %d), operations %d/%d (errors %d)",
            stats.users.migrated,
            stats.users.total,
            stats.users.errors,
            stats.operations.migrated,
            stats.operations.total,
            stats.operations.errors,
        )
        return stats

    def _fetch_users(self, session: LegacySession) -> dict[str, Any]:
        users = self.legacy.fetch_collection(USERS_PATH, session)
        if not users:
            raise FetchError("No users data found in Firebase")
        return users

    # -- users ---------------------------------------------------------------

    def _migrate_users(self, users: dict[str, Any], stats: MigrationStats) -> dict[str, str]:
        """Migrate every user; returns legacy ``UID`` field -> new user id."""
        stats.users.total = len(users)
        uid_map: dict[str, str] = {}
        for legacy_key, record in users.items():
            try:
                user_id = self._migrate_user(legacy_key, record)
            except RecordError as e:
                logger.error("Error migrating user %s", e)
                stats.users.errors += 1
                continue
            stats.users.migrated += 1
            legacy_uid = record.get("UID")
            if legacy_uid:
                uid_map[str(legacy_uid)] = user_id
        return uid_map

    def _migrate_user(self, legacy_key: str, record: Any) -> str:
        if not isinstance(record, dict):
            raise RecordError(legacy_key, "identity", "record is not an object")
        email = (_text(record.get("Email")) or "").strip()
        if not email:
            raise RecordError(legacy_key, "identity", "missing email")

        try:
            user_id = self.identity.create_user(email, self._password_for(record))
        except IdentityError as e:
            raise RecordError(legacy_key, "identity", str(e)) from e

        try:
            self._insert_user(user_id, email, record)
        except SQLAlchemyError as e:
            self._discard_identity(user_id, email)
            raise RecordError(legacy_key, "insert", str(e)) from e
        return user_id

    def _password_for(self, record: dict) -> str:
        password = _text(record.get("Password"))
        if password:
            return password
        if self.config.placeholder_password:
            logger.warning("User %s has no password; using placeholder", record.get("Email"))
            return self.config.placeholder_password
        logger.warning(
            "User %s has no password; assigning a random one (reset required)",
            record.get("Email"),
        )
        return secrets.token_urlsafe(16)

    def _insert_user(self, user_id: str, email: str, record: dict) -> None:
        with transaction():
            db.session.add(
                User(
                    id=user_id,
                    uid=user_id,
                    name=_text(record.get("Name")),
                    email=email,
                    password=_text(record.get("Password")),
                    phone=_text(record.get("Phone")),
                    country=_text(record.get("Country")),
                    activate=_text(record.get("Activate")),
                    block=_text(record.get("Block")),
                    credits=_text(record.get("Credits")),
                    user_type=_text(record.get("User_Type")),
                    email_type=_text(record.get("Email_Type")),
                    expiry_time=_text(record.get("Expiry_Time")),
                    start_date=_text(record.get("Start_Date")),
                    hwid=_text(record.get("Hwid")) or "Null",
                )
            )

    def _discard_identity(self, user_id: str, email: str) -> None:
        try:
            self.identity.delete_user(user_id)
            logger.info("Removed identity %s after failed insert for %s", user_id, email)
        except IdentityError as e:
            logger.error("Identity %s for %s is orphaned: %s", user_id, email, e)

    # -- operations ----------------------------------------------------------

    def _migrate_operations(
        self,
        operations: dict[str, Any],
        uid_map: dict[str, str],
        stats: MigrationStats,
    ) -> None:
        stats.operations.total = len(operations)
        for legacy_key, record in operations.items():
            try:
                self._migrate_operation(legacy_key, record, uid_map)
            except RecordError as e:
                logger.error("Error migrating operation %s", e)
                stats.operations.errors += 1
                continue
            stats.operations.migrated += 1

    def _migrate_operation(self, legacy_key: str, record: Any, uid_map: dict[str, str]) -> None:
        if not isinstance(record, dict):
            raise RecordError(legacy_key, "insert", "record is not an object")
        legacy_uid = _text(record.get("UID"))
        uid = uid_map.get(legacy_uid) if legacy_uid else None
        if uid is None:
            logger.warning(
                "Could not find migrated user for operation %s, using original UID %s",
                legacy_key,
                legacy_uid,
            )
            uid = legacy_uid
        try:
            self._insert_operation(legacy_key, record, uid)
        except SQLAlchemyError as e:
            raise RecordError(legacy_key, "insert", str(e)) from e

    def _insert_operation(self, legacy_key: str, record: dict, uid: Optional[str]) -> None:
        with transaction():
            db.session.add(
                Operation(
                    legacy_key=legacy_key,
                    operation_type=_text(record.get("OprationTypes")),
                    phone_sn=_text(record.get("Phone_SN")),
                    brand=_text(record.get("Brand")),
                    model=_text(record.get("Model")),
                    imei=_text(record.get("Imei")),
                    username=_text(record.get("UserName")),
                    credit=_text(record.get("Credit")),
                    time=_coerce_time(record.get("Time")),
                    status=_text(record.get("Status")),
                    android=_text(record.get("Android")),
                    baseband=_text(record.get("Baseband")),
                    carrier=_text(record.get("Carrier")),
                    security_patch=_text(record.get("Security_Patch")),
                    uid=uid,
                    hwid=_text(record.get("Hwid")),
                    log_operation=_text(record.get("LogOpration")),
                )
            )

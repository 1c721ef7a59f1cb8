"""
Exceptions raised by the migration and credit services.

Routes translate these into JSON error responses. Per-record migration
failures are raised as ``RecordError`` inside the runner and only ever end
up in the stats counters.
"""


class PegasusError(Exception):
    """Base exception for service-layer failures."""

    code = "ERROR"
    status = 500


class ConfigurationError(PegasusError):
    """A required secret or service credential is missing."""

    code = "CONFIGURATION_ERROR"
    status = 500


class AuthenticationError(PegasusError):
    """The legacy or target identity provider rejected the credentials."""

    code = "AUTHENTICATION_FAILED"
    status = 401


class FetchError(PegasusError):
    """A legacy collection is missing or could not be fetched."""

    code = "FETCH_FAILED"
    status = 502


class RecordError(PegasusError):
    """
    A single legacy record could not be migrated.

    Attributes:
        record_key: legacy collection key of the failing record
        stage: "identity", "insert" or "fetch"
    """

    code = "RECORD_FAILED"

    def __init__(self, record_key: str, stage: str, message: str) -> None:
        super().__init__(f"{record_key} ({stage}): {message}")
        self.record_key = record_key
        self.stage = stage


class NotFoundError(PegasusError):
    """A distributor or user referenced by a credit operation does not exist."""

    code = "NOT_FOUND"
    status = 404

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class InsufficientBalanceError(PegasusError):
    """The distributor balance does not cover the requested amount."""

    code = "INSUFFICIENT_BALANCE"
    status = 409

    def __init__(self, distributor_id: str, balance, amount) -> None:
        super().__init__(
            f"Distributor {distributor_id} balance {balance} is below {amount}"
        )
        self.distributor_id = distributor_id
        self.balance = balance
        self.amount = amount


class PartialWriteError(PegasusError):
    """
    A write step failed after earlier steps of the same operation were issued.

    The enclosing transaction is rolled back before this propagates, so no
    partial balance change survives.
    """

    code = "TRANSFER_FAILED"
    status = 500


__all__ = [
    "PegasusError",
    "ConfigurationError",
    "AuthenticationError",
    "FetchError",
    "RecordError",
    "NotFoundError",
    "InsufficientBalanceError",
    "PartialWriteError",
]

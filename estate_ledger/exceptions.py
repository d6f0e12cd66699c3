"""Custom exception hierarchy for estate-ledger."""


class LedgerError(Exception):
    """Base exception for all estate-ledger errors.

    Parameters
    ----------
    message : str
        Human readable description.
    entity_id : str | None
        Identifier of the record the error refers to.
    status : str | None
        Current status of that record, when relevant.
    """

    def __init__(
        self,
        message: str,
        *,
        entity_id: str | None = None,
        status: str | None = None,
    ) -> None:
        super().__init__(message)
        self.entity_id = entity_id
        self.status = status


class NotFoundError(LedgerError):
    """Raised when a referenced lease, charge, mortgage or payment does not exist."""


class ReferentialIntegrityError(NotFoundError):
    """Raised when a foreign key reference is violated."""


class InvalidStateError(LedgerError):
    """Raised when an operation is not permitted in the record's current status."""


class AlreadyVoidError(LedgerError):
    """Raised when voiding a charge that is already void."""


class InvalidAllocationError(LedgerError):
    """Raised when payment allocations exceed what can be applied."""


class ConfigurationError(LedgerError):
    """Raised when configuration is invalid or missing."""


class SinkError(LedgerError):
    """Raised when a sink operation fails."""

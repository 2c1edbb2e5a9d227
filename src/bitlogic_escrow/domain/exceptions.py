"""Domain exceptions for BitLogic.

These exceptions are framework-agnostic and represent business rule violations.
They are caught and translated to HTTP responses by the API layer's middleware.
Every failure path raises a distinct subclass so callers can branch on
recoverability.
"""


class BitLogicError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "BITLOGIC_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Validation Errors ---


class InvalidRequestError(BitLogicError):
    """Raised for malformed input, before any state is touched."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="INVALID_REQUEST")


class InvalidEscrowParamsError(BitLogicError):
    """Raised when escrow creation parameters fail validation.

    No record is persisted when this is raised.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message=message, code="INVALID_ESCROW_PARAMS")
        self.field = field


# --- Escrow Lifecycle Errors ---


class EscrowNotFoundError(BitLogicError):
    """Raised when an escrow ID does not exist."""

    def __init__(self, escrow_id: str) -> None:
        super().__init__(
            message=f"Escrow not found: {escrow_id}",
            code="ESCROW_NOT_FOUND",
        )
        self.escrow_id = escrow_id


class InvalidStateError(BitLogicError):
    """Raised when an operation is not legal in the escrow's current status.

    This is the at-most-once guard: once an escrow leaves ``active`` (or while
    another release/refund holds its claim), every further release or refund
    attempt ends here.
    """

    def __init__(self, escrow_id: str, current_status: str, operation: str) -> None:
        super().__init__(
            message=f"Escrow {escrow_id} cannot {operation} from status '{current_status}'",
            code="INVALID_STATE",
        )
        self.escrow_id = escrow_id
        self.current_status = current_status
        self.operation = operation


class InvalidProofError(BitLogicError):
    """Raised when an attestation fails verification. Status is unchanged."""

    def __init__(self, message: str, escrow_id: str | None = None) -> None:
        super().__init__(message=message, code="INVALID_PROOF")
        self.escrow_id = escrow_id


class TimeoutNotElapsedError(BitLogicError):
    """Raised when a refund is attempted before the escrow timeout."""

    def __init__(self, escrow_id: str, remaining_seconds: float) -> None:
        super().__init__(
            message=(
                f"Escrow {escrow_id} timeout has not passed yet "
                f"({remaining_seconds:.0f}s remaining)"
            ),
            code="TIMEOUT_NOT_ELAPSED",
        )
        self.escrow_id = escrow_id
        self.remaining_seconds = remaining_seconds


# --- Action Trigger Errors ---


class UnsupportedEnvironmentError(BitLogicError):
    """Raised when an action targets an environment with no configured endpoint."""

    def __init__(self, environment: str) -> None:
        super().__init__(
            message=f"Unsupported environment: {environment}",
            code="UNSUPPORTED_ENVIRONMENT",
        )
        self.environment = environment


class ActionDispatchFailedError(BitLogicError):
    """Raised by receivers when a remote action could not be submitted or confirmed."""

    def __init__(self, message: str, tx_hash: str | None = None) -> None:
        super().__init__(message=message, code="ACTION_DISPATCH_FAILED")
        self.tx_hash = tx_hash


# --- Ledger Errors ---


class LedgerError(BitLogicError):
    """Raised when the ledger collaborator fails to lock, spend or refund."""

    def __init__(self, message: str, operation: str) -> None:
        super().__init__(message=message, code="LEDGER_ERROR")
        self.operation = operation

"""
Custom Exception Hierarchy

Distinguishes between:
1. Contract Violations (programming bugs that need fixing)
2. Business Logic Failures (expected runtime issues)

Every business failure carries an ErrorCode so the log stream can separate
data/state problems (PERMANENT) from availability problems (TRANSIENT).
"""

from core.errors import ErrorCode


class ContractViolationError(TypeError):
    """
    Raised when component contracts are violated (programming bugs).

    These should NEVER be caught and handled - they indicate bugs
    that need to be fixed in the code.

    Examples:
        - Repository receives a dict instead of an AtonRecord
        - Listener initialised with a non-geometry area of interest
    """
    pass


class BusinessLogicError(Exception):
    """
    Base class for expected runtime business logic failures.

    Subclasses represent specific categories of business failures.
    """
    error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR


class MalformedPayloadError(BusinessLogicError):
    """
    Inbound change event could not be decoded.

    Absorbed by the listener: logged and dropped.

    Examples:
        - Body is not JSON
        - Member without an id_code
        - Unknown AtoN kind
    """
    error_code = ErrorCode.MALFORMED_PAYLOAD


class ResourceNotFoundError(BusinessLogicError):
    """
    Requested resource does not exist.

    Examples:
        - Delete of an unknown AtoN identifier code
        - Unregister of an unknown subscription
        - Initial content of a dataset that never generated any
    """
    error_code = ErrorCode.RESOURCE_NOT_FOUND


class DatasetCancelledError(BusinessLogicError):
    """
    Content update attempted against a cancelled dataset.

    Rejected immediately, never queued.
    """
    error_code = ErrorCode.DATASET_CANCELLED


class ContentConflictError(BusinessLogicError):
    """
    Two writers tried to append the same dataset content sequence number.

    Regeneration is single-flighted per dataset, so seeing this is a bug.
    """
    error_code = ErrorCode.CONTENT_CONFLICT


class DeliveryFailureError(BusinessLogicError):
    """
    A notification could not reach its subscriber.

    Always absorbed on the notification pool.
    """
    error_code = ErrorCode.DELIVERY_FAILED

    def __init__(self, message: str, endpoint: str = None, timeout: bool = False,
                 lookup: bool = False):
        super().__init__(message)
        self.endpoint = endpoint
        if lookup:
            self.error_code = ErrorCode.DIRECTORY_LOOKUP_FAILED
        elif timeout:
            self.error_code = ErrorCode.DELIVERY_TIMEOUT


class DatabaseError(BusinessLogicError):
    """
    Database operation failures.

    Examples:
        - Connection lost
        - Query timeout
        - Transaction rollback
    """
    error_code = ErrorCode.DATABASE_ERROR


class ValidationError(BusinessLogicError):
    """
    Business validation failed.

    Note: This is different from ContractViolationError.
    This is for business rule validation, not type contracts.

    Examples:
        - Subscription request without a client MRN
        - Dataset reference that resolves to nothing
    """
    error_code = ErrorCode.VALIDATION_ERROR


class ConfigurationError(Exception):
    """
    System configuration error.

    These are typically fatal and indicate misconfiguration
    that prevents the system from operating.
    """
    error_code = ErrorCode.CONFIG_ERROR

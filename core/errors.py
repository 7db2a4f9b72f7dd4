"""
Error Code Definitions and Classification.

Centralized error code management so that data/state problems can be told
apart from downstream availability problems in logs.

Key Features:
    - Explicit error codes for all pipeline failure modes
    - Classification (PERMANENT, TRANSIENT, THROTTLING)
    - Helper to build log custom dimensions from an exception

Exports:
    ErrorCode: Standardized error codes enum
    ErrorClassification: Error category enum
    get_error_classification: Lookup classification for a code
    error_dimensions: custom_dimensions dict for an exception
"""

from enum import Enum
from typing import Dict, Any


class ErrorCode(str, Enum):
    """
    Standardized error codes for all pipeline errors.
    """

    # ========================================================================
    # INGESTION ERRORS - DATA/STATE PROBLEMS
    # ========================================================================

    MALFORMED_PAYLOAD = "MALFORMED_PAYLOAD"  # Undecodable change event
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"  # Unknown record/dataset/subscription
    DATASET_CANCELLED = "DATASET_CANCELLED"  # Write against a cancelled dataset
    CONTENT_CONFLICT = "CONTENT_CONFLICT"  # Sequence collision, should never happen
    VALIDATION_ERROR = "VALIDATION_ERROR"  # Business validation failed
    CONFIG_ERROR = "CONFIG_ERROR"  # Configuration error

    # ========================================================================
    # INFRASTRUCTURE ERRORS - AVAILABILITY PROBLEMS
    # ========================================================================

    DATABASE_ERROR = "DATABASE_ERROR"
    QUEUE_ERROR = "QUEUE_ERROR"  # Service Bus receive/settle failed
    DELIVERY_FAILED = "DELIVERY_FAILED"  # Subscriber endpoint unreachable or errored
    DELIVERY_TIMEOUT = "DELIVERY_TIMEOUT"
    DIRECTORY_LOOKUP_FAILED = "DIRECTORY_LOOKUP_FAILED"
    QUEUE_FULL = "QUEUE_FULL"  # Notification pool saturated

    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class ErrorClassification(str, Enum):
    """
    Error classification.

    PERMANENT errors point at data or state that has to be fixed.
    TRANSIENT errors point at something downstream being unavailable.
    """

    PERMANENT = "PERMANENT"
    TRANSIENT = "TRANSIENT"
    THROTTLING = "THROTTLING"


_ERROR_CLASSIFICATION: Dict[ErrorCode, ErrorClassification] = {
    ErrorCode.MALFORMED_PAYLOAD: ErrorClassification.PERMANENT,
    ErrorCode.RESOURCE_NOT_FOUND: ErrorClassification.PERMANENT,
    ErrorCode.DATASET_CANCELLED: ErrorClassification.PERMANENT,
    ErrorCode.CONTENT_CONFLICT: ErrorClassification.PERMANENT,
    ErrorCode.VALIDATION_ERROR: ErrorClassification.PERMANENT,
    ErrorCode.CONFIG_ERROR: ErrorClassification.PERMANENT,

    ErrorCode.DATABASE_ERROR: ErrorClassification.TRANSIENT,
    ErrorCode.QUEUE_ERROR: ErrorClassification.TRANSIENT,
    ErrorCode.DELIVERY_FAILED: ErrorClassification.TRANSIENT,
    ErrorCode.DELIVERY_TIMEOUT: ErrorClassification.TRANSIENT,
    ErrorCode.DIRECTORY_LOOKUP_FAILED: ErrorClassification.TRANSIENT,

    ErrorCode.QUEUE_FULL: ErrorClassification.THROTTLING,

    ErrorCode.UNKNOWN_ERROR: ErrorClassification.TRANSIENT,
}


def get_error_classification(error_code: ErrorCode) -> ErrorClassification:
    """
    Get the classification for an error code.

    Example:
        >>> get_error_classification(ErrorCode.DATASET_CANCELLED)
        <ErrorClassification.PERMANENT: 'PERMANENT'>
    """
    return _ERROR_CLASSIFICATION.get(error_code, ErrorClassification.TRANSIENT)


def error_dimensions(error: BaseException) -> Dict[str, Any]:
    """
    Build log custom_dimensions for an exception.

    Exceptions without an error_code attribute are reported as UNKNOWN_ERROR.
    """
    code = getattr(error, 'error_code', None)
    if not isinstance(code, ErrorCode):
        code = ErrorCode.UNKNOWN_ERROR
    return {
        'error_code': code.value,
        'error_classification': get_error_classification(code).value,
        'error_type': type(error).__name__,
        'error_message': str(error),
    }

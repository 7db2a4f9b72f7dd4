"""
Base Repository - Pure Abstract Class.

Abstract base repository class that all storage-specific repositories inherit from.
Contains NO storage implementation details, only common error handling
and logging infrastructure.

Architecture:
    BaseRepository (this file - pure abstract)
        |
    Storage-specific bases (PostgreSQLRepository, MemoryRepository)
        |
    Domain-specific repositories (AtonRepository, DatasetRepository, ...)

Exports:
    BaseRepository: Abstract base class for repositories
"""

from abc import ABC
from contextlib import contextmanager
from typing import Any, Optional
import logging

from core.errors import error_dimensions
from exceptions import BusinessLogicError, ContractViolationError
from util_logger import LoggerFactory, ComponentType


class BaseRepository(ABC):
    """
    Pure abstract base repository.

    Responsibilities:
        - Logging setup
        - Consistent error logging around storage operations
        - Type contract checks on inputs

    NOT Responsible For:
        - Connection management
        - Query execution
        - Transaction management
    """

    def __init__(self):
        self.logger = self._setup_logger()
        self.logger.debug(f"🏛️ {self.__class__.__name__} base initialized")

    def _setup_logger(self) -> logging.Logger:
        return LoggerFactory.create_logger(
            ComponentType.REPOSITORY,
            self.__class__.__name__
        )

    def _require(self, value: Any, expected: type, name: str) -> None:
        """Raise ContractViolationError when value is not an instance of expected."""
        if not isinstance(value, expected):
            raise ContractViolationError(
                f"{self.__class__.__name__}: {name} must be {expected.__name__}, "
                f"got {type(value).__name__}"
            )

    @contextmanager
    def _error_context(self, operation: str, entity_id: Optional[str] = None):
        """
        Context manager for consistent error handling across all operations.

        Business errors (NotFound, Conflict, ...) are re-raised untouched after
        a warning. Anything else is logged as an error and re-raised.
        """
        try:
            yield

        except BusinessLogicError as e:
            suffix = f" for {entity_id}" if entity_id else ""
            self.logger.warning(
                f"⚠️ {operation} rejected{suffix}: {e}",
                extra={'custom_dimensions': error_dimensions(e)}
            )
            raise

        except Exception as e:
            error_msg = f"❌ {operation} failed"
            if entity_id:
                error_msg += f" for {entity_id}"
            error_msg += f": {e}"
            self.logger.error(error_msg, extra={'custom_dimensions': error_dimensions(e)})
            raise

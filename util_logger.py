"""
Unified Logger System.

JSON-only structured logging for the AtoN ingestion and notification
workers. Every record is one JSON object on stdout carrying the component
type and name plus whatever the call site passes as
``extra={'custom_dimensions': {...}}``.

Levels:
    LOG_LEVEL sets the default level (INFO when unset).
    DEBUG_LOGGING=true forces DEBUG regardless of LOG_LEVEL.
    LoggerFactory.set_level() re-levels every logger created so far; the
    worker calls it with the configured level at start-up.

Exports:
    ComponentType: Enum for component types
    JSONFormatter: Structured JSON log formatter
    LoggerFactory: Factory for creating loggers
    log_exceptions: Exception logging decorator
"""

from enum import Enum
from typing import Dict, Optional, Union
from datetime import datetime, timezone
import logging
import sys
import os
import json
import traceback
from functools import wraps


# ============================================================================
# COMPONENT TYPES - Aligned with pipeline layers
# ============================================================================

class ComponentType(Enum):
    """
    Component types aligned with the ingestion pipeline layers.
    """
    LISTENER = "listener"      # Inbound change events
    SERVICE = "service"        # Business logic layer
    REPOSITORY = "repository"  # Data access layer
    FACTORY = "factory"        # Object creation layer
    SCHEMA = "schema"          # DDL deployment
    ADAPTER = "adapter"        # External integration layer (Service Bus, HTTP)
    WORKER = "worker"          # Process entry point and thread pools


def _level_from_environment() -> int:
    if os.getenv('DEBUG_LOGGING', '').lower() == 'true':
        return logging.DEBUG
    return _to_level(os.getenv('LOG_LEVEL', 'INFO'))


def _to_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


# ============================================================================
# JSON FORMATTER - Structured logging
# ============================================================================

class JSONFormatter(logging.Formatter):
    """One JSON object per line so log shippers can parse without a grammar."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name,
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if hasattr(record, 'custom_dimensions'):
            log_obj['customDimensions'] = record.custom_dimensions

        if record.exc_info:
            log_obj['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info)
            }

        return json.dumps(log_obj, default=str)


# ============================================================================
# LOGGER FACTORY - Creates component-specific loggers
# ============================================================================

class LoggerFactory:
    """
    Factory for creating component-specific loggers.

    Example:
        logger = LoggerFactory.create_logger(ComponentType.SERVICE, "AtonReconciler")
        logger.info("Upserting record", extra={'custom_dimensions': {'id_code': 'AtoN-1'}})
    """

    _level: int = _level_from_environment()

    # Components logged more verbosely than the default
    COMPONENT_LEVELS: Dict[ComponentType, int] = {
        ComponentType.SCHEMA: logging.DEBUG,
    }

    _loggers: Dict[str, logging.Logger] = {}

    @classmethod
    def _level_for(cls, component_type: ComponentType) -> int:
        return min(cls._level, cls.COMPONENT_LEVELS.get(component_type, cls._level))

    @classmethod
    def create_logger(cls, component_type: ComponentType, name: str) -> logging.Logger:
        """
        Create (or fetch) the logger ``<component_type>.<name>``.

        Calling this repeatedly for the same component is cheap and never
        stacks handlers.
        """
        logger_name = f"{component_type.value}.{name}"
        logger = logging.getLogger(logger_name)
        log_level = cls._level_for(component_type)
        logger.setLevel(log_level)

        has_json_handler = any(
            isinstance(h.formatter, JSONFormatter) for h in logger.handlers
        )
        if not has_json_handler:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(JSONFormatter())
            logger.addHandler(handler)

        # Keep propagation so pytest caplog and host log collectors see records
        logger.propagate = True

        if not hasattr(logger, '_context_wrapped'):
            original_log = logger._log

            def log_with_component(level, msg, args, exc_info=None, extra=None, stack_info=False, stacklevel=1):
                extra = dict(extra or {})
                custom_dims = {
                    'component_type': component_type.value,
                    'component_name': name,
                }
                custom_dims.update(extra.get('custom_dimensions') or {})
                extra['custom_dimensions'] = custom_dims
                original_log(level, msg, args, exc_info=exc_info, extra=extra,
                             stack_info=stack_info, stacklevel=stacklevel + 1)

            logger._log = log_with_component
            logger._context_wrapped = True
            logger._component_type = component_type

        cls._loggers[logger_name] = logger
        return logger

    @classmethod
    def set_level(cls, level: Union[str, int]) -> int:
        """
        Change the default level and re-level every logger created so far.
        DEBUG_LOGGING=true still wins.
        """
        forced = os.getenv('DEBUG_LOGGING', '').lower() == 'true'
        cls._level = logging.DEBUG if forced else _to_level(level)
        for logger in cls._loggers.values():
            logger.setLevel(cls._level_for(logger._component_type))
        return cls._level


# ============================================================================
# EXCEPTION DECORATOR - Automatic exception logging with context
# ============================================================================

def log_exceptions(component_type: Optional[ComponentType] = None,
                   component_name: Optional[str] = None,
                   logger: Optional[logging.Logger] = None):
    """
    Log any exception escaping the decorated function, then re-raise it.

        @log_exceptions(ComponentType.WORKER, "AtonPipeline")
        @log_exceptions(logger=my_logger)
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if logger:
                    log = logger
                elif component_type and component_name:
                    log = LoggerFactory.create_logger(component_type, component_name)
                else:
                    log = LoggerFactory.create_logger(ComponentType.SERVICE, func.__module__ or "unknown")

                dims = {
                    'function_name': func.__name__,
                    'exception_type': type(e).__name__,
                    'exception_message': str(e),
                    'traceback': traceback.format_exc()
                }
                error_code = getattr(e, 'error_code', None)
                if error_code is not None:
                    dims['error_code'] = getattr(error_code, 'value', error_code)
                log.error(
                    f"❌ Exception in {func.__name__}",
                    exc_info=True,
                    extra={'custom_dimensions': dims}
                )
                raise
        return wrapper
    return decorator

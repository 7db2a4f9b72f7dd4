"""
Unified logger tests - JSON output, component dimensions, levels, decorator.
"""

import json
import logging

import pytest

from exceptions import ResourceNotFoundError
from util_logger import ComponentType, JSONFormatter, LoggerFactory, log_exceptions


@pytest.fixture
def restore_level(monkeypatch):
    monkeypatch.delenv("DEBUG_LOGGING", raising=False)
    original = LoggerFactory._level
    yield
    LoggerFactory.set_level(original)


class TestLoggerFactory:

    def test_component_dimensions_injected(self, caplog):
        logger = LoggerFactory.create_logger(ComponentType.SERVICE, "LoggerSample")
        with caplog.at_level(logging.INFO, logger=logger.name):
            logger.info("sample", extra={'custom_dimensions': {'id_code': 'AtoN-1'}})

        record = caplog.records[-1]
        assert record.custom_dimensions == {
            'component_type': 'service',
            'component_name': 'LoggerSample',
            'id_code': 'AtoN-1',
        }

    def test_single_json_handler(self):
        LoggerFactory.create_logger(ComponentType.ADAPTER, "HandlerSample")
        logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "HandlerSample")
        handlers = [h for h in logger.handlers if isinstance(h.formatter, JSONFormatter)]
        assert len(handlers) == 1

    def test_set_level_relevels_existing_loggers(self, restore_level):
        logger = LoggerFactory.create_logger(ComponentType.WORKER, "LevelSample")
        LoggerFactory.set_level("warning")
        assert logger.level == logging.WARNING

    def test_schema_stays_verbose(self, restore_level):
        LoggerFactory.set_level("ERROR")
        logger = LoggerFactory.create_logger(ComponentType.SCHEMA, "SchemaSample")
        assert logger.level == logging.DEBUG

    def test_debug_logging_wins(self, restore_level, monkeypatch):
        monkeypatch.setenv("DEBUG_LOGGING", "true")
        assert LoggerFactory.set_level("ERROR") == logging.DEBUG


class TestJSONFormatter:

    def test_one_json_object(self):
        record = logging.LogRecord("service.X", logging.WARNING, __file__, 10, "hello %s", ("there",), None)
        record.custom_dimensions = {'dataset_uuid': 'abc'}
        payload = json.loads(JSONFormatter().format(record))
        assert payload['message'] == "hello there"
        assert payload['level'] == "WARNING"
        assert payload['customDimensions'] == {'dataset_uuid': 'abc'}


class TestLogExceptions:

    def test_reraises_and_logs_error_code(self, caplog):
        @log_exceptions(ComponentType.SERVICE, "DecoratorSample")
        def lookup():
            raise ResourceNotFoundError("AtoN X not found")

        with caplog.at_level(logging.ERROR, logger="service.DecoratorSample"):
            with pytest.raises(ResourceNotFoundError):
                lookup()

        dims = caplog.records[-1].custom_dimensions
        assert dims['exception_type'] == "ResourceNotFoundError"
        assert 'error_code' in dims

    def test_return_value_passes_through(self):
        @log_exceptions(ComponentType.SERVICE, "DecoratorSample")
        def answer():
            return 42

        assert answer() == 42

#!/usr/bin/env python3
# backend/tests/unit/test_logger_service.py
"""
Tests for the loguru-backed service loggers.
"""

import pytest
from loguru import logger as loguru_logger

from listing_media.enums import LogEmoji, LoggerName, LogLevel, LogSource
from listing_media.services.logger import (
    get_service_logger,
    initialize_global_logger,
    is_logger_initialized,
)


@pytest.fixture
def captured():
    records = []
    initialize_global_logger(level=LogLevel.DEBUG)
    sink_id = loguru_logger.add(records.append, level="DEBUG", format="{message}")
    yield records
    loguru_logger.remove(sink_id)


@pytest.mark.unit
class TestServiceLogger:
    def test_records_are_bound_to_name_and_source(self, captured):
        service_logger = get_service_logger(LoggerName.STORAGE_SERVICE, LogSource.STORAGE)

        service_logger.info("Stored file", extra_context={"path": "a.webp"}, emoji=LogEmoji.STORAGE)

        record = captured[-1].record
        assert record["extra"]["logger_name"] == LoggerName.STORAGE_SERVICE.value
        assert record["extra"]["source"] == LogSource.STORAGE.value
        assert record["extra"]["context"] == {"path": "a.webp"}
        assert record["message"].startswith(LogEmoji.STORAGE.value)
        assert is_logger_initialized() is True

    def test_error_attaches_exception(self, captured):
        service_logger = get_service_logger(LoggerName.CACHE_SERVICE, LogSource.CACHE)

        try:
            raise ValueError("bad value")
        except ValueError as e:
            service_logger.error("Cache failure", exception=e, error_context={"key": "k"})

        record = captured[-1].record
        assert record["level"].name == "ERROR"
        assert record["exception"].type is ValueError
        assert record["function"] == "test_error_attaches_exception"

    def test_default_emoji(self, captured):
        service_logger = get_service_logger(
            LoggerName.SYSTEM, LogSource.SYSTEM, default_emoji=LogEmoji.HEALTH
        )

        service_logger.warning("Degraded")

        assert captured[-1].record["message"] == f"{LogEmoji.HEALTH.value} Degraded"

    def test_file_sink(self, tmp_path):
        log_file = tmp_path / "logs" / "media.log"
        initialize_global_logger(level=LogLevel.INFO, log_file=str(log_file))

        get_service_logger(LoggerName.API, LogSource.API).info("Written to file")
        loguru_logger.complete()
        initialize_global_logger(level=LogLevel.INFO)

        content = log_file.read_text(encoding="utf-8")
        assert "Written to file" in content
        assert LoggerName.API.value in content

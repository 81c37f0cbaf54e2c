# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Tests for structured logging helpers."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager

import pytest

from agentbox.runtime.logging import (
    LOG_FORMAT_ENV,
    LOG_LEVEL_ENV,
    _coerce_level,
    _JsonFormatter,
    _TextFormatter,
    configure_logging,
    get_logger,
)


class _CaptureHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@contextmanager
def _capture(logger: logging.Logger) -> Iterator[list[logging.LogRecord]]:
    handler = _CaptureHandler()
    logger.addHandler(handler)
    try:
        yield handler.records
    finally:
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture(autouse=True)
def reset_logging_state() -> Iterator[None]:
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    try:
        yield
    finally:
        for handler in root.handlers:
            if handler not in original_handlers:
                handler.close()
        root.handlers = original_handlers
        root.setLevel(original_level)


def test_structured_logger_emits_event_and_context() -> None:
    logger = get_logger("tests.logging", context={"component": "unit"})
    base_logger = logger.logger
    base_logger.setLevel(logging.INFO)

    with _capture(base_logger) as records:
        logger.info("structured", event="tests.event", context={"attempt": 1})

    assert len(records) == 1
    record = records[0]
    assert record.event == "tests.event"
    assert record.context == {"component": "unit", "attempt": 1}
    assert record.getMessage() == "structured"


def test_bind_merges_context_without_mutating_parent() -> None:
    parent = get_logger("tests.logging.bind", context={"a": 1})
    child = parent.bind(b=2)
    child.logger.setLevel(logging.INFO)

    with _capture(child.logger) as records:
        child.info("bound", event="tests.bound")

    assert records[0].context == {"a": 1, "b": 2}
    assert parent.extra == {"a": 1}


def test_missing_event_is_rejected() -> None:
    logger = get_logger("tests.logging.missing")

    with pytest.raises(TypeError):
        logger.error("no event")


def test_context_must_be_mapping() -> None:
    logger = get_logger("tests.logging.context")

    with pytest.raises(TypeError):
        logger.error("bad", event="tests.bad", context=["not", "a", "mapping"])


def test_text_formatter_appends_event_and_context() -> None:
    record = logging.LogRecord("agentbox", logging.INFO, __file__, 1, "hello", None, None)
    record.event = "tests.text"
    record.context = {"count": 2}

    line = _TextFormatter().format(record)

    assert line.endswith("hello event=tests.text count=2")


def test_json_formatter_emits_compact_json() -> None:
    record = logging.LogRecord("agentbox", logging.WARNING, __file__, 1, "hi", None, None)
    record.event = "tests.json"
    record.context = {"path": "a.txt"}

    payload = json.loads(_JsonFormatter().format(record))

    assert payload["level"] == "WARNING"
    assert payload["message"] == "hi"
    assert payload["event"] == "tests.json"
    assert payload["context"] == {"path": "a.txt"}


def test_configure_logging_installs_json_handler_from_env() -> None:
    configure_logging(
        env={LOG_LEVEL_ENV: "debug", LOG_FORMAT_ENV: "json"}, force=True
    )

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert any(isinstance(handler.formatter, _JsonFormatter) for handler in root.handlers)


def test_configure_logging_only_adjusts_level_when_handlers_exist() -> None:
    root = logging.getLogger()
    sentinel = logging.NullHandler()
    root.addHandler(sentinel)

    configure_logging(level="ERROR", env={})

    assert sentinel in root.handlers
    assert root.level == logging.ERROR


def test_coerce_level_accepts_names_and_ints() -> None:
    assert _coerce_level("warning") == logging.WARNING
    assert _coerce_level(15) == 15
    with pytest.raises(ValueError):
        _ = _coerce_level("loud")

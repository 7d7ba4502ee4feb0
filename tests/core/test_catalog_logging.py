import json
import logging

import pytest

from mcat_shared import get_logger, log_structured, log_success, request_id_var, set_log_level, timer
from mcat_shared.log import SUCCESS_LEVEL, EmojiFormatter


def test_logger_namespace_and_single_handler():
    a = get_logger("mcat_backend.features.index.scanner")
    b = get_logger("mcat_backend.features.index.scanner")
    assert a is b
    assert a.name == "mcat.features.index.scanner"
    assert len(a.handlers) == 1
    assert a.propagate is False


def test_formatter_includes_request_id():
    logger = get_logger("tests.formatter")
    record = logger.makeRecord(logger.name, logging.INFO, __file__, 1, "hello %s", ("world",), None)
    token = request_id_var.set("abc123")
    try:
        for f in logger.filters:
            f.filter(record)
    finally:
        request_id_var.reset(token)
    line = EmojiFormatter().format(record)
    assert "MediaCatalog" in line
    assert "[abc123]" in line
    assert line.endswith("hello world")


def test_success_and_structured_levels():
    logger = get_logger("tests.levels")
    seen = []

    class _Capture(logging.Handler):
        def emit(self, record):
            seen.append(record)

    cap = _Capture()
    logger.addHandler(cap)
    logger.setLevel(logging.DEBUG)
    try:
        log_success(logger, "done")
        log_structured(logger, logging.INFO, "reconcile_pass", added=2)
        with timer("step", logger):
            pass
    finally:
        logger.removeHandler(cap)

    assert seen[0].levelno == SUCCESS_LEVEL
    payload = json.loads(seen[1].getMessage())
    assert payload["message"] == "reconcile_pass"
    assert payload["context"] == {"added": 2}
    assert seen[2].getMessage().startswith("step took ")
    assert seen[2].getMessage().endswith("ms")


def test_set_log_level_applies_to_existing_and_new_loggers():
    existing = get_logger("tests.level_existing")
    try:
        assert set_log_level("debug") == logging.DEBUG
        assert existing.level == logging.DEBUG
        assert get_logger("tests.level_new").level == logging.DEBUG
        with pytest.raises(ValueError):
            set_log_level("chatty")
    finally:
        set_log_level(logging.INFO)
    assert existing.level == logging.INFO

import logging

import pytest

from meet_cli.logging_utils import configure_logging, get_logger, is_own_handler


def own_handlers():
    return [handler for handler in logging.getLogger("meet").handlers if is_own_handler(handler)]


def test_writes_info_to_rotating_file(isolated_config):
    configure_logging()
    get_logger("meet.test").info("hello from the test")
    for handler in own_handlers():
        handler.flush()

    log_file = isolated_config / "logs" / "meet.log"
    assert "| INFO | meet.test | hello from the test" in log_file.read_text(encoding="utf-8")


def test_stream_level_follows_env(monkeypatch):
    monkeypatch.setenv("MEET_LOG_LEVEL", "ERROR")
    configure_logging()
    stream = [handler for handler in own_handlers() if type(handler) is logging.StreamHandler]
    assert [handler.level for handler in stream] == [logging.ERROR]


def test_configure_is_idempotent():
    configure_logging()
    configure_logging()
    assert len(own_handlers()) == 2


# ─────────────────────────────────────────────────────────────────────────────
# Foreign Handler Tests
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def foreign_handler():
    logger = logging.getLogger("meet")
    handler = logging.NullHandler()
    logger.addHandler(handler)
    yield handler
    logger.removeHandler(handler)


def test_foreign_handler_does_not_block_setup(isolated_config, foreign_handler):
    configure_logging()

    handlers = logging.getLogger("meet").handlers
    assert foreign_handler in handlers
    assert len(own_handlers()) == 2

    get_logger("meet.test").info("still logged")
    for handler in own_handlers():
        handler.flush()
    log_file = isolated_config / "logs" / "meet.log"
    assert "still logged" in log_file.read_text(encoding="utf-8")

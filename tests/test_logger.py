import logging

import pytest

from form_registration.utils.logger import (
    ROOT_LOGGER_NAME,
    LoggerAdapter,
    get_logger,
    log_execution_time,
    setup_from_config,
    setup_logging,
)


class _Config:
    def __init__(self, sections):
        self.sections = sections

    def get_section(self, name):
        return self.sections.get(name, {})


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    setup_logging(console_enabled=False)


def test_setup_from_config_writes_rotating_file(tmp_path):
    log_file = tmp_path / "logs" / "registration.log"
    setup_from_config(_Config({"logging": {
        "level": "INFO",
        "console": {"enabled": False},
        "file": {"enabled": True, "path": str(log_file)},
        "loggers": {"form_registration.image_processing": "WARNING"},
    }}))

    get_logger("form_registration.services").info("corners resolved")
    for handler in logging.getLogger(ROOT_LOGGER_NAME).handlers:
        handler.flush()

    assert "corners resolved" in log_file.read_text(encoding="utf-8")
    assert logging.getLogger("form_registration.image_processing").level == logging.WARNING


def test_setup_without_handlers_installs_null_handler():
    setup_logging(console_enabled=False)
    handlers = logging.getLogger(ROOT_LOGGER_NAME).handlers
    assert len(handlers) == 1
    assert isinstance(handlers[0], logging.NullHandler)


def test_get_logger_is_cached():
    assert get_logger("form_registration.cli") is get_logger("form_registration.cli")


def test_adapter_prefixes_context(caplog):
    adapter = LoggerAdapter(get_logger("form_registration.services"), {"image": "a1b2"})
    with caplog.at_level(logging.WARNING, logger=ROOT_LOGGER_NAME):
        adapter.warning("Fiducial marks not found")
    assert "[image=a1b2] Fiducial marks not found" in caplog.messages


def test_execution_time_decorator_reraises(caplog):
    logger = get_logger("form_registration.services")

    @log_execution_time(logger)
    def search():
        raise RuntimeError("boom")

    with caplog.at_level(logging.DEBUG, logger=ROOT_LOGGER_NAME):
        with pytest.raises(RuntimeError):
            search()
    assert any("search failed after" in m for m in caplog.messages)

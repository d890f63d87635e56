import logging

import pytest

from horarios.core.config import Settings
from horarios.core.logging import log_directory, resolve_level, setup_logging


@pytest.fixture()
def bare_root():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    root.handlers = [handler for handler in saved_handlers if not (handler.get_name() or "").startswith("horarios")]
    yield root
    for handler in root.handlers:
        if (handler.get_name() or "").startswith("horarios"):
            handler.close()
    root.handlers = saved_handlers
    root.setLevel(saved_level)


@pytest.mark.parametrize(
    ("environment", "log_level", "expected"),
    [
        ("development", None, logging.DEBUG),
        ("production", None, logging.INFO),
        ("production", "warning", logging.WARNING),
        ("development", "nonsense", logging.DEBUG),
    ],
)
def test_level_follows_environment_unless_configured(environment, log_level, expected):
    settings = Settings(environment=environment, log_level=log_level)
    assert resolve_level(settings) == expected


def test_file_logging_only_when_a_directory_applies(tmp_path):
    assert log_directory(Settings(environment="development")) is None
    assert log_directory(Settings(environment="development", log_dir=str(tmp_path))) == tmp_path
    assert log_directory(Settings(environment="production")).name == "logs"


def test_setup_writes_rotating_file_once(bare_root, tmp_path):
    settings = Settings(environment="production", log_dir=str(tmp_path / "logs"), log_file_backups=2)

    setup_logging(settings)
    setup_logging(settings)

    ours = [handler for handler in bare_root.handlers if (handler.get_name() or "").startswith("horarios")]
    assert sorted(handler.get_name() for handler in ours) == ["horarios.console", "horarios.file"]
    rotating = next(handler for handler in ours if handler.get_name() == "horarios.file")
    assert rotating.backupCount == 2
    assert bare_root.level == logging.INFO
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    logging.getLogger("horarios.test").info("IMPORT DONE | rows=3")
    rotating.flush()
    assert "IMPORT DONE | rows=3" in (tmp_path / "logs" / "horarios.log").read_text(encoding="utf-8")

"""Tests for logging setup."""
import logging
import logging.handlers
from datetime import datetime, timedelta

from rich.logging import RichHandler

from pulsereader.logging_config import cleanup_old_logs, setup_logging


def test_console_handler_levels():
    root = setup_logging(verbose=False)
    handlers = [h for h in root.handlers if isinstance(h, RichHandler)]

    assert len(handlers) == 1
    assert handlers[0].level == logging.INFO
    assert logging.getLogger("httpx").level == logging.WARNING

    root = setup_logging(verbose=True)
    assert [h.level for h in root.handlers if isinstance(h, RichHandler)] == [logging.DEBUG]


def test_file_handler_created(tmp_path):
    root = setup_logging(log_dir=tmp_path / "logs", retention_days=7)

    assert any(isinstance(h, logging.handlers.TimedRotatingFileHandler) for h in root.handlers)
    assert (tmp_path / "logs").is_dir()

    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)


def test_cleanup_old_logs(tmp_path):
    old = tmp_path / f"{(datetime.now() - timedelta(days=40)).strftime('%Y-%m-%d')}.log"
    recent = tmp_path / f"{datetime.now().strftime('%Y-%m-%d')}.log"
    other = tmp_path / "notes.log"
    for path in (old, recent, other):
        path.write_text("x")

    cleanup_old_logs(tmp_path, retention_days=30)

    assert not old.exists()
    assert recent.exists()
    assert other.exists()

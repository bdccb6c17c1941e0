import logging

from logging_config import ColorFormatter, LogColors, setup_logging


def make_record(message, level=logging.INFO):
    return logging.LogRecord("vision_loop.test", level, __file__, 1, message, None, None)


def test_store_outcomes_are_colored_by_prefix():
    formatter = ColorFormatter("%(message)s")
    assert formatter.format(make_record("ADDED: copied new file")).startswith(LogColors.GREEN)
    assert formatter.format(make_record("FAILED: oops", logging.WARNING)).startswith(LogColors.RED)
    assert formatter.format(make_record("plain", logging.WARNING)).startswith(LogColors.YELLOW)


def test_setup_writes_to_rotating_file(tmp_path):
    setup_logging(log_dir=tmp_path, console_level=logging.CRITICAL)
    logging.getLogger("vision_loop.core.content_store").info("ADDED: hello")
    for handler in logging.getLogger("vision_loop").handlers:
        handler.flush()
    assert "ADDED: hello" in (tmp_path / "app.log").read_text(encoding="utf-8")


def test_setup_twice_does_not_duplicate_handlers(tmp_path):
    setup_logging(log_dir=tmp_path)
    setup_logging(log_dir=tmp_path)
    assert len(logging.getLogger("vision_loop").handlers) == 2

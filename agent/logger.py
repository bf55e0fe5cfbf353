# agent/logger.py
import logging
import os

from rich.console import Console
from rich.errors import MarkupError

# ── Global UI bridge (set by an interactive client at startup) ───────────────
UI_CALLBACK = None   # callable(str), writes a line to the client's log view

_console = Console(stderr=True, highlight=False)


def _print(msg: str) -> None:
    try:
        _console.print(msg)
    except MarkupError:
        # Generated text can contain "[/...]" sequences that are not markup.
        _console.print(msg, markup=False)


def _safe_ui_callback(msg: str) -> None:
    """Call UI_CALLBACK safely; never crash when the client has shut down."""
    cb = UI_CALLBACK
    if cb is None:
        _print(msg)
        return
    try:
        cb(msg)
    except Exception:
        # Client went away mid-run; keep the line on stderr.
        _print(msg)


class UILogHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
        except Exception:
            self.handleError(record)
            return
        _safe_ui_callback(msg)


def setup_logger(log_file: str = "sitewright.log") -> logging.Logger:
    logger = logging.getLogger("Sitewright")
    logger.setLevel(logging.DEBUG)

    if not logger.handlers:
        fh = logging.FileHandler(log_file, encoding="utf-8", mode="a")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(module)s:%(lineno)d | %(message)s"
        ))

        uh = UILogHandler()
        uh.setLevel(logging.INFO)
        uh.setFormatter(logging.Formatter("[dim]%(asctime)s[/dim] | %(message)s"))

        logger.addHandler(fh)
        logger.addHandler(uh)

    return logger


log = setup_logger(os.getenv("SITEWRIGHT_LOG_FILE", "sitewright.log"))

# logging_setup.py
import atexit
import logging
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
import os
import queue
import sys
import threading

from constants import LOG_DIR

# Handler failures go through Handler.handleError; keep them from printing tracebacks
logging.raiseExceptions = False

# (file name, minimum level, max bytes before rotation)
LOG_FILES = (
    ("tracker.log", logging.INFO, 5_000_000),
    ("tracker_warnings.log", logging.WARNING, 3_000_000),
    ("tracker_errors.log", logging.ERROR, 2_000_000),
)

formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

_LOG_QUEUE: "queue.SimpleQueue[logging.LogRecord]" = queue.SimpleQueue()
_LISTENER: QueueListener | None = None
_LISTENER_LOCK = threading.Lock()


def _file_handlers(log_dir: str) -> list[logging.Handler]:
    handlers = []
    for name, level, max_bytes in LOG_FILES:
        h = RotatingFileHandler(
            os.path.join(log_dir, name),
            maxBytes=max_bytes,
            backupCount=5,
            encoding="utf-8",
            delay=True,
        )
        h.setLevel(level)
        h.setFormatter(formatter)
        handlers.append(h)
    return handlers


def _stop_listener() -> None:
    global _LISTENER
    if _LISTENER is None:
        return
    _LISTENER.stop()
    for h in _LISTENER.handlers:
        h.close()
    _LISTENER = None


def configure_logging(level=logging.INFO, *, log_dir: str = LOG_DIR) -> logging.Logger:
    """
    Route the root logger through a queue so file IO never blocks the event loop.

    Safe to call more than once; the previous listener and handlers are replaced.
    Set LOG_TO_CONSOLE=1 to echo records to stdout as well.
    """
    global _LISTENER
    root = logging.getLogger()
    root.setLevel(level)
    logging.captureWarnings(True)

    with _LISTENER_LOCK:
        _stop_listener()
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()

        os.makedirs(log_dir, exist_ok=True)
        root.addHandler(QueueHandler(_LOG_QUEUE))
        _LISTENER = QueueListener(_LOG_QUEUE, *_file_handlers(log_dir), respect_handler_level=True)
        _LISTENER.start()

    if os.environ.get("LOG_TO_CONSOLE") == "1":
        sh = logging.StreamHandler(stream=sys.stdout)
        sh.setFormatter(formatter)
        sh.setLevel(level)
        root.addHandler(sh)

    return root


def handle_uncaught_exception(exc_type, exc_value, exc_traceback):
    if issubclass(exc_type, KeyboardInterrupt):
        return
    logging.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))


def shutdown_logging():
    """Drain the queue and close the log files. Safe to call more than once."""
    with _LISTENER_LOCK:
        _stop_listener()
        root = logging.getLogger()
        for h in list(root.handlers):
            if isinstance(h, QueueHandler):
                root.removeHandler(h)


atexit.register(shutdown_logging)

__all__ = [
    "configure_logging",
    "handle_uncaught_exception",
    "shutdown_logging",
]

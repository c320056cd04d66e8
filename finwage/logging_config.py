"""Structured logging configuration for production monitoring."""

import json
import logging
import os
import tempfile
import time
from logging.handlers import TimedRotatingFileHandler

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """JSON formatter for cleaner machine-parsable logs."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "func": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class SafeTimedRotatingFileHandler(TimedRotatingFileHandler):
    """TimedRotatingFileHandler that tolerates Windows file-lock rollover failures."""

    def doRollover(self) -> None:  # type: ignore[override]
        try:
            super().doRollover()
        except PermissionError as exc:
            if getattr(exc, "winerror", None) != 32:
                raise

            try:
                self.stream = self._open()
            except OSError:
                self.stream = None

            self.rolloverAt = int(time.time()) + self.interval


def _resolve_log_dir(app) -> str:
    """Resolve a writable log directory, with fallback when the primary is unavailable."""
    log_dir = os.getenv("APP_LOG_DIR")
    if not log_dir:
        root_dir = os.path.abspath(os.path.join(app.root_path, ".."))
        log_dir = os.path.join(root_dir, "logs")

    try:
        os.makedirs(log_dir, exist_ok=True)
        test_path = os.path.join(log_dir, ".write-test")
        with open(test_path, "w", encoding="utf-8") as test_file:
            test_file.write("ok")
        os.remove(test_path)
        return log_dir
    except OSError:
        fallback_dir = os.path.join(tempfile.gettempdir(), "finwage-logs")
        os.makedirs(fallback_dir, exist_ok=True)
        return fallback_dir


def _rotating_handler(path: str, level: int, formatter: logging.Formatter, backup_count: int):
    handler = SafeTimedRotatingFileHandler(
        path,
        when="midnight",
        interval=1,
        backupCount=backup_count,
        encoding="utf-8",
        delay=True,
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(app):
    """Configure rotating log files for the app and the ``finwage``/``integrations`` loggers.

    Creates, under ``APP_LOG_DIR`` (default ``<project>/logs``):
    - app.log: general application logs (rotated daily, keeps 60 days)
    - app.jsonl: the same records as JSON lines, ``extra`` fields included
    - error.log: error-level logs only (rotated daily, keeps 90 days)
    """
    log_dir = _resolve_log_dir(app)

    text_formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s in %(module)s (%(funcName)s:%(lineno)d): %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handlers = [
        _rotating_handler(os.path.join(log_dir, "app.log"), logging.INFO, text_formatter, 60),
        _rotating_handler(os.path.join(log_dir, "app.jsonl"), logging.INFO, JsonFormatter(), 60),
        _rotating_handler(os.path.join(log_dir, "error.log"), logging.ERROR, text_formatter, 90),
    ]

    if app.debug:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(text_formatter)
        handlers.append(console_handler)

    for name in ("finwage", "integrations"):
        package_logger = logging.getLogger(name)
        package_logger.setLevel(logging.INFO)
        for handler in list(package_logger.handlers):
            package_logger.removeHandler(handler)
            handler.close()
        for handler in handlers:
            package_logger.addHandler(handler)
        package_logger.propagate = False

    app.logger.info("Logging configured - logs directory: %s", log_dir)
    return app.logger


def log_request_info(request, response, duration_ms):
    """Log slow, failing and rate-limited requests."""
    from flask import current_app

    if duration_ms > 2000:
        current_app.logger.warning(
            "SLOW REQUEST (%s ms): %s %s from %s -> %s",
            f"{duration_ms:.0f}",
            request.method,
            request.path,
            request.remote_addr,
            response.status_code,
        )
    elif response.status_code >= 500:
        current_app.logger.error(
            "ERROR RESPONSE: %s %s from %s -> %s",
            request.method,
            request.path,
            request.remote_addr,
            response.status_code,
        )
    elif response.status_code == 429:
        current_app.logger.warning(
            "RATE LIMIT HIT: %s %s from %s",
            request.method,
            request.path,
            request.remote_addr,
        )

"""Structured logging configuration using structlog."""

import logging
import re
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, override

import structlog

APP_LOG_NAME = "kbchat.log"
ERROR_LOG_NAME = "kbchat.error.log"

# Console renderer colors leak into file output otherwise
ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")

# Chat input routinely carries contact details; keep them out of request logs
PII_PATTERNS = {
    "email": r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b",
    "phone": r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b",
    "api_key": r"\b(sk-|AKIA|ghp_)[A-Za-z0-9_-]{20,}\b",
}

_PII_MASKING_ENABLED = True


def mask_pii_in_message(message: str, full_mask: bool = False) -> tuple[str, list[str]]:
    """Mask PII in log messages.

    Args:
        message: Original message
        full_mask: If True, completely replace; if False, keep the email domain
            and the last four phone digits

    Returns:
        (masked_message, detected PII types)
    """
    detected: list[str] = []
    masked = message

    for pii_type, pattern in PII_PATTERNS.items():
        for match in re.finditer(pattern, message):
            original = match.group()
            detected.append(pii_type)

            if full_mask or pii_type == "api_key":
                replacement = "***"
            elif pii_type == "email":
                replacement = f"***@{original.split('@')[1]}"
            else:
                replacement = f"***{original[-4:]}"

            masked = masked.replace(original, replacement, 1)

    return masked, detected


class CleanFileHandler(logging.Handler):
    """Appends plain-text records to a file, rolling it aside once it exceeds ``max_size_mb``."""

    def __init__(self, filepath: Path, max_size_mb: int = 10):
        super().__init__()
        self.filepath = filepath
        self.max_size = max_size_mb * 1024 * 1024

    @override
    def emit(self, record: Any) -> None:
        try:
            line = ANSI_ESCAPE.sub("", self.format(record))
            with open(self.filepath, "a", encoding="utf-8") as f:
                f.write(line + "\n")

            if self.filepath.stat().st_size > self.max_size:
                self._roll_over()
        except Exception:
            self.handleError(record)

    def _roll_over(self) -> None:
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.filepath.rename(self.filepath.with_name(f"{self.filepath.stem}.{stamp}{self.filepath.suffix}"))


def _add_file_handlers(root_logger: logging.Logger, log_dir: Path) -> None:
    log_dir.mkdir(parents=True, exist_ok=True)
    file_format = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    app_handler = CleanFileHandler(log_dir / APP_LOG_NAME, max_size_mb=10)
    app_handler.setFormatter(file_format)
    root_logger.addHandler(app_handler)

    error_handler = CleanFileHandler(log_dir / ERROR_LOG_NAME, max_size_mb=5)
    error_handler.setFormatter(file_format)
    error_handler.setLevel(logging.ERROR)
    root_logger.addHandler(error_handler)


def setup_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    log_dir: str | Path | None = None,
    pii_masking_enabled: bool = True,
) -> None:
    """Configure structured logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_format: If True, output JSON format; otherwise, console-friendly format
        log_dir: When set, also write ``kbchat.log`` and ``kbchat.error.log`` there
        pii_masking_enabled: Mask emails and phone numbers in request logs
    """
    global _PII_MASKING_ENABLED
    _PII_MASKING_ENABLED = pii_masking_enabled

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    if log_dir:
        _add_file_handlers(root_logger, Path(log_dir))

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        processors_list = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors_list = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors_list,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a configured logger instance."""
    return structlog.get_logger(name)


def log_request(
    method: str,
    path: str,
    bot_id: str | None = None,
    session_id: str | None = None,
    user_message: str | None = None,
    duration_ms: float | None = None,
    status: str = "success",
    error: str | None = None,
) -> None:
    """Log one chat/ingestion request in a single readable line.

    User text is truncated and, when masking is enabled, stripped of PII.
    """
    logger = get_logger("request")

    max_len = 200
    message = None
    if user_message:
        message = user_message[:max_len] + "..." if len(user_message) > max_len else user_message
        if _PII_MASKING_ENABLED:
            message, _ = mask_pii_in_message(message)

    if error and _PII_MASKING_ENABLED:
        error, _ = mask_pii_in_message(error)

    logger.info(
        "request_handled",
        route=f"[{method}] {path}",
        bot_id=bot_id,
        session_id=session_id[:8] + "..." if session_id else None,
        input=message,
        duration_ms=round(duration_ms, 1) if duration_ms is not None else None,
        status=status.upper(),
        error=error,
    )

"""
Structured logging system for better log analysis and debugging.
Provides JSON-formatted logs with context and metadata.
"""

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any


class StructuredLogger:
    """
    Enhanced logger that outputs both human-readable and machine-parseable logs.

    Usage:
        logger = StructuredLogger("resumedl")
        logger.info("transfer_resumed",
                    url="https://example.com/big.iso",
                    offset=1048576,
                    attempt=2)
    """

    def __init__(
        self,
        name: str,
        log_dir: Path | None = None,
        enable_json: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            log_dir: Directory for JSON log files (None = disabled)
            enable_json: Enable JSON file logging
            enable_console: Enable output through the standard logging module
        """
        self.name = name
        self.log_dir = log_dir
        self.enable_json = enable_json and log_dir is not None
        self.enable_console = enable_console

        self._logger = logging.getLogger(name)

        # JSON log file
        self._json_file = None
        if self.enable_json:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            json_log_path = log_dir / f"resumedl_{timestamp}.jsonl"
            self._json_file = open(json_log_path, "a", encoding="utf-8")  # noqa: SIM115

        # Session context (added to all log entries)
        self._session_context: dict[str, Any] = {
            "session_id": f"{int(time.time())}_{id(self)}",
            "start_time": datetime.now().isoformat(),
        }

    def set_session_context(self, **kwargs) -> None:
        """Set session-level context that appears in all logs."""
        self._session_context.update(kwargs)

    def _format_message(self, event: str, **context) -> str:
        """Format message for console output."""
        parts = [f"[{event}]"]
        for key, value in context.items():
            if key not in ("level", "timestamp"):
                parts.append(f"{key}={value}")
        return " ".join(parts)

    def _write_json(self, level: str, event: str, **context) -> None:
        """Write structured log entry to JSON file."""
        if not self._json_file or self._json_file.closed:
            return

        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": level,
            "event": event,
            **self._session_context,
            **context,
        }

        try:
            self._json_file.write(json.dumps(entry, default=str) + "\n")
            self._json_file.flush()
        except (OSError, TypeError, ValueError) as e:
            # Fallback to stderr if JSON logging fails
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def _log(self, level: int, event: str, **context) -> None:
        if self.enable_console:
            self._logger.log(level, self._format_message(event, **context))
        if self.enable_json:
            self._write_json(logging.getLevelName(level), event, **context)

    def debug(self, event: str, **context) -> None:
        """Log debug event."""
        self._log(logging.DEBUG, event, **context)

    def info(self, event: str, **context) -> None:
        """Log info event."""
        self._log(logging.INFO, event, **context)

    def warning(self, event: str, **context) -> None:
        """Log warning event."""
        self._log(logging.WARNING, event, **context)

    def error(self, event: str, **context) -> None:
        """Log error event."""
        self._log(logging.ERROR, event, **context)

    def close(self) -> None:
        """Close JSON log file."""
        if self._json_file and not self._json_file.closed:
            self._json_file.close()


class TransferLogger:
    """Specialized logger for the lifecycle events of a transfer session."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def transfer_started(
        self, url: str, status: int, offset: int, bytes_left: int | None
    ):
        """Log the first accepted response of a session."""
        self.logger.debug(
            "transfer_started",
            url=url,
            status=status,
            offset=offset,
            bytes_left=bytes_left,
        )

    def transfer_interrupted(self, url: str, offset: int, error: str):
        """Log a stream interruption that will be retried."""
        self.logger.warning(
            "transfer_interrupted",
            url=url,
            offset=offset,
            error=error,
        )

    def retry_scheduled(self, url: str, attempt: int, delay_s: float, range_: str):
        """Log a resume request about to be issued after a delay."""
        self.logger.info(
            "transfer_retry_scheduled",
            url=url,
            attempt=attempt,
            delay_s=delay_s,
            range=range_,
        )

    def transfer_resumed(self, url: str, attempt: int, offset: int):
        """Log a resume request that was answered with partial content."""
        self.logger.info(
            "transfer_resumed",
            url=url,
            attempt=attempt,
            offset=offset,
        )

    def transfer_completed(self, url: str, size_bytes: int, retries: int):
        """Log a session that reached the end of the stream."""
        self.logger.debug(
            "transfer_completed",
            url=url,
            size_bytes=size_bytes,
            retries=retries,
        )

    def transfer_aborted(self, url: str, reason: str, offset: int):
        """Log a terminal failure of a session."""
        self.logger.error(
            "transfer_aborted",
            url=url,
            reason=reason,
            offset=offset,
        )

    def transfer_cancelled(self, url: str, offset: int):
        """Log a session ended by the caller."""
        self.logger.debug("transfer_cancelled", url=url, offset=offset)


def create_structured_logger(
    log_dir: Path | None = None, enable_json: bool = False
) -> tuple[StructuredLogger, TransferLogger]:
    """
    Create all structured loggers.

    Returns:
        Tuple of (base_logger, transfer_logger)
    """
    base = StructuredLogger("resumedl", log_dir=log_dir, enable_json=enable_json)
    transfer = TransferLogger(base)

    return base, transfer

"""
Logging configuration for vaultkeeper.

Colored console output through colorlog, masking of token headers, and a
process-wide aggregator counting structured errors per category so that
bursts of renewal or login failures surface as a single alert.
"""

from __future__ import annotations

import atexit
import logging
import os
import re
import sys
import threading
import time
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Any

import colorlog

from .constants import ERROR_ALERT_RATE_PER_HOUR

LOG_FORMAT = "%(asctime)s %(log_color)s%(levelname)-8s%(reset)s %(message_log_color)s%(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "magenta",
}
MAX_RECORDS_PER_CATEGORY = 1000

_TOKEN_PATTERN = re.compile(r"(X-Vault-Token['\"]?\s*[:=]\s*['\"]?)([^'\",\s}]+)", re.IGNORECASE)


class TokenRedactionFilter(logging.Filter):
    """Masks ``X-Vault-Token`` header values that end up in a log message."""

    def filter(self, record):
        message = record.getMessage()
        if "x-vault-token" in message.lower():
            record.msg = _TOKEN_PATTERN.sub(r"\1***", message)
            record.args = None
        return True


@dataclass(frozen=True)
class ErrorRecord:
    timestamp: float
    message: str
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ErrorStats:
    """Per-category view returned by ``ErrorAggregator.get_error_summary``."""

    total: int
    last_hour: int
    rate_per_hour: float
    last: ErrorRecord | None


class ErrorAggregator:
    """Counts structured errors per category.

    Only the most recent ``MAX_RECORDS_PER_CATEGORY`` records of a category
    are kept. The hourly rate is computed over the aggregator's lifetime with
    a floor of one hour, so a short burst right after startup does not alert.
    """

    def __init__(self):
        self._records: dict[str, deque[ErrorRecord]] = defaultdict(
            lambda: deque(maxlen=MAX_RECORDS_PER_CATEGORY)
        )
        self._lock = threading.Lock()
        self._started_at = time.time()

    def record_error(self, category: str, message: str, context: dict[str, Any] | None = None) -> None:
        with self._lock:
            self._records[category].append(ErrorRecord(time.time(), message, dict(context or {})))

    def get_error_summary(self) -> dict[str, ErrorStats]:
        with self._lock:
            now = time.time()
            hours = max((now - self._started_at) / 3600, 1)
            return {
                category: ErrorStats(
                    total=len(records),
                    last_hour=sum(1 for r in records if now - r.timestamp < 3600),
                    rate_per_hour=len(records) / hours,
                    last=records[-1] if records else None,
                )
                for category, records in self._records.items()
            }

    def should_alert(self, category: str, threshold_rate: float = ERROR_ALERT_RATE_PER_HOUR) -> bool:
        stats = self.get_error_summary().get(category)
        return stats is not None and stats.rate_per_hour > threshold_rate

    def reset(self) -> None:
        with self._lock:
            self._records.clear()
            self._started_at = time.time()

    def log_summary_report(self) -> None:
        summary = self.get_error_summary()
        if not summary:
            logging.info("📊 No errors recorded")
            return
        logging.warning(f"🚨 Error summary for {len(summary)} categories")
        for category, stats in sorted(summary.items()):
            last = f" last={stats.last.message}" if stats.last else ""
            logging.warning(
                f"  {category}: total={stats.total} last_hour={stats.last_hour} "
                f"rate={stats.rate_per_hour:.1f}/h{last}"
            )


# Process-wide aggregator fed by log_structured_error
error_aggregator = ErrorAggregator()


def format_structured_message(
    category: str,
    message: str,
    exception: BaseException | None = None,
    context: dict[str, Any] | None = None,
) -> str:
    """Render ``[CATEGORY] message | Exception: ... | Context: k=v | ...``."""
    parts = [f"[{category.upper()}] {message}"]
    if exception is not None:
        parts.append(f"Exception: {type(exception).__name__}: {exception}")
    if context:
        parts.append("Context: " + " | ".join(f"{k}={v}" for k, v in context.items()))
    return " | ".join(parts)


def log_structured_error(
    error_type: str,
    message: str,
    exception: BaseException | None = None,
    context: dict[str, Any] | None = None,
    level: int = logging.ERROR,
) -> None:
    """Log an error in structured form and count it for rate alerting.

    Args:
        error_type: Category of the error ('transport', 'lease', 'pipeline', ...).
        message: Descriptive error message.
        exception: The exception that occurred, if any.
        context: Additional key/value context.
        level: Logging level (default: ERROR).
    """
    logging.log(level, format_structured_message(error_type, message, exception, context))
    error_aggregator.record_error(error_type, message, context)
    if error_aggregator.should_alert(error_type):
        rate = error_aggregator.get_error_summary()[error_type].rate_per_hour
        logging.critical(f"🚨 HIGH ERROR RATE ALERT: {error_type} at {rate:.1f}/hour")


def _level_from_env() -> int:
    if os.environ.get("DEBUG", "").lower() in ("true", "1", "yes"):
        return logging.DEBUG
    return logging.INFO


class LoggerConfigurator:
    """Installs the colored stderr handler on the root logger.

    ``DEBUG=true|1|yes`` in the environment switches to DEBUG level.
    """

    def __init__(self, report_interval_seconds: float | None = None):
        """
        Args:
            report_interval_seconds: When set, a daemon thread logs the error
                summary at this interval.
        """
        self.report_interval_seconds = report_interval_seconds

    def configure(self):
        level = _level_from_env()
        formatter = colorlog.ColoredFormatter(
            LOG_FORMAT,
            datefmt=LOG_DATE_FORMAT,
            log_colors=LOG_COLORS,
            secondary_log_colors={"message": {"ERROR": "red", "CRITICAL": "magenta"}},
            reset=True,
        )
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)
        handler.addFilter(TokenRedactionFilter())

        root = logging.getLogger()
        for existing in list(root.handlers):
            root.removeHandler(existing)
        root.addHandler(handler)
        root.setLevel(level)
        # aiohttp client internals are noisy at DEBUG
        logging.getLogger("aiohttp").setLevel(logging.INFO)

        if self.report_interval_seconds:
            self._start_periodic_reporting(self.report_interval_seconds)
        atexit.register(self._log_final_summary)

    def _start_periodic_reporting(self, interval: float):
        def report_loop():
            while True:
                time.sleep(interval)
                try:
                    error_aggregator.log_summary_report()
                except Exception as e:
                    logging.error(f"Failed to log periodic error summary: {e}")

        threading.Thread(target=report_loop, name="error-summary", daemon=True).start()

    def _log_final_summary(self):
        try:
            error_aggregator.log_summary_report()
        except Exception as e:
            logging.error(f"Failed to log final error summary: {e}")

r"""
Root logging setup for the chat bot.

``LoggerConfigurator`` installs a colorlog handler on the root logger.
``log_structured_error`` writes one categorised line per failure and feeds
the per-category tally reported at shutdown.
"""

import atexit
import logging
import os
import sys
import threading
import time
from collections import defaultdict, deque
from typing import Any

import colorlog

_HISTORY_PER_CATEGORY = 1000
_ALERT_RATE_PER_HOUR = 10.0
_HOUR = 3600.0
_QUIET_LOGGERS = ("aiohttp", "asyncio")
_summary_registered = False
_LEVEL_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "magenta",
}


class ErrorAggregator:
    """Keeps the most recent failures per category (handler, network, auth, ...)."""

    def __init__(self):
        self.errors: dict[str, deque[dict[str, Any]]] = defaultdict(
            lambda: deque(maxlen=_HISTORY_PER_CATEGORY)
        )
        self.lock = threading.Lock()
        self.start_time = time.time()

    def record_error(
        self, error_type: str, message: str, context: dict[str, Any] | None = None
    ) -> None:
        entry = {"timestamp": time.time(), "message": message, "context": context or {}}
        with self.lock:
            self.errors[error_type].append(entry)

    def _stats(self, occurrences: deque[dict[str, Any]], now: float) -> dict[str, Any]:
        hours = max((now - self.start_time) / _HOUR, 1.0)
        return {
            "total_count": len(occurrences),
            "recent_count": sum(1 for e in occurrences if now - e["timestamp"] < _HOUR),
            "rate_per_hour": len(occurrences) / hours,
            "last_occurrence": occurrences[-1] if occurrences else None,
        }

    def get_error_summary(self) -> dict[str, Any]:
        now = time.time()
        with self.lock:
            return {
                error_type: self._stats(occurrences, now)
                for error_type, occurrences in self.errors.items()
            }

    def should_alert(
        self, error_type: str, threshold_rate: float = _ALERT_RATE_PER_HOUR
    ) -> bool:
        with self.lock:
            occurrences = self.errors.get(error_type)
            if not occurrences:
                return False
            stats = self._stats(occurrences, time.time())
        return stats["rate_per_hour"] > threshold_rate

    def log_summary_report(self) -> None:
        summary = self.get_error_summary()
        if not summary:
            logging.info("No errors recorded in current session")
            return
        logging.warning("🚨 Error summary")
        for error_type, stats in sorted(summary.items()):
            last = stats["last_occurrence"]
            logging.warning(
                f"  {error_type}: {stats['total_count']} total, "
                f"{stats['recent_count']} in the last hour"
                + (f" (last: {last['message']})" if last else "")
            )


error_aggregator = ErrorAggregator()


def log_structured_error(
    error_type: str,
    message: str,
    exception: Exception | None = None,
    context: dict[str, Any] | None = None,
    level: int = logging.ERROR,
) -> None:
    """Log ``[CATEGORY] message | Exception: ... | Context: k=v`` and tally it.

    A CRITICAL line follows when the category exceeds the alert rate.
    """
    parts = [f"[{error_type.upper()}] {message}"]
    if exception:
        parts.append(f"Exception: {type(exception).__name__}: {exception}")
    if context:
        parts.append("Context: " + " | ".join(f"{k}={v}" for k, v in context.items()))
    logging.log(level, " | ".join(parts))

    error_aggregator.record_error(error_type, message, context)
    if error_aggregator.should_alert(error_type):
        rate = error_aggregator.get_error_summary()[error_type]["rate_per_hour"]
        logging.critical(f"🚨 HIGH ERROR RATE: {error_type} at {rate:.1f}/hour")


def _debug_requested() -> bool:
    return os.environ.get("DEBUG", "").lower() in ("true", "1", "yes")


def _build_formatter() -> logging.Formatter:
    return colorlog.ColoredFormatter(
        "%(asctime)s %(log_color)s%(levelname)-8s%(reset)s %(message_log_color)s%(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        log_colors=_LEVEL_COLORS,
        secondary_log_colors={"message": {"ERROR": "red", "CRITICAL": "magenta"}},
        reset=True,
    )


class LoggerConfigurator:
    """Routes the root logger to stderr through colorlog.

    ``DEBUG`` set to 'true', '1' or 'yes' lowers the level to DEBUG.
    """

    def configure(self) -> None:
        level = logging.DEBUG if _debug_requested() else logging.INFO
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(_build_formatter())

        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.addHandler(handler)
        root_logger.setLevel(level)
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

        global _summary_registered  # noqa: PLW0603
        if not _summary_registered:
            atexit.register(self._log_final_error_summary)
            _summary_registered = True

    @staticmethod
    def _log_final_error_summary() -> None:
        logging.info("📊 Final error summary before shutdown:")
        error_aggregator.log_summary_report()

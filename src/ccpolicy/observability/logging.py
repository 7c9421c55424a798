"""
Logging for ccpolicy.

The CLI writes human-readable lines to stderr. Pipelines that collect logs
can switch to one JSON object per record with CCPOLICY_LOG_FORMAT=json.
Compilation code logs through PolicyLogger so every record of a run carries
an event_type and the workload it belongs to.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from functools import partialmethod
from typing import Any

ROOT_LOGGER_NAME = "ccpolicy"

# Attributes every LogRecord has; anything else came in through extra=
_STANDARD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.NOTSET, "", 0, "", (), None))
) | {"message", "asctime"}


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _STANDARD_ATTRIBUTES
    }


class StructuredFormatter(logging.Formatter):
    """Render each record as a single JSON line."""

    def __init__(
        self,
        include_timestamp: bool = True,
        include_location: bool = False,
        extra_fields: dict[str, Any] | None = None,
    ):
        """
        Args:
            include_timestamp: Add a UTC ISO-8601 timestamp
            include_location: Add the source file, line and function
            extra_fields: Fields merged into every record, e.g. a run id
        """
        super().__init__()
        self.include_timestamp = include_timestamp
        self.include_location = include_location
        self.extra_fields = dict(extra_fields or {})

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {}
        if self.include_timestamp:
            entry["timestamp"] = datetime.fromtimestamp(record.created, timezone.utc).strftime(
                "%Y-%m-%dT%H:%M:%S.%fZ"
            )
        entry.update(
            level=record.levelname.lower(),
            logger=record.name,
            message=record.getMessage(),
        )
        if self.include_location:
            entry["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        entry.update(_record_fields(record))
        entry.update(self.extra_fields)
        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Render records as `LEVEL logger: message` for a terminal."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True, include_timestamp: bool = False):
        super().__init__()
        # colors only make sense on an interactive stderr
        self.use_colors = use_colors and sys.stderr.isatty()
        self.include_timestamp = include_timestamp

    def _level(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:<8}"
        color = self.LEVEL_COLORS.get(record.levelno)
        if self.use_colors and color:
            return f"{color}{level}{self.RESET}"
        return level

    def format(self, record: logging.LogRecord) -> str:
        line = f"{self._level(record)} {record.name}: {record.getMessage()}"
        if self.include_timestamp:
            stamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
            line = f"[{stamp}] {line}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class PolicyLogger:
    """
    Logger for policy compilation.

    Context fields set with set_context() are attached to every record.
    The document_* and container_* methods emit the events a compilation
    run produces; each record carries event_type plus the event's fields,
    which StructuredFormatter writes out as JSON keys.
    """

    def __init__(self, name: str, level: int | None = None):
        self.logger = logging.getLogger(name)
        if level is not None:
            self.logger.setLevel(level)
        self._context: dict[str, Any] = {}

    def set_context(self, **fields: Any) -> None:
        self._context.update(fields)

    def clear_context(self) -> None:
        self._context.clear()

    def log(self, level: int, message: str, exc_info: bool = False, **fields: Any) -> None:
        """Log message at level with the context and fields as record extras."""
        self.logger.log(level, message, exc_info=exc_info, extra={**self._context, **fields})

    debug = partialmethod(log, logging.DEBUG)
    info = partialmethod(log, logging.INFO)
    warning = partialmethod(log, logging.WARNING)
    error = partialmethod(log, logging.ERROR)

    def document_started(self, kind: str, workload: str) -> None:
        self.info(
            f"Compiling policy for {kind} {workload}",
            event_type="document.started",
            kind=kind,
            workload=workload,
        )

    def container_compiled(
        self,
        container: str,
        arg_count: int,
        env_count: int,
        mount_count: int,
    ) -> None:
        self.debug(
            f"Container {container}: {arg_count} args, {env_count} env rules, {mount_count} mounts",
            event_type="container.compiled",
            container=container,
            arg_count=arg_count,
            env_count=env_count,
            mount_count=mount_count,
        )

    def document_compiled(self, kind: str, workload: str, container_count: int) -> None:
        self.info(
            f"Compiled policy for {kind} {workload} with {container_count} containers",
            event_type="document.compiled",
            kind=kind,
            workload=workload,
            container_count=container_count,
        )

    def document_skipped(self, index: int, reason: str) -> None:
        """Log a stream document that produces no policy."""
        self.info(
            f"Skipping document {index}: {reason}",
            event_type="document.skipped",
            index=index,
            reason=reason,
        )

    def document_failed(self, kind: str, workload: str, error: str) -> None:
        self.error(
            f"Failed to compile policy for {kind} {workload}: {error}",
            event_type="document.failed",
            kind=kind,
            workload=workload,
            error=error,
        )


def configure_logging(
    level: str = "WARNING",
    format: str = "human",
    output: str = "stderr",
    extra_fields: dict[str, Any] | None = None,
) -> None:
    """
    Install a single handler on the ccpolicy root logger.

    Calling this again replaces the previous handler.

    Args:
        level: Level name, case-insensitive
        format: "json" for StructuredFormatter, anything else for
            HumanReadableFormatter
        output: "stderr" or "stdout"
        extra_fields: Fields added to every JSON record
    """
    formatter: logging.Formatter
    if format == "json":
        formatter = StructuredFormatter(extra_fields=extra_fields)
    else:
        formatter = HumanReadableFormatter()

    handler = logging.StreamHandler(sys.stdout if output == "stdout" else sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level.upper())
    root.handlers.clear()
    root.addHandler(handler)


def get_logger(name: str) -> PolicyLogger:
    """Return a PolicyLogger named ccpolicy.<name>."""
    return PolicyLogger(f"{ROOT_LOGGER_NAME}.{name}")


configure_logging(
    level=os.getenv("CCPOLICY_LOG_LEVEL", "WARNING"),
    format=os.getenv("CCPOLICY_LOG_FORMAT", "human"),
)

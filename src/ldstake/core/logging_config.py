"""
JSON log output for ldstake.

Contract modules never configure logging themselves. They log through
``logging.getLogger(__name__)`` and attach machine-readable context as
``extra={"event": "staking.staked", "amount": ...}``; this module decides
where those records go and renders each one as a single JSON line.

Usage:
    from ldstake.core.logging_config import setup_logging

    setup_logging(level="DEBUG", log_file="logs/ldstake.json")
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pythonjsonlogger.json import JsonFormatter

if TYPE_CHECKING:
    from .config import StakingConfig

ROOT_LOGGER = "ldstake"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 5


class StakingJsonFormatter(JsonFormatter):
    """Render records as JSON stamped with service, environment and call site."""

    def __init__(self, environment: Optional[str] = None, service_name: str = ROOT_LOGGER):
        super().__init__(fmt="%(timestamp)s %(level)s %(name)s %(message)s")
        self.environment = environment or "development"
        self.service_name = service_name

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        # The base class pre-fills required fields with None
        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat()
        if not log_record.get("level"):
            log_record["level"] = record.levelname.lower()

        log_record.update(
            environment=self.environment,
            service=self.service_name,
            source={
                "module": record.module,
                "function": record.funcName,
                "line": record.lineno,
            },
        )


def _build_handlers(
    formatter: logging.Formatter,
    log_file: Optional[str],
    enable_console: bool,
    max_bytes: int,
    backup_count: int,
) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if enable_console:
        handlers.append(logging.StreamHandler(sys.stdout))
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def setup_logging(
    name: str = ROOT_LOGGER,
    log_file: Optional[str] = None,
    level: str = "INFO",
    environment: str = "development",
    enable_console: bool = True,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> logging.Logger:
    """
    Attach JSON handlers to ``name`` and return that logger.

    Calling it again replaces the handlers it attached before, so it is
    safe to re-run after the configuration changes.

    Args:
        name: Logger to configure; every ``ldstake.*`` module logger
            propagates to the default
        log_file: Rotating JSON log file (optional)
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        environment: Stamped on every record
        enable_console: Also write JSON lines to stdout
        max_bytes: Rotate the log file at this size
        backup_count: Rotated files to keep
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = StakingJsonFormatter(
        environment=environment,
        service_name=name.split(".")[0],
    )
    for handler in _build_handlers(formatter, log_file, enable_console, max_bytes, backup_count):
        logger.addHandler(handler)

    return logger


def configure_from(config: "StakingConfig", enable_console: bool = True) -> logging.Logger:
    """Apply the logging settings carried by a :class:`StakingConfig`."""
    return setup_logging(
        name=ROOT_LOGGER,
        log_file=config.log_file,
        level=config.log_level,
        environment=config.environment,
        enable_console=enable_console,
    )


def get_logger(name: str, log_file: Optional[str] = None, level: str = "INFO") -> logging.Logger:
    """Return ``name``'s logger, configuring it only if nothing has yet."""
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    return setup_logging(name=name, log_file=log_file, level=level)

"""Logging configuration."""
import os
import sys
from pathlib import Path

import psutil
import sentry_sdk
from loguru import logger

from room_scout.config.settings import settings

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
)


def setup_logger(log_level: str = "INFO", logs_dir: Path | None = None) -> None:
    logger.remove()

    # Console / journalctl
    logger.add(sys.stderr, format=_CONSOLE_FORMAT, level=log_level, colorize=True)

    logs_dir = logs_dir or settings.logs_dir
    logs_dir.mkdir(parents=True, exist_ok=True)
    logger.add(
        logs_dir / "room_scout_{time:YYYY-MM-DD}.log",
        level=log_level,
        rotation="00:00",
        retention="14 days",
        encoding="utf-8",
        enqueue=True,
    )

    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.sentry_environment,
        )

        def sentry_sink(message):
            record = message.record
            if record["exception"]:
                sentry_sdk.capture_exception(record["exception"].value)
                return
            with sentry_sdk.new_scope() as scope:
                scope.set_tag("module", record["name"])
                scope.set_extra("function", record["function"])
                scope.set_extra("line", record["line"])
                sentry_sdk.capture_message(record["message"], level="error", scope=scope)

        logger.add(sentry_sink, level="ERROR")

    logger.debug(f"Logger initialized, writing to {logs_dir}")


def log_resources() -> None:
    """Log current process CPU and memory usage."""
    proc = psutil.Process(os.getpid())
    rss_mb = proc.memory_info().rss / 1024 / 1024
    cpu = proc.cpu_percent(interval=0.1)
    logger.info(f"[resources] CPU: {cpu:.0f}% | RAM: {rss_mb:.0f}MB")

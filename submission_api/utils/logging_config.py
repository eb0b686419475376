from __future__ import annotations

import logging

import watchtower

from ..config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_installed: set[str] = set()


def configure_logging(settings: Settings) -> None:
    """Configure the root logger; ship to CloudWatch when a log group is set."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.log_level, logging.INFO))

    if "stream" not in _installed:
        stream = logging.StreamHandler()
        stream.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(stream)
        _installed.add("stream")

    if settings.cloudwatch_log_group and "cloudwatch" not in _installed:
        handler = watchtower.CloudWatchLogHandler(log_group_name=settings.cloudwatch_log_group)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        _installed.add("cloudwatch")
        logging.getLogger(__name__).info(
            f"CloudWatch logging enabled: {settings.cloudwatch_log_group}"
        )

"""
Environment-driven configuration for the submission service.

Every setting is read once at startup. Values that fail to parse fall back
to their defaults with a logged warning instead of aborting the process.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_PUBLIC_PAGE_SIZE = 20


def _int_env(name: str, default: int, *, minimum: int = 1, maximum: int = 1000) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except (ValueError, TypeError) as e:
        logger.warning(f"Invalid {name} value: {raw}. Error: {e}. Using default: {default}")
        return default
    if value < minimum or value > maximum:
        logger.warning(
            f"{name} value {value} outside [{minimum}, {maximum}]. Using default: {default}"
        )
        return default
    return value


@dataclass(frozen=True)
class Settings:
    region: str
    endpoint_url: Optional[str]
    store_backend: str
    code_backend: str
    submissions_table: str
    submission_status_table: str
    tasks_table: str
    users_table: str
    code_bucket: str
    code_prefix: str
    jwt_algorithm: str
    jwt_secret_name: str
    is_production: bool
    public_page_size: int
    display_timezone: str
    log_level: str
    cloudwatch_log_group: Optional[str]


def load_settings() -> Settings:
    python_env = os.getenv("PYTHON_ENV", "development").lower()
    return Settings(
        region=os.getenv("AWS_REGION", os.getenv("AWS_DEFAULT_REGION", "us-east-1")),
        endpoint_url=os.getenv("AWS_ENDPOINT_URL") or None,
        store_backend=os.getenv("STORE_BACKEND", "dynamodb").lower(),
        code_backend=os.getenv("CODE_BACKEND", "s3").lower(),
        submissions_table=os.getenv("DDB_TABLE_SUBMISSIONS", "submissions"),
        submission_status_table=os.getenv("DDB_TABLE_SUBMISSION_STATUS", "submission_status"),
        tasks_table=os.getenv("DDB_TABLE_TASKS", "tasks"),
        users_table=os.getenv("DDB_TABLE_USERS", "users"),
        code_bucket=os.getenv("CODE_BUCKET", "submission-code"),
        code_prefix=os.getenv("CODE_PREFIX", "submissions").strip("/"),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        jwt_secret_name=os.getenv("JWT_SECRET_NAME", "judge-jwt-secret"),
        is_production=python_env == "production",
        public_page_size=_int_env("PUBLIC_PAGE_SIZE", DEFAULT_PUBLIC_PAGE_SIZE),
        display_timezone=os.getenv("DISPLAY_TIMEZONE", "UTC"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        cloudwatch_log_group=os.getenv("CLOUDWATCH_LOG_GROUP") or None,
    )

"""
boto3 client factories.

Region and endpoint come from ``Settings`` so one place decides whether we talk
to AWS or to LocalStack (``AWS_ENDPOINT_URL=http://localhost:4566``).
"""
from typing import Any, Dict, Optional

import boto3

from .config import Settings, load_settings


def _kw(settings: Optional[Settings]) -> Dict[str, Any]:
    settings = settings or load_settings()
    k: Dict[str, Any] = {"region_name": settings.region}
    if settings.endpoint_url:
        k["endpoint_url"] = settings.endpoint_url
    return k


def s3_client(settings: Optional[Settings] = None):
    return boto3.client("s3", **_kw(settings))


def dynamodb_client(settings: Optional[Settings] = None):
    return boto3.client("dynamodb", **_kw(settings))


def dynamodb_resource(settings: Optional[Settings] = None):
    return boto3.resource("dynamodb", **_kw(settings))


def secretsmanager_client(settings: Optional[Settings] = None):
    return boto3.client("secretsmanager", **_kw(settings))

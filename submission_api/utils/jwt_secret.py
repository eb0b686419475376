"""
Retrieval of the secret used to verify caller JWTs.

In production the secret comes from AWS Secrets Manager only, and any failure
is fatal at startup. In development the ``JWT_SECRET`` environment variable
wins, Secrets Manager is tried next, and a throwaway secret is generated as a
last resort so the service can still boot locally.
"""
from __future__ import annotations

import json
import logging
import os
import secrets
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from ..aws_clients import secretsmanager_client
from ..config import Settings

logger = logging.getLogger(__name__)

# Cache for the JWT secret to avoid repeated Secrets Manager calls
_JWT_SECRET_CACHE: Optional[str] = None


def _read_from_secrets_manager(settings: Settings, client=None) -> str:
    client = client or secretsmanager_client(settings)
    response = client.get_secret_value(SecretId=settings.jwt_secret_name)
    secret_string = response.get("SecretString")
    if not secret_string:
        raise ValueError("SecretString is empty")
    secret_data = json.loads(secret_string)
    jwt_secret = secret_data.get("jwt_secret")
    if not jwt_secret:
        raise ValueError("jwt_secret field not found in secret")
    return jwt_secret


def get_jwt_secret(settings: Settings, client=None) -> str:
    """
    Return the JWT verification secret, caching it for the process lifetime.

    Raises:
        RuntimeError: In production if Secrets Manager cannot supply the secret
    """
    global _JWT_SECRET_CACHE

    if _JWT_SECRET_CACHE is not None:
        return _JWT_SECRET_CACHE

    if not settings.is_production:
        env_secret = os.getenv("JWT_SECRET")
        if env_secret:
            logger.info("Using JWT_SECRET from environment variable (development mode)")
            _JWT_SECRET_CACHE = env_secret
            return env_secret

    try:
        jwt_secret = _read_from_secrets_manager(settings, client)
        logger.info(f"Retrieved JWT secret from Secrets Manager: {settings.jwt_secret_name}")
        _JWT_SECRET_CACHE = jwt_secret
        return jwt_secret
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "")
        error_msg = f"Error retrieving JWT secret '{settings.jwt_secret_name}' ({error_code}): {e}"
    except (json.JSONDecodeError, ValueError) as e:
        error_msg = f"Error parsing JWT secret from Secrets Manager: {e}"
    except BotoCoreError as e:
        error_msg = f"AWS Secrets Manager not available: {e}"

    if settings.is_production:
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    logger.warning(
        f"{error_msg}. Generated a temporary secret for local development; "
        "set JWT_SECRET or configure Secrets Manager."
    )
    _JWT_SECRET_CACHE = secrets.token_urlsafe(32)
    return _JWT_SECRET_CACHE


def clear_jwt_secret_cache() -> None:
    """Clear the JWT secret cache. Useful for testing or secret rotation."""
    global _JWT_SECRET_CACHE
    _JWT_SECRET_CACHE = None

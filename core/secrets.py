"""
Secrets Management Module

Resolves the Google service account credentials and checks that the
session secrets are fit for production.

Environment Variable Mapping:
- GOOGLE_SERVICE_ACCOUNT_JSON: service account JSON (raw or base64 encoded)
- GOOGLE_SERVICE_ACCOUNT_FILE: path to a service account JSON file
- SHIFT_PASSWORD: shared staff password exchanged for a session
- SESSION_SECRET: HMAC key for session tokens
"""

import base64
import binascii
import json
import logging
import os

from core.config import ConfigurationError, GoogleConfig

logger = logging.getLogger(__name__)


def _decode_service_account_json(raw: str) -> dict:
    """Decode service account JSON given either verbatim or base64 encoded."""
    text = raw.strip()
    if not text.startswith("{"):
        try:
            text = base64.b64decode(text, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise ConfigurationError(
                f"GOOGLE_SERVICE_ACCOUNT_JSON is neither JSON nor base64 JSON: {e}"
            )
    try:
        info = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"GOOGLE_SERVICE_ACCOUNT_JSON is not valid JSON: {e}")
    if not isinstance(info, dict):
        raise ConfigurationError("GOOGLE_SERVICE_ACCOUNT_JSON must be a JSON object")
    return info


def get_service_account_info(config: GoogleConfig) -> dict:
    """Get Google service account credentials.

    Supports:
    1. GOOGLE_SERVICE_ACCOUNT_JSON (raw JSON or base64 encoded JSON)
    2. GOOGLE_SERVICE_ACCOUNT_FILE (path to JSON file)

    Raises:
        ConfigurationError: if neither source yields credentials
    """
    if config.service_account_json:
        info = _decode_service_account_json(config.service_account_json)
        logger.debug("Service account loaded from GOOGLE_SERVICE_ACCOUNT_JSON")
        return info

    path = config.service_account_file
    if path:
        if not os.path.exists(path):
            raise ConfigurationError(f"Service account file not found: {path}")
        with open(path) as f:
            try:
                info = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Service account file {path} is not valid JSON: {e}")
        logger.debug(f"Service account loaded from {path}")
        return info

    raise ConfigurationError("Missing GOOGLE_SERVICE_ACCOUNT_JSON")


def check_production_readiness(session_secret: str, shift_password: str) -> list[str]:
    """Check if the session secrets are configured for production.

    Returns list of missing or insecure configurations.
    """
    warnings = []

    if not session_secret:
        warnings.append("SESSION_SECRET not set - logins are disabled")
    elif len(session_secret) < 32:
        warnings.append("SESSION_SECRET is too short (should be at least 32 characters)")

    if not shift_password:
        warnings.append("SHIFT_PASSWORD not set - logins are disabled")

    return warnings

"""API token handling — environment variable first, then the OS keyring."""

import logging
import os

import keyring

from tsdns.config import KEYRING_SERVICE, KEYRING_USERNAME, TOKEN_ENV_VAR
from tsdns.core.cloudflare_client import sanitize_token
from tsdns.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


def store_token(token: str) -> None:
    """Persist *token* in the OS keyring."""
    keyring.set_password(KEYRING_SERVICE, KEYRING_USERNAME, sanitize_token(token))


def has_stored_token() -> bool:
    """Return True if a token has been saved with ``tsdns login``."""
    return keyring.get_password(KEYRING_SERVICE, KEYRING_USERNAME) is not None


def clear_token() -> None:
    """Remove the stored token, if any."""
    try:
        keyring.delete_password(KEYRING_SERVICE, KEYRING_USERNAME)
    except keyring.errors.PasswordDeleteError:
        pass


def get_token() -> str:
    """Return the Cloudflare API token for this run.

    ``$CLOUDFLARE_API_TOKEN`` wins over the keyring.  Raises
    ``ConfigurationError`` when neither is set or the value is malformed.
    """
    raw = os.environ.get(TOKEN_ENV_VAR, "")
    source = TOKEN_ENV_VAR
    if not raw.strip():
        raw = keyring.get_password(KEYRING_SERVICE, KEYRING_USERNAME) or ""
        source = "keyring"
    if not raw.strip():
        raise ConfigurationError(
            f"No Cloudflare API token.  Set {TOKEN_ENV_VAR} or run 'tsdns login'."
        )
    try:
        token = sanitize_token(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid token from {source}: {exc}") from exc
    logger.debug("Using Cloudflare token from %s", source)
    return token

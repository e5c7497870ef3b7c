"""tsdns — Application-wide constants and environment configuration."""

import os
from pathlib import Path

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
_log_file = os.environ.get("TSDNS_LOG_FILE", "")
LOG_FILE = Path(_log_file) if _log_file else None

# ---------------------------------------------------------------------------
# Cloudflare API
# ---------------------------------------------------------------------------
CLOUDFLARE_API_BASE = "https://api.cloudflare.com/client/v4"
HTTP_TIMEOUT_SECONDS = 30
TOKEN_ENV_VAR = "CLOUDFLARE_API_TOKEN"

# Cloudflare's "automatic" TTL
AUTO_TTL = 1

# ---------------------------------------------------------------------------
# Managed DNS record types
# ---------------------------------------------------------------------------
MANAGED_RECORD_TYPES = ("A", "AAAA")

# ---------------------------------------------------------------------------
# Tailscale
# ---------------------------------------------------------------------------
TAILSCALE_BIN = os.environ.get("TAILSCALE_BIN", "tailscale")

# ---------------------------------------------------------------------------
# Token storage
# ---------------------------------------------------------------------------
KEYRING_SERVICE = "tsdns_cloudflare_token"
KEYRING_USERNAME = "tsdns"

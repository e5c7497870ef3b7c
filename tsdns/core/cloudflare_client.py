"""Cloudflare API client — zone lookup and DNS record operations."""

import logging
import re
from typing import Any

import requests

from tsdns.config import CLOUDFLARE_API_BASE, HTTP_TIMEOUT_SECONDS
from tsdns.core.errors import ConfigurationError, ProviderError
from tsdns.core.gateway import DNSGateway, ExistingRecord

logger = logging.getLogger(__name__)

# Cloudflare API tokens are 40-char alphanumeric strings with hyphens/underscores
_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_\-]{20,}$")


class CloudflareAPIError(ProviderError):
    """Raised when a Cloudflare API call fails."""

    def __init__(self, status_code: int, errors: list[dict]):
        self.status_code = status_code
        self.errors = errors
        messages = "; ".join(e.get("message", str(e)) for e in errors)
        super().__init__(f"Cloudflare API error ({status_code}): {messages}")


def sanitize_token(raw: str) -> str:
    """Extract a clean API token from user input.

    Strips surrounding quotes and a ``Bearer`` prefix, then validates the
    result.  Raises ``ValueError`` if it doesn't look like a Cloudflare token.
    """
    cleaned = raw.strip().strip('"').strip("'").strip()

    if "Bearer" in cleaned:
        idx = cleaned.rfind("Bearer ")
        cleaned = cleaned[idx + len("Bearer "):].strip().strip('"').strip("'")
    elif cleaned.lower().startswith("curl "):
        raise ValueError(
            "It looks like you pasted a curl command.\n"
            "Please paste only the API token value."
        )

    if not cleaned:
        raise ValueError("Token is empty.")
    if not _TOKEN_PATTERN.match(cleaned):
        raise ValueError(
            "Invalid API token format.\n"
            "A Cloudflare API token is an alphanumeric string "
            "(typically 40 characters)."
        )
    return cleaned


class CloudflareClient(DNSGateway):
    """Thin wrapper around the Cloudflare v4 REST API.

    Every call is made once; failures raise ``CloudflareAPIError``.
    """

    def __init__(self, token: str, timeout: float = HTTP_TIMEOUT_SECONDS) -> None:
        self._token = token
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        })

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict | None = None,
        json_body: dict | None = None,
    ) -> Any:
        url = f"{CLOUDFLARE_API_BASE}{path}"
        logger.debug("%s %s", method, url)
        try:
            resp = self._session.request(
                method, url, params=params, json=json_body, timeout=self._timeout
            )
        except requests.Timeout as exc:
            raise CloudflareAPIError(0, [{"message": f"Request timed out: {exc}"}]) from exc
        except requests.RequestException as exc:
            raise CloudflareAPIError(0, [{"message": f"Connection failed: {exc}"}]) from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise CloudflareAPIError(
                resp.status_code, [{"message": "Response is not valid JSON"}]
            ) from exc
        if not data.get("success", False):
            raise CloudflareAPIError(resp.status_code, data.get("errors", []))
        return data

    # ------------------------------------------------------------------
    # Token verification
    # ------------------------------------------------------------------

    def verify_token(self) -> bool:
        """Return ``True`` if the token is valid and active."""
        data = self._request("GET", "/user/tokens/verify")
        status = data.get("result", {}).get("status", "")
        return status == "active"

    # ------------------------------------------------------------------
    # Zones
    # ------------------------------------------------------------------

    def zone_id_by_name(self, domain: str) -> str:
        """Return the id of zone *domain*.

        Raises ``ConfigurationError`` if the token can't see such a zone.
        """
        data = self._request("GET", "/zones", params={"name": domain})
        zones = data.get("result") or []
        if not zones:
            raise ConfigurationError(f"Zone '{domain}' not found.")
        if len(zones) > 1:
            raise ConfigurationError(f"Zone name '{domain}' is ambiguous ({len(zones)} zones).")
        return zones[0]["id"]

    # ------------------------------------------------------------------
    # DNS Records
    # ------------------------------------------------------------------

    def list_records(self, zone_id: str) -> list[ExistingRecord]:
        """Return all DNS records in *zone_id*."""
        records: list[ExistingRecord] = []
        page = 1
        while True:
            data = self._request(
                "GET",
                f"/zones/{zone_id}/dns_records",
                params={"page": page, "per_page": 100},
            )
            records.extend(_normalize_record(r) for r in data["result"])
            info = data.get("result_info") or {}
            if page >= info.get("total_pages", 1):
                break
            page += 1
        return records

    def create_record(
        self, zone_id: str, rtype: str, name: str, content: str, ttl: int
    ) -> str:
        """Create a DNS record and return its id."""
        data = self._request(
            "POST",
            f"/zones/{zone_id}/dns_records",
            json_body=_to_api_payload(rtype, name, content, ttl),
        )
        return data["result"]["id"]

    def update_record(
        self, zone_id: str, record_id: str, rtype: str, name: str, content: str, ttl: int
    ) -> None:
        """Overwrite the DNS record *record_id*."""
        self._request(
            "PUT",
            f"/zones/{zone_id}/dns_records/{record_id}",
            json_body=_to_api_payload(rtype, name, content, ttl),
        )

    def delete_record(self, zone_id: str, record_id: str) -> None:
        """Delete a DNS record."""
        self._request("DELETE", f"/zones/{zone_id}/dns_records/{record_id}")


# ------------------------------------------------------------------
# Record normalisation helpers
# ------------------------------------------------------------------

def _normalize_record(raw: dict) -> ExistingRecord:
    """Transform a Cloudflare API record into an ``ExistingRecord``."""
    return ExistingRecord(
        id=raw["id"],
        type=raw["type"],
        name=raw["name"],
        content=raw.get("content", ""),
        ttl=raw.get("ttl", 1),
    )


def _to_api_payload(rtype: str, name: str, content: str, ttl: int) -> dict:
    """Build a Cloudflare write payload for an address record."""
    return {
        "type": rtype,
        "name": name,
        "content": content,
        "ttl": ttl,
    }

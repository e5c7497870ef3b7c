"""Exception hierarchy shared by the tsdns core."""


class TsdnsError(Exception):
    """Base exception for tsdns."""


class ConfigurationError(TsdnsError):
    """Raised for invalid settings: unknown zone, bad alias, missing token."""


class PeerStatusError(TsdnsError):
    """Raised when the Tailscale peer status cannot be retrieved or parsed."""


class ProviderError(TsdnsError):
    """Raised when a DNS provider call fails."""

"""tsdns — keep Cloudflare address records in step with a Tailscale tailnet."""

__version__ = "0.1.0"

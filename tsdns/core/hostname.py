"""Hostname builder — map bare peer names onto the managed DNS suffix."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ZoneDescriptor:
    """The zone a run manages records in.

    ``domain`` is the Cloudflare zone (``example.com``); ``subdomain`` is an
    optional prefix (``wg`` gives ``<host>.wg.example.com``); ``tag`` limits
    remote peers to those carrying that Tailscale tag.
    """

    domain: str
    subdomain: str = ""
    tag: str = ""

    @property
    def managed_suffix(self) -> str:
        """Lower-cased suffix every managed record name ends with."""
        suffix = self.domain
        if self.subdomain:
            suffix = f"{self.subdomain}.{self.domain}"
        return suffix.lower()

    def build_hostname(self, host: str) -> str:
        """Return the fully qualified record name for *host*."""
        return f"{host.lower()}.{self.managed_suffix}"

    def __str__(self) -> str:
        return self.managed_suffix

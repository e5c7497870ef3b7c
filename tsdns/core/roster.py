"""Roster assembler — turn Tailscale peer status into desired host entries."""

import ipaddress
import logging
from dataclasses import dataclass, field
from typing import Iterable

from tsdns.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address


# ------------------------------------------------------------------
# Data structures
# ------------------------------------------------------------------

@dataclass(frozen=True)
class Peer:
    """A node as reported by ``tailscale status``."""

    host_name: str
    addresses: tuple[IPAddress, ...] = ()
    online: bool = True
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class PeerStatus:
    """Snapshot of the local node and its peers for one run."""

    self_peer: Peer
    peers: tuple[Peer, ...] = ()


@dataclass(frozen=True)
class DesiredHost:
    """A (sanitized name, address) pair that should resolve in DNS."""

    name: str
    ip: IPAddress

    @property
    def record_type(self) -> str:
        return "AAAA" if self.ip.version == 6 else "A"


@dataclass
class AliasMap:
    """Alias names keyed by the host they point at, in flag order."""

    entries: dict[str, list[str]] = field(default_factory=dict)

    def get(self, host: str) -> list[str]:
        return self.entries.get(host, [])

    def __bool__(self) -> bool:
        return bool(self.entries)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def sanitize_host(name: str) -> str:
    """Replace spaces with hyphens so the name is usable as a DNS label."""
    return name.replace(" ", "-")


def parse_aliases(values: Iterable[str]) -> AliasMap:
    """Parse ``host=alias1,alias2`` strings into an :class:`AliasMap`.

    A host given more than once keeps only its last alias list.  Raises
    ``ConfigurationError`` for a value without ``=``.
    """
    entries: dict[str, list[str]] = {}
    for value in values:
        if "=" not in value:
            raise ConfigurationError(
                f"Invalid alias '{value}', expected host=alias1,alias2."
            )
        host, _, raw_aliases = value.partition("=")
        aliases = [a.strip() for a in raw_aliases.split(",") if a.strip()]
        if not host or not aliases:
            raise ConfigurationError(
                f"Invalid alias '{value}', host and at least one alias are required."
            )
        entries[host] = aliases
    return AliasMap(entries)


def _matches_tag(peer: Peer, tag_filter: str) -> bool:
    if not tag_filter:
        return True
    return tag_filter in peer.tags


# ------------------------------------------------------------------
# Assembly
# ------------------------------------------------------------------

def assemble(
    self_peer: Peer,
    peers: Iterable[Peer],
    tag_filter: str = "",
    aliases: AliasMap | None = None,
) -> list[DesiredHost]:
    """Build the ordered list of hosts that should have address records.

    The local node always comes first and ignores *tag_filter*.  Remote peers
    follow in input order, skipped when offline or when *tag_filter* is set
    and none of their tags equals it.  Alias entries are appended last, one
    per alias for every assembled entry whose name has a mapping.
    """
    hosts = [
        DesiredHost(name=sanitize_host(self_peer.host_name), ip=ip)
        for ip in self_peer.addresses
    ]

    for peer in peers:
        if not peer.online:
            logger.debug("Skipping offline peer %s", peer.host_name)
            continue
        if not _matches_tag(peer, tag_filter):
            logger.debug("Skipping peer %s without tag %s", peer.host_name, tag_filter)
            continue
        name = sanitize_host(peer.host_name)
        hosts.extend(DesiredHost(name=name, ip=ip) for ip in peer.addresses)

    alias_hosts: list[DesiredHost] = []
    if aliases:
        for host in hosts:
            for alias in aliases.get(host.name):
                alias_hosts.append(DesiredHost(name=sanitize_host(alias), ip=host.ip))

    return hosts + alias_hosts

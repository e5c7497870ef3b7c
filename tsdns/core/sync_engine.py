"""Sync engine — pick the run mode and drive a reconciliation end to end."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from tsdns.core.diff_engine import (
    Action,
    DesiredRecord,
    Mode,
    desired_records,
    reconcile,
)
from tsdns.core.gateway import DNSGateway, InMemoryGateway
from tsdns.core.hostname import ZoneDescriptor
from tsdns.core.roster import AliasMap, PeerStatus, assemble, parse_aliases
from tsdns.core.tailscale import load_status

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Data structures
# ------------------------------------------------------------------

@dataclass(frozen=True)
class SyncConfig:
    """Everything a run needs besides credentials."""

    zone: ZoneDescriptor
    remove_all: bool = False
    remove_orphans: bool = False
    aliases: AliasMap = field(default_factory=AliasMap)
    status_file: Path | None = None
    dry_run: bool = False

    @classmethod
    def from_options(
        cls,
        zone: str,
        subdomain: str = "",
        tag: str = "",
        *,
        remove_all: bool = False,
        remove_orphans: bool = False,
        aliases: list[str] | tuple[str, ...] = (),
        status_file: Path | None = None,
        dry_run: bool = False,
    ) -> "SyncConfig":
        """Build a config from raw option values; aliases are parsed here."""
        return cls(
            zone=ZoneDescriptor(domain=zone, subdomain=subdomain or "", tag=tag or ""),
            remove_all=remove_all,
            remove_orphans=remove_orphans,
            aliases=parse_aliases(aliases),
            status_file=status_file,
            dry_run=dry_run,
        )


@dataclass
class SyncResult:
    """Outcome of one run."""

    zone_name: str
    mode: Mode
    actions: list[Action] = field(default_factory=list)
    dry_run: bool = False

    def count(self, action: str) -> int:
        return sum(1 for a in self.actions if a.action == action)

    @property
    def summary(self) -> str:
        creates = self.count("create")
        updates = self.count("update")
        deletes = self.count("delete")
        parts = []
        if creates:
            parts.append(f"+{creates} create")
        if updates:
            parts.append(f"~{updates} update")
        if deletes:
            parts.append(f"-{deletes} delete")
        return ", ".join(parts) if parts else "No changes"


# ------------------------------------------------------------------
# Mode selection
# ------------------------------------------------------------------

def select_mode(config: SyncConfig) -> Mode:
    """``remove_all`` beats ``remove_orphans``, which beats a plain sync."""
    if config.remove_all:
        return Mode.REMOVE_ALL
    if config.remove_orphans:
        return Mode.SYNC_PRUNE
    return Mode.SYNC


def build_desired(config: SyncConfig, status: PeerStatus) -> list[DesiredRecord]:
    """Assemble the roster from *status* and expand it into address records."""
    hosts = assemble(status.self_peer, status.peers, config.zone.tag, config.aliases)
    return desired_records(config.zone, hosts)


# ------------------------------------------------------------------
# Engine
# ------------------------------------------------------------------

class SyncEngine:
    """Runs peer-status retrieval, record listing and reconciliation in order."""

    def __init__(self, gateway: DNSGateway) -> None:
        self._gateway = gateway

    def run(self, config: SyncConfig) -> SyncResult:
        """Execute one run for *config*.

        Peer status and the zone's records are read before anything is
        changed, so a retrieval or configuration error leaves the zone as it
        was.  With ``dry_run`` the actions are applied to an in-memory copy of
        the zone instead of the provider.
        """
        status = load_status(config.status_file)
        desired = build_desired(config, status)
        logger.info("Assembled %d desired record(s) for %s", len(desired), config.zone)

        domain = config.zone.domain
        zone_id = self._gateway.zone_id_by_name(domain)
        current = self._gateway.list_records(zone_id)
        logger.info("Zone %s (%s) has %d record(s)", domain, zone_id, len(current))

        target = self._gateway
        if config.dry_run:
            target = InMemoryGateway(zones={domain: zone_id}, records={zone_id: current})

        mode = select_mode(config)
        logger.info("Running %s for %s%s", mode.value, config.zone, " (dry run)" if config.dry_run else "")
        actions = reconcile(mode, config.zone.managed_suffix, desired, current, target, zone_id)
        return SyncResult(zone_name=domain, mode=mode, actions=actions, dry_run=config.dry_run)

"""Diff engine — reconcile desired address records against the provider."""

import enum
import logging
from dataclasses import dataclass
from typing import Iterable

from tsdns.config import AUTO_TTL, MANAGED_RECORD_TYPES
from tsdns.core.errors import ProviderError, TsdnsError
from tsdns.core.gateway import DNSGateway, ExistingRecord
from tsdns.core.hostname import ZoneDescriptor
from tsdns.core.roster import DesiredHost

logger = logging.getLogger(__name__)


class Mode(enum.Enum):
    """Top-level operation of a run."""

    SYNC = "sync"
    SYNC_PRUNE = "sync+prune"
    REMOVE_ALL = "remove-all"


# ------------------------------------------------------------------
# Data structures
# ------------------------------------------------------------------

@dataclass(frozen=True)
class DesiredRecord:
    """An address record that should exist after the run."""

    type: str
    name: str
    content: str

    @property
    def key(self) -> str:
        return record_key(self.type, self.name)


@dataclass(frozen=True)
class Action:
    """A provider call issued by the engine."""

    action: str  # "create" | "update" | "delete"
    type: str
    name: str
    content: str
    record_id: str | None = None


class ReconcileError(TsdnsError):
    """Raised when a provider call fails part-way through a run.

    ``applied`` lists the actions that succeeded before the failure; they are
    not rolled back.  ``action`` is the one that failed.
    """

    def __init__(self, action: Action, applied: list[Action], cause: Exception):
        self.action = action
        self.applied = applied
        super().__init__(
            f"Unable to {action.action} {action.type} record {action.name} "
            f"({action.content}): {cause}"
        )


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def record_key(rtype: str, name: str) -> str:
    """Identity of a record for matching: type and name, lower-cased."""
    return (rtype + name).lower()


def desired_records(zone: ZoneDescriptor, hosts: Iterable[DesiredHost]) -> list[DesiredRecord]:
    """Expand roster entries into fully qualified address records.

    Entries sharing a type and name collapse to the last one.
    """
    return unique_by_key(
        DesiredRecord(
            type=host.record_type,
            name=zone.build_hostname(host.name),
            content=str(host.ip),
        )
        for host in hosts
    )


def unique_by_key(records: Iterable[DesiredRecord]) -> list[DesiredRecord]:
    """Drop records whose key repeats; the last content wins, first position is kept."""
    by_key: dict[str, DesiredRecord] = {}
    for rec in records:
        by_key[rec.key] = rec
    return list(by_key.values())


def _is_managed(record: ExistingRecord, managed_suffix: str) -> bool:
    return record.name.lower().endswith(managed_suffix)


# ------------------------------------------------------------------
# Core reconciliation
# ------------------------------------------------------------------

def reconcile(
    mode: Mode,
    managed_suffix: str,
    desired: list[DesiredRecord],
    current: list[ExistingRecord],
    gateway: DNSGateway,
    zone_id: str,
) -> list[Action]:
    """Apply the changes needed to make the zone match *desired*.

    Returns the actions issued, in order.  The first provider failure raises
    ``ReconcileError``; actions already applied stay in effect.

    - ``REMOVE_ALL`` deletes every A/AAAA record under *managed_suffix* and
      ignores *desired*.
    - ``SYNC`` updates each desired record whose type and name already exist
      (always, even if the content is unchanged) and creates the rest, all
      with the automatic TTL.  Desired records sharing a key are first
      collapsed to the last one.
    - ``SYNC_PRUNE`` runs ``SYNC`` and then deletes records under
      *managed_suffix* whose type and name were not desired.
    """
    managed_suffix = managed_suffix.lower()
    applied: list[Action] = []

    if mode is Mode.REMOVE_ALL:
        for rec in current:
            if rec.type in MANAGED_RECORD_TYPES and _is_managed(rec, managed_suffix):
                _delete(gateway, zone_id, rec, applied)
        return applied

    current_by_key: dict[str, ExistingRecord] = {
        record_key(r.type, r.name): r for r in current
    }
    seen: set[str] = set()

    for rec in unique_by_key(desired):
        existing = current_by_key.get(rec.key)
        if existing is not None:
            action = Action("update", rec.type, rec.name, rec.content, existing.id)
            try:
                gateway.update_record(
                    zone_id, existing.id, rec.type, rec.name, rec.content, AUTO_TTL
                )
            except ProviderError as exc:
                raise ReconcileError(action, applied, exc) from exc
            logger.info(
                "updated dns record type %s, host %s, ip %s", rec.type, rec.name, rec.content
            )
        else:
            action = Action("create", rec.type, rec.name, rec.content)
            try:
                record_id = gateway.create_record(
                    zone_id, rec.type, rec.name, rec.content, AUTO_TTL
                )
            except ProviderError as exc:
                raise ReconcileError(action, applied, exc) from exc
            action = Action("create", rec.type, rec.name, rec.content, record_id)
            logger.info(
                "created dns record type %s, host %s, ip %s", rec.type, rec.name, rec.content
            )
        applied.append(action)
        seen.add(rec.key)

    if mode is Mode.SYNC_PRUNE:
        for key, rec in current_by_key.items():
            if _is_managed(rec, managed_suffix) and key not in seen:
                _delete(gateway, zone_id, rec, applied)

    return applied


def _delete(
    gateway: DNSGateway, zone_id: str, rec: ExistingRecord, applied: list[Action]
) -> None:
    action = Action("delete", rec.type, rec.name, rec.content, rec.id)
    logger.info("removing record with name %s, ip %s", rec.name, rec.content)
    try:
        gateway.delete_record(zone_id, rec.id)
    except ProviderError as exc:
        raise ReconcileError(action, applied, exc) from exc
    applied.append(action)

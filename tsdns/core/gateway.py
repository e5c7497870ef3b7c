"""Provider gateway — the DNS operations the diff engine depends on."""

import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass

from tsdns.core.errors import ConfigurationError, ProviderError


@dataclass(frozen=True)
class ExistingRecord:
    """A DNS record as currently held by the provider."""

    id: str
    type: str
    name: str
    content: str
    ttl: int = 1


class DNSGateway(ABC):
    """Zone and record operations offered by a DNS provider.

    Implementations raise ``ProviderError`` (or a subclass) on failure.
    """

    @abstractmethod
    def zone_id_by_name(self, domain: str) -> str:
        """Return the provider's zone id for *domain*."""

    @abstractmethod
    def list_records(self, zone_id: str) -> list[ExistingRecord]:
        """Return every record in the zone."""

    @abstractmethod
    def create_record(
        self, zone_id: str, rtype: str, name: str, content: str, ttl: int
    ) -> str:
        """Create a record and return its id."""

    @abstractmethod
    def update_record(
        self, zone_id: str, record_id: str, rtype: str, name: str, content: str, ttl: int
    ) -> None:
        """Overwrite the record *record_id*."""

    @abstractmethod
    def delete_record(self, zone_id: str, record_id: str) -> None:
        """Delete the record *record_id*."""


class InMemoryGateway(DNSGateway):
    """Gateway backed by a dict of zones.

    Used for dry runs (seeded with the records listed from the real provider)
    and as a test double.  Individual operations can be made to fail through
    *fail_on*, a set of ``(operation, record_name)`` pairs.
    """

    def __init__(
        self,
        zones: dict[str, str] | None = None,
        records: dict[str, list[ExistingRecord]] | None = None,
        fail_on: set[tuple[str, str]] | None = None,
    ) -> None:
        self._zones = dict(zones or {})
        self._records: dict[str, dict[str, ExistingRecord]] = {
            zone_id: {r.id: r for r in recs} for zone_id, recs in (records or {}).items()
        }
        self._fail_on = set(fail_on or ())
        self._ids = itertools.count(1)
        self.calls: list[tuple] = []

    def _check(self, operation: str, name: str) -> None:
        if (operation, name) in self._fail_on:
            raise ProviderError(f"Simulated {operation} failure for {name}")

    def _zone(self, zone_id: str) -> dict[str, ExistingRecord]:
        if zone_id not in self._records:
            if zone_id not in self._zones.values():
                raise ProviderError(f"Unknown zone id {zone_id}")
            self._records[zone_id] = {}
        return self._records[zone_id]

    def zone_id_by_name(self, domain: str) -> str:
        try:
            return self._zones[domain]
        except KeyError:
            raise ConfigurationError(f"Zone '{domain}' not found") from None

    def list_records(self, zone_id: str) -> list[ExistingRecord]:
        self.calls.append(("list", zone_id))
        return list(self._zone(zone_id).values())

    def create_record(
        self, zone_id: str, rtype: str, name: str, content: str, ttl: int
    ) -> str:
        self.calls.append(("create", rtype, name, content, ttl))
        self._check("create", name)
        zone = self._zone(zone_id)
        record_id = f"mem-{next(self._ids)}"
        while record_id in zone:
            record_id = f"mem-{next(self._ids)}"
        zone[record_id] = ExistingRecord(record_id, rtype, name, content, ttl)
        return record_id

    def update_record(
        self, zone_id: str, record_id: str, rtype: str, name: str, content: str, ttl: int
    ) -> None:
        self.calls.append(("update", record_id, rtype, name, content, ttl))
        self._check("update", name)
        zone = self._zone(zone_id)
        if record_id not in zone:
            raise ProviderError(f"Record {record_id} not found")
        zone[record_id] = ExistingRecord(record_id, rtype, name, content, ttl)

    def delete_record(self, zone_id: str, record_id: str) -> None:
        self.calls.append(("delete", record_id))
        zone = self._zone(zone_id)
        record = zone.get(record_id)
        if record is None:
            raise ProviderError(f"Record {record_id} not found")
        self._check("delete", record.name)
        del zone[record_id]

    def records(self, zone_id: str) -> list[ExistingRecord]:
        """Current contents of *zone_id*, without recording a call."""
        return list(self._records.get(zone_id, {}).values())

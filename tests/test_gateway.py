"""Tests for core.gateway — the in-memory provider."""

import pytest

from tsdns.core.errors import ConfigurationError, ProviderError
from tsdns.core.gateway import ExistingRecord, InMemoryGateway


@pytest.fixture
def gw():
    return InMemoryGateway(
        zones={"example.com": "z1"},
        records={"z1": [ExistingRecord("r1", "A", "a.example.com", "10.0.0.1")]},
    )


class TestInMemoryGateway:
    def test_zone_lookup(self, gw):
        assert gw.zone_id_by_name("example.com") == "z1"

    def test_unknown_zone(self, gw):
        with pytest.raises(ConfigurationError):
            gw.zone_id_by_name("other.com")

    def test_create_then_list(self, gw):
        record_id = gw.create_record("z1", "A", "b.example.com", "10.0.0.2", 1)
        names = {r.name for r in gw.list_records("z1")}
        assert names == {"a.example.com", "b.example.com"}
        assert record_id != "r1"

    def test_update(self, gw):
        gw.update_record("z1", "r1", "A", "a.example.com", "10.0.0.9", 1)
        assert gw.records("z1")[0].content == "10.0.0.9"

    def test_update_missing(self, gw):
        with pytest.raises(ProviderError):
            gw.update_record("z1", "nope", "A", "x.example.com", "10.0.0.9", 1)

    def test_delete(self, gw):
        gw.delete_record("z1", "r1")
        assert gw.records("z1") == []

    def test_fail_on(self):
        gw = InMemoryGateway(zones={"example.com": "z1"}, fail_on={("create", "x.example.com")})
        with pytest.raises(ProviderError, match="Simulated create"):
            gw.create_record("z1", "A", "x.example.com", "10.0.0.1", 1)
        assert gw.records("z1") == []

"""Tests for core.sync_engine — mode selection and end-to-end runs."""

import ipaddress
from unittest.mock import MagicMock, patch

import pytest

from tsdns.core.diff_engine import Action, Mode, ReconcileError
from tsdns.core.errors import ConfigurationError, PeerStatusError, ProviderError
from tsdns.core.gateway import ExistingRecord, InMemoryGateway
from tsdns.core.roster import Peer, PeerStatus
from tsdns.core.sync_engine import SyncConfig, SyncEngine, SyncResult, build_desired, select_mode


def _ip(value):
    return ipaddress.ip_address(value)


def _status():
    return PeerStatus(
        self_peer=Peer("gateway", (_ip("100.64.0.1"),)),
        peers=(
            Peer("host1", (_ip("100.64.0.2"), _ip("fd7a:115c:a1e0::2")), tags=("tag:prod",)),
            Peer("dev box", (_ip("100.64.0.3"),), tags=("tag:dev",)),
            Peer("offline", (_ip("100.64.0.4"),), online=False),
        ),
    )


def _gateway(*records):
    return InMemoryGateway(zones={"example.com": "z1"}, records={"z1": list(records)})


def _config(**kwargs):
    return SyncConfig.from_options("example.com", "wg", **kwargs)


# ------------------------------------------------------------------
# select_mode
# ------------------------------------------------------------------

class TestSelectMode:
    def test_default_is_sync(self):
        assert select_mode(_config()) is Mode.SYNC

    def test_remove_orphans(self):
        assert select_mode(_config(remove_orphans=True)) is Mode.SYNC_PRUNE

    def test_remove_all_wins(self):
        assert select_mode(_config(remove_all=True, remove_orphans=True)) is Mode.REMOVE_ALL


# ------------------------------------------------------------------
# SyncConfig / build_desired
# ------------------------------------------------------------------

class TestSyncConfig:
    def test_from_options(self):
        cfg = SyncConfig.from_options("example.com", "wg", "tag:prod", aliases=["host1=web"])
        assert cfg.zone.managed_suffix == "wg.example.com"
        assert cfg.zone.tag == "tag:prod"
        assert cfg.aliases.get("host1") == ["web"]

    def test_none_values_become_empty(self):
        cfg = SyncConfig.from_options("example.com", None, None)
        assert cfg.zone.subdomain == ""
        assert cfg.zone.tag == ""

    def test_bad_alias(self):
        with pytest.raises(ConfigurationError):
            SyncConfig.from_options("example.com", aliases=["nohost"])


class TestBuildDesired:
    def test_all_online_peers(self):
        names = [(r.type, r.name) for r in build_desired(_config(), _status())]
        assert names == [
            ("A", "gateway.wg.example.com"),
            ("A", "host1.wg.example.com"),
            ("AAAA", "host1.wg.example.com"),
            ("A", "dev-box.wg.example.com"),
        ]

    def test_tag_and_alias(self):
        cfg = SyncConfig.from_options("example.com", "wg", "tag:prod", aliases=["host1=web"])
        names = [r.name for r in build_desired(cfg, _status())]
        assert names == [
            "gateway.wg.example.com",
            "host1.wg.example.com",
            "host1.wg.example.com",
            "web.wg.example.com",
            "web.wg.example.com",
        ]


# ------------------------------------------------------------------
# SyncEngine.run
# ------------------------------------------------------------------

class TestRun:
    @patch("tsdns.core.sync_engine.load_status")
    def test_sync_creates_records(self, mock_load):
        mock_load.return_value = _status()
        gw = _gateway()
        result = SyncEngine(gw).run(_config())
        assert result.mode is Mode.SYNC
        assert result.count("create") == 4
        assert len(gw.records("z1")) == 4

    @patch("tsdns.core.sync_engine.load_status")
    def test_prune_removes_orphans_only_under_suffix(self, mock_load):
        mock_load.return_value = _status()
        stale = ExistingRecord("r9", "A", "stale.wg.example.com", "100.64.0.9")
        www = ExistingRecord("r8", "A", "www.example.com", "1.2.3.4")
        gw = _gateway(stale, www)
        result = SyncEngine(gw).run(_config(remove_orphans=True))
        assert result.count("delete") == 1
        assert "r9" not in {r.id for r in gw.records("z1")}
        assert "r8" in {r.id for r in gw.records("z1")}

    @patch("tsdns.core.sync_engine.load_status")
    def test_remove_all(self, mock_load):
        mock_load.return_value = _status()
        a = ExistingRecord("r1", "A", "host1.wg.example.com", "100.64.0.2")
        www = ExistingRecord("r8", "A", "www.example.com", "1.2.3.4")
        gw = _gateway(a, www)
        result = SyncEngine(gw).run(_config(remove_all=True))
        assert [a.record_id for a in result.actions] == ["r1"]
        assert [r.id for r in gw.records("z1")] == ["r8"]

    @patch("tsdns.core.sync_engine.load_status")
    def test_dry_run_leaves_provider_untouched(self, mock_load):
        mock_load.return_value = _status()
        stale = ExistingRecord("r9", "A", "stale.wg.example.com", "100.64.0.9")
        gw = _gateway(stale)
        result = SyncEngine(gw).run(_config(remove_orphans=True, dry_run=True))
        assert result.dry_run
        assert result.count("create") == 4
        assert result.count("delete") == 1
        assert [r.id for r in gw.records("z1")] == ["r9"]

    @patch("tsdns.core.sync_engine.load_status")
    def test_status_error_before_any_provider_call(self, mock_load):
        mock_load.side_effect = PeerStatusError("tailscaled not running")
        gw = MagicMock()
        with pytest.raises(PeerStatusError):
            SyncEngine(gw).run(_config())
        gw.zone_id_by_name.assert_not_called()

    @patch("tsdns.core.sync_engine.load_status")
    def test_unknown_zone(self, mock_load):
        mock_load.return_value = _status()
        gw = InMemoryGateway(zones={})
        with pytest.raises(ConfigurationError, match="example.com"):
            SyncEngine(gw).run(_config())

    @patch("tsdns.core.sync_engine.load_status")
    def test_listing_error_aborts_before_mutation(self, mock_load):
        mock_load.return_value = _status()
        gw = MagicMock()
        gw.zone_id_by_name.return_value = "z1"
        gw.list_records.side_effect = ProviderError("listing failed")
        with pytest.raises(ProviderError):
            SyncEngine(gw).run(_config())
        gw.create_record.assert_not_called()
        gw.update_record.assert_not_called()
        gw.delete_record.assert_not_called()

    @patch("tsdns.core.sync_engine.load_status")
    def test_apply_error_propagates(self, mock_load):
        mock_load.return_value = _status()
        gw = MagicMock()
        gw.zone_id_by_name.return_value = "z1"
        gw.list_records.return_value = []
        gw.create_record.side_effect = ["id1", ProviderError("quota")]
        with pytest.raises(ReconcileError) as excinfo:
            SyncEngine(gw).run(_config())
        assert len(excinfo.value.applied) == 1

    @patch("tsdns.core.sync_engine.load_status")
    def test_status_file_passed_through(self, mock_load, tmp_path):
        mock_load.return_value = _status()
        path = tmp_path / "status.json"
        SyncEngine(_gateway()).run(_config(status_file=path))
        mock_load.assert_called_once_with(path)


class TestSyncResult:
    def test_summary(self):
        result = SyncResult(
            zone_name="example.com", mode=Mode.SYNC_PRUNE,
            actions=[
                Action("create", "A", "a", "1"),
                Action("update", "A", "b", "2", "r1"),
                Action("delete", "A", "c", "3", "r2"),
            ],
        )
        assert result.summary == "+1 create, ~1 update, -1 delete"

    def test_no_changes(self):
        assert SyncResult(zone_name="example.com", mode=Mode.SYNC).summary == "No changes"

"""Peer-status source — read the tailnet roster from ``tailscale status``."""

import ipaddress
import json
import logging
import subprocess
from pathlib import Path

from tsdns.config import TAILSCALE_BIN
from tsdns.core.errors import PeerStatusError
from tsdns.core.roster import Peer, PeerStatus

logger = logging.getLogger(__name__)


def load_status(status_file: Path | None = None, tailscale_bin: str = TAILSCALE_BIN) -> PeerStatus:
    """Return the current peer status.

    Reads *status_file* when given (output of ``tailscale status --json``),
    otherwise runs the Tailscale CLI.  Raises ``PeerStatusError`` on failure.
    """
    if status_file is not None:
        try:
            raw = status_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise PeerStatusError(f"Cannot read status file {status_file}: {exc}") from exc
    else:
        raw = _run_status(tailscale_bin)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise PeerStatusError(f"Tailscale status is not valid JSON: {exc}") from exc
    return parse_status(data)


def _run_status(tailscale_bin: str) -> str:
    cmd = [tailscale_bin, "status", "--json"]
    logger.debug("Running %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, check=True, capture_output=True, text=True)
    except FileNotFoundError as exc:
        raise PeerStatusError(f"Tailscale CLI not found: {tailscale_bin}") from exc
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or "").strip() or f"exit status {exc.returncode}"
        raise PeerStatusError(f"'{' '.join(cmd)}' failed: {detail}") from exc
    return result.stdout


def parse_status(data: dict) -> PeerStatus:
    """Build a ``PeerStatus`` from decoded ``tailscale status --json`` output."""
    if not isinstance(data, dict):
        raise PeerStatusError("Tailscale status is not a JSON object.")
    self_node = data.get("Self")
    if not isinstance(self_node, dict):
        raise PeerStatusError("Tailscale status has no 'Self' entry.")
    peers = data.get("Peer") or {}
    if not isinstance(peers, dict) or not all(isinstance(n, dict) for n in peers.values()):
        raise PeerStatusError("Tailscale status 'Peer' must map node keys to objects.")
    return PeerStatus(
        self_peer=_parse_peer(self_node),
        peers=tuple(_parse_peer(node) for node in peers.values()),
    )


def _parse_peer(node: dict) -> Peer:
    host_name = node.get("HostName", "")
    try:
        addresses = tuple(ipaddress.ip_address(ip) for ip in node.get("TailscaleIPs") or [])
    except ValueError as exc:
        raise PeerStatusError(f"Invalid address for peer {host_name}: {exc}") from exc
    return Peer(
        host_name=host_name,
        addresses=addresses,
        online=bool(node.get("Online", False)),
        tags=tuple(node.get("Tags") or ()),
    )

"""tsdns — Click-based CLI entry point."""

import getpass
import logging
import sys
from pathlib import Path

import click

from tsdns.config import LOG_FILE, TOKEN_ENV_VAR
from tsdns.core.cloudflare_client import CloudflareClient, sanitize_token
from tsdns.core.diff_engine import Action, ReconcileError
from tsdns.core.errors import TsdnsError
from tsdns.core.security import clear_token, get_token, has_stored_token, store_token
from tsdns.core.sync_engine import SyncConfig, SyncEngine, build_desired
from tsdns.core.tailscale import load_status

logger = logging.getLogger("tsdns")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if LOG_FILE is not None:
        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(str(LOG_FILE), encoding="utf-8"))
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )


def _fail(message: str) -> None:
    click.echo(click.style(message, fg="red"), err=True)
    raise SystemExit(1)


def _zone_options(func):
    """Options shared by every command that builds record names."""
    options = [
        click.option("--zone", "-z", required=True, envvar="TSDNS_ZONE",
                     help="Cloudflare zone, e.g. example.com."),
        click.option("--subdomain", "-s", default="", envvar="TSDNS_SUBDOMAIN",
                     help="Subdomain for records, e.g. 'wg' gives <host>.wg.example.com."),
        click.option("--tag", "-t", default="", envvar="TSDNS_TAG",
                     help="Only add records for peers with this tag."),
        click.option("--alias", "-a", "aliases", multiple=True, envvar="TSDNS_ALIASES",
                     help="Alias records as host=alias1,alias2.  Can be repeated."),
        click.option("--status-file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
                     default=None, help="Read 'tailscale status --json' output from a file."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _fmt_action(action: Action) -> str:
    if action.action == "create":
        return click.style(f"  + CREATE {action.type:4s} {action.name} → {action.content}", fg="green")
    if action.action == "update":
        return click.style(f"  ~ UPDATE {action.type:4s} {action.name} → {action.content}", fg="yellow")
    return click.style(f"  - DELETE {action.type:4s} {action.name} ({action.content})", fg="red")


# ======================================================================
# CLI group
# ======================================================================

@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug output.")
def cli(verbose: bool) -> None:
    """tsdns — Publish Tailscale peers as Cloudflare DNS records."""
    _setup_logging(verbose)


# ======================================================================
# sync
# ======================================================================

@cli.command()
@_zone_options
@click.option("--remove-orphans", is_flag=True, envvar="TSDNS_REMOVE_ORPHANS",
              help="Remove records under the subdomain that are not in Tailscale.")
@click.option("--remove-all", is_flag=True, envvar="TSDNS_REMOVE_ALL",
              help="Remove all A/AAAA records under the subdomain and exit.")
@click.option("--dry-run", is_flag=True, help="Show what would change without touching Cloudflare.")
def sync(zone: str, subdomain: str, tag: str, aliases: tuple[str, ...],
         status_file: Path | None, remove_orphans: bool, remove_all: bool,
         dry_run: bool) -> None:
    """Create or update DNS records for online Tailscale peers."""
    try:
        config = SyncConfig.from_options(
            zone, subdomain, tag,
            remove_all=remove_all,
            remove_orphans=remove_orphans,
            aliases=aliases,
            status_file=status_file,
            dry_run=dry_run,
        )
        engine = SyncEngine(CloudflareClient(get_token()))
        result = engine.run(config)
    except ReconcileError as exc:
        for action in exc.applied:
            click.echo(_fmt_action(action))
        click.echo(f"{len(exc.applied)} change(s) applied before the failure.", err=True)
        _fail(str(exc))
    except TsdnsError as exc:
        _fail(str(exc))

    prefix = "[dry run] " if result.dry_run else ""
    click.echo(f"{prefix}{result.zone_name} ({result.mode.value}): {result.summary}")
    for action in result.actions:
        click.echo(_fmt_action(action))


# ======================================================================
# peers
# ======================================================================

@cli.command()
@_zone_options
def peers(zone: str, subdomain: str, tag: str, aliases: tuple[str, ...],
          status_file: Path | None) -> None:
    """Show the records a sync would write, without contacting Cloudflare."""
    try:
        config = SyncConfig.from_options(
            zone, subdomain, tag, aliases=aliases, status_file=status_file,
        )
        records = build_desired(config, load_status(config.status_file))
    except TsdnsError as exc:
        _fail(str(exc))

    if not records:
        click.echo("No peers to publish.")
        return
    for rec in records:
        click.echo(f"  {rec.type:4s} {rec.name} → {rec.content}")


# ======================================================================
# login / logout
# ======================================================================

@cli.command("login")
def login_cmd() -> None:
    """Store a Cloudflare API token in the OS keyring."""
    raw_token = getpass.getpass("Cloudflare API token: ")
    try:
        token = sanitize_token(raw_token)
    except ValueError as exc:
        _fail(str(exc))

    click.echo("Verifying token with Cloudflare…")
    try:
        active = CloudflareClient(token).verify_token()
    except TsdnsError as exc:
        _fail(f"Token verification failed: {exc}")
    if not active:
        _fail("Token is not active.")

    store_token(token)
    click.echo("Token stored.")
    click.echo(f"(${TOKEN_ENV_VAR} still takes precedence when set.)")


@cli.command("logout")
def logout_cmd() -> None:
    """Remove the stored Cloudflare API token."""
    if not has_stored_token():
        click.echo("No stored token.")
        return
    clear_token()
    click.echo("Stored token removed.")


# ======================================================================
# Entry point
# ======================================================================

if __name__ == "__main__":
    cli()

"""CLI interface for jobrelay."""

import json
import signal
import sys
import threading
from datetime import datetime
from typing import Optional

import click
from werkzeug.serving import make_server

from .api import create_app
from .config import load_settings
from .errors import ConfigurationError
from .logging_config import configure_logging, get_logger
from .persistence import JobSnapshotFile
from .service import JobRelay

SECRET_FIELDS = ("password", "token", "client_secret", "refresh_token")


def _load(config_path: Optional[str], validate: bool = True):
    try:
        return load_settings(config_path, validate=validate)
    except ConfigurationError as e:
        click.echo(f"✗ Configuration error: {e}", err=True)
        sys.exit(1)


@click.group()
def cli():
    """jobrelay - reliable delivery of jobs to a remote write endpoint"""
    pass


@cli.command()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="JSON config file")
@click.option("--port", type=int, help="Override the listening port")
@click.option("--workers", type=int, help="Number of workers (clamped to min/max_workers)")
def serve(config_path: Optional[str], port: Optional[int], workers: Optional[int]):
    """Run the HTTP intake and the worker pool.

    Example:
        jobrelay serve --config jobrelay.json
    """
    settings = _load(config_path)
    configure_logging(
        log_level="DEBUG" if settings.debug else settings.log_level,
        log_file=settings.log_file,
        json_logs=not settings.debug,
    )
    logger = get_logger("jobrelay.cli")

    relay = JobRelay(settings)
    restored = relay.start(workers)
    if restored:
        logger.info("Resuming pending jobs", count=restored)

    server = make_server(settings.host, port or settings.port, create_app(relay), threaded=True)

    def _handle_shutdown(signum, frame):
        logger.info("Shutdown signal received", signal=signum)
        # serve_forever() runs on this thread; shut it down from another
        threading.Thread(target=server.shutdown, daemon=True).start()

    signal.signal(signal.SIGTERM, _handle_shutdown)
    signal.signal(signal.SIGINT, _handle_shutdown)

    logger.info("Server starting", host=settings.host, port=server.server_port, target=settings.target.name)
    try:
        server.serve_forever()
    finally:
        saved = relay.shutdown()
        logger.info("Server stopped", saved=saved)


@cli.group()
def pending():
    """Inspect persisted pending jobs"""
    pass


@pending.command("list")
@click.option("--state-file", type=click.Path(dir_okay=False), help="Snapshot file (defaults to configured state_file)")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="JSON config file")
@click.option("--limit", default=10, help="Maximum jobs to display")
def list_pending(state_file: Optional[str], config_path: Optional[str], limit: int):
    """List jobs saved in the snapshot file.

    Example:
        jobrelay pending list --limit 20
    """
    if not state_file:
        state_file = _load(config_path, validate=False).state_file
    jobs = JobSnapshotFile(state_file).restore()[:limit]

    if not jobs:
        click.echo("No pending jobs")
        return

    click.echo(f"\n{'UID':<36} {'Type':<6} {'Attempts':<10} {'Created':<20}")
    click.echo("-" * 74)
    for pending_job in jobs:
        created = pending_job.created_at.strftime("%Y-%m-%d %H:%M:%S") if isinstance(pending_job.created_at, datetime) else str(pending_job.created_at)
        content_type = pending_job.job.content_type.value if pending_job.job.content_type else "-"
        click.echo(f"{pending_job.job.uid:<36} {content_type:<6} {pending_job.attempts:<10} {created:<20}")
    click.echo()


@cli.group()
def config():
    """Inspect configuration"""
    pass


@config.command()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="JSON config file")
def show(config_path: Optional[str]):
    """Show the effective configuration with secrets masked.

    Example:
        jobrelay config show --config jobrelay.json
    """
    settings = _load(config_path, validate=False)
    data = settings.model_dump(mode="json")
    auth = data["target"]["auth"]
    for field in SECRET_FIELDS:
        if auth.get(field):
            auth[field] = "****"
    click.echo(json.dumps(data, indent=2))


if __name__ == "__main__":
    cli()

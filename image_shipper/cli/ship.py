"""
CLI ship command — mirror images through the GitHub Actions workflow.

Usage:
    image-shipper ship nginx:latest
    image-shipper ship -f docker-compose.yaml [--dry-run] [--json]
"""

from __future__ import annotations

import json
import logging
import signal
from contextlib import contextmanager
from datetime import timedelta
from pathlib import Path
from time import monotonic
from typing import Iterator, List, Optional

import click

from ..config.settings import Settings
from ..errors import InvalidReference
from ..github.client import WorkflowClient
from ..images.reference import parse_image_reference
from ..models.outcome import BatchReport
from ..shipping.batch import BatchDriver, summary_line
from ..shipping.correlator import Correlator
from ..shipping.poller import CancellationToken, Poller, ProgressRenderer
from .helpers import load_manifest_images, load_settings

logger = logging.getLogger(__name__)

CANCEL_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@contextmanager
def cancel_on_signals(token: CancellationToken) -> Iterator[CancellationToken]:
    """Route SIGINT/SIGTERM to ``token`` for the duration of the block."""

    def _handler(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, cancelling")
        token.cancel()

    previous = {sig: signal.signal(sig, _handler) for sig in CANCEL_SIGNALS}
    try:
        yield token
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def build_driver(
    settings: Settings,
    client: WorkflowClient,
    token: CancellationToken,
    renderer: Optional[ProgressRenderer] = None,
) -> BatchDriver:
    """Wire correlator, poller, and batch driver from settings."""
    renderer = renderer or ProgressRenderer()
    correlator = Correlator(
        client,
        ref=settings.github.ref,
        tolerance=timedelta(seconds=settings.poll.tolerance_seconds),
    )
    poller = Poller(
        correlator,
        token,
        renderer=renderer,
        status_interval=settings.poll.interval_seconds,
        timeout=settings.poll.timeout_seconds,
        clock=monotonic,
    )
    return BatchDriver(correlator, poller, renderer=renderer)


def _ship_images(images: List[str]) -> BatchReport:
    settings = load_settings(require_github=True)
    github = settings.github
    logger.info(f"Shipping {len(images)} image(s) with {github.workflow} in {github.full_repo} on {github.ref}")

    token = CancellationToken()
    with WorkflowClient.from_settings(github) as client, cancel_on_signals(token):
        return build_driver(settings, client, token).run(images)


@click.command("ship")
@click.argument("image", required=False)
@click.option(
    "-f", "--file", "manifest",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Docker Compose or Kubernetes YAML file to take images from",
)
@click.option("--dry-run", is_flag=True, help="Only list the images, don't trigger anything")
@click.option("--json", "as_json", is_flag=True, help="Print the final report as JSON")
def ship(image: Optional[str], manifest: Optional[Path], dry_run: bool, as_json: bool) -> None:
    """Mirror IMAGE (or every image in --file) into the private registry."""
    if image and manifest:
        raise click.UsageError("Give either IMAGE or --file, not both")
    if not image and not manifest:
        raise click.UsageError("Missing IMAGE or --file")

    if manifest:
        images = load_manifest_images(manifest)
    else:
        try:
            parse_image_reference(image)
        except InvalidReference as e:
            click.secho(f"❌ {e}", fg="red")
            raise SystemExit(1)
        images = [image]

    if dry_run:
        click.echo(f"\n📝 Dry run: {len(images)} image(s) would be mirrored, nothing triggered")
        return

    if images:
        report = _ship_images(images)
    else:
        # Nothing to dispatch; no credentials needed for an empty report
        report = BatchReport()
        click.echo(summary_line(report))

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))

    if report.exit_code:
        raise SystemExit(report.exit_code)

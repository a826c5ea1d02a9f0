"""
Image Shipper — CLI Entry Point

Usage:
    image-shipper ship nginx:latest
    image-shipper ship -f docker-compose.yaml [--dry-run]
    image-shipper pull nginx:latest [--podman | -e 'k3s crictl']
    image-shipper pull -f deployment.yaml [--dry-run]
"""

from __future__ import annotations

# Load .env FIRST, before anything reads IMGSHIPPER_* variables
from dotenv import find_dotenv, load_dotenv

_env_file = find_dotenv(usecwd=True)
if _env_file:
    load_dotenv(_env_file)

from typing import Optional

import click

from . import __version__
from .cli.pull import pull
from .cli.ship import ship
from .logging_config import setup_logging


@click.group()
@click.version_option(__version__, prog_name="image-shipper")
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR (default: LOG_LEVEL or INFO)")
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str]) -> None:
    """Image Shipper — mirror container images through GitHub Actions."""
    setup_logging(level=log_level)
    ctx.ensure_object(dict)


cli.add_command(ship)
cli.add_command(pull)


if __name__ == "__main__":
    cli()

"""
Shared CLI helpers — manifest loading and settings errors.
"""

from __future__ import annotations

from pathlib import Path
from typing import List

import click

from ..config.settings import Settings
from ..errors import ConfigurationError, ManifestParseError
from ..images.manifest import extract_images


def load_manifest_images(path: Path) -> List[str]:
    """Extract and list the images in ``path``; exit 1 if it cannot be parsed."""
    try:
        images = extract_images(path)
    except ManifestParseError as e:
        click.secho(f"❌ Failed to parse {path}: {e}", fg="red")
        raise SystemExit(1)

    if not images:
        click.echo(f"No images found in {path}")
        return images

    click.echo(f"Images found in {path}:")
    for i, image in enumerate(images, start=1):
        click.echo(f"  {i}. {image}")
    return images


def load_settings(require_github: bool = False) -> Settings:
    """Read settings from the environment; exit 1 on invalid configuration."""
    try:
        settings = Settings.from_env()
        if require_github:
            settings.validate()
    except ConfigurationError as e:
        click.secho(f"❌ Configuration error: {e}", fg="red")
        raise SystemExit(1)
    return settings

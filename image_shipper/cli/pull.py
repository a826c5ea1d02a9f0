"""
CLI pull command — fetch mirrored images and re-tag them locally.

Usage:
    image-shipper pull nginx:latest [--podman | --docker | -e 'k3s crictl']
    image-shipper pull -f deployment.yaml [--dry-run]

Images are pulled from IMGSHIPPER_PULL_SOURCE_REGISTRY and re-tagged under
their plain name, so ``nginx`` ends up as ``nginx:latest`` locally.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from ..errors import InvalidReference
from ..images.reference import with_default_tag
from ..runtime.executor import RuntimeExecutor
from .helpers import load_manifest_images, load_settings


@click.command("pull")
@click.argument("image", required=False)
@click.option(
    "-f", "--file", "manifest",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Docker Compose or Kubernetes YAML file to take images from",
)
@click.option("--dry-run", is_flag=True, help="Only list the images, don't pull anything")
@click.option("--podman", "runtime_choice", flag_value="podman", help="Use podman")
@click.option("--docker", "runtime_choice", flag_value="docker", help="Use docker (default)")
@click.option("-e", "--runtime", "custom_runtime", help="Custom runtime command, e.g. 'k3s crictl'")
def pull(
    image: Optional[str],
    manifest: Optional[Path],
    dry_run: bool,
    runtime_choice: Optional[str],
    custom_runtime: Optional[str],
) -> None:
    """Pull IMAGE (or every image in --file) from the mirror and re-tag it."""
    if image and manifest:
        raise click.UsageError("Give either IMAGE or --file, not both")
    if not image and not manifest:
        raise click.UsageError("Missing IMAGE or --file")

    if manifest:
        images = load_manifest_images(manifest)
        if dry_run:
            click.echo("\n📝 Dry run: nothing pulled")
            return
        if not images:
            return
    else:
        try:
            with_default_tag(image)
        except InvalidReference as e:
            click.secho(f"❌ {e}", fg="red")
            raise SystemExit(1)
        images = [image]

    settings = load_settings()
    source_registry = settings.pull.source_registry

    if dry_run:
        click.echo(f"📝 Dry run: would pull {image} from {source_registry}")
        return

    executor = RuntimeExecutor(runtime_choice or custom_runtime or settings.pull.container_runtime)

    pulled = 0
    failed = 0
    for index, name in enumerate(images, start=1):
        click.echo(f"\n[{index}/{len(images)}] Pulling {name} from {source_registry} (using {executor.runtime})")
        result = executor.retag(name, source_registry)
        if result.ok:
            pulled += 1
            click.secho(f"✅ Pulled and re-tagged {result.image}", fg="green")
        else:
            failed += 1
            click.secho(f"❌ {result.image}: {result.error}", fg="red")

    click.echo(f"\n📊 Summary: {pulled} pulled, {failed} failed")
    if failed:
        raise SystemExit(1)

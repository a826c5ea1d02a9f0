"""
Image References — Split ``[registry/]path[:tag][@digest]`` strings.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

from ..errors import InvalidReference

DEFAULT_TAG = "latest"


class ImageReference(NamedTuple):
    """A parsed image reference."""

    registry: str
    image: str
    tag: str
    digest: Optional[str] = None
    explicit_tag: bool = False

    def __str__(self) -> str:
        ref = f"{self.registry}/{self.image}" if self.registry else self.image
        if self.digest and not self.explicit_tag:
            return f"{ref}@{self.digest}"
        ref = f"{ref}:{self.tag}"
        if self.digest:
            ref = f"{ref}@{self.digest}"
        return ref


def _is_registry_host(component: str) -> bool:
    return "." in component or ":" in component or component == "localhost"


def parse_image_reference(reference: str) -> ImageReference:
    """
    Parse an image reference.

    The first path component is a registry host when it contains a dot or a
    port, or is ``localhost``. The tag defaults to ``latest``.

    Raises:
        InvalidReference: if the image path is empty.
    """
    remainder = reference.strip()

    digest = None
    if "@" in remainder:
        remainder, digest = remainder.split("@", 1)
        if not digest:
            raise InvalidReference(reference)

    tag = DEFAULT_TAG
    explicit_tag = False
    name, sep, candidate = remainder.rpartition(":")
    # A colon followed by a slash belongs to a registry port, not a tag
    if sep and "/" not in candidate:
        tag = candidate
        explicit_tag = True
        remainder = name
        if not tag:
            raise InvalidReference(reference)

    parts = remainder.split("/")
    registry = ""
    if len(parts) > 1 and _is_registry_host(parts[0]):
        registry = parts[0]
        parts = parts[1:]

    image = "/".join(parts)
    if not image or any(not p for p in parts):
        raise InvalidReference(reference)

    return ImageReference(registry, image, tag, digest, explicit_tag)


def with_default_tag(reference: str) -> str:
    """Return ``reference`` with ``:latest`` appended when it names no tag or digest."""
    parsed = parse_image_reference(reference)
    if parsed.explicit_tag or parsed.digest:
        return reference.strip()
    return f"{reference.strip()}:{DEFAULT_TAG}"

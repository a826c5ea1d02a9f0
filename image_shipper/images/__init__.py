"""
Images — Reference parsing and manifest image extraction.
"""

from .manifest import ManifestKind, extract_images, extract_images_from_text
from .reference import ImageReference, parse_image_reference, with_default_tag

__all__ = [
    "ImageReference",
    "ManifestKind",
    "extract_images",
    "extract_images_from_text",
    "parse_image_reference",
    "with_default_tag",
]

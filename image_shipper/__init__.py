"""
Image Shipper — Mirror container images into a private registry.

``ship`` asks a GitHub Actions workflow to copy an image and follows the
run to completion; ``pull`` fetches already-mirrored images and re-tags
them locally.
"""

__version__ = "0.3.0"

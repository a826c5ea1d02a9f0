"""
Allow running as: python -m image_shipper
"""

from .main import cli

if __name__ == "__main__":
    cli(prog_name="image-shipper")

"""ibu-imager: build image-based upgrade seed images from a running host."""

from ibuimager.version import __version__

__all__ = ["__version__"]

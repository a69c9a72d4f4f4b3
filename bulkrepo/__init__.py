"""bulkrepo - build reproducible packages and publish them into repositories."""

__version__ = "0.4.0"

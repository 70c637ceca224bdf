"""Command line administration client for the FileMaker Server Admin API."""

__version__ = "1.0.0"

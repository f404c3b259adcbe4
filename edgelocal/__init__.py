"""Manifest configuration, in-memory object and secret stores, log endpoints and request helpers for local testing of edge compute packages."""

__version__ = "0.1.0"
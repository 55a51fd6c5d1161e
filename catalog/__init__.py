"""Catalog revisions service: versioned creative-work entities over a REST API."""

__version__ = "0.1.0"

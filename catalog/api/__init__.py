"""HTTP API for the catalog revisions service."""

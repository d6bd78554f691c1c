"""JSON HTTP API."""

"""Configuration, timezone and logging support for ics_ingest."""

"""Logging and id helpers shared across clamgate."""

"""Shared utilities used across layers (time, identifiers, logging)."""

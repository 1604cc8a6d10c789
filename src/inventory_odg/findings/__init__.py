"""Mapping of orphan resources to findings."""

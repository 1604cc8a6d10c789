"""Open Delivery Gear API client and models."""

from inventory_odg.api.client import APIError, OdgClient

__all__ = ["APIError", "OdgClient"]

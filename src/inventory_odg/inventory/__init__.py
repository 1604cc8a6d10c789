"""Inventory database access and orphan resource row shapes."""

from inventory_odg.inventory.store import InventoryStore

__all__ = ["InventoryStore"]

"""Report orphan resources discovered by Inventory to the Open Delivery Gear API."""

__version__ = "0.1.0"

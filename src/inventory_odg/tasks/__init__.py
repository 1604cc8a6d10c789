"""Tasks which report orphan resources to the Open Delivery Gear API."""

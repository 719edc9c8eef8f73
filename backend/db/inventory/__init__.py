"""
Inventory (single stock count per item).

Models:
- InventoryItem (named stock record matched against menu recipes)
- InventoryMovement (append-only deltas written alongside every stock change)

Storage helpers live in `stock`: stock-status tiers and the atomic
conditional decrement used when orders are delivered.
"""

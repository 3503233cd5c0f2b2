from bundlesync.inventory.reporter import (
    InventoryRecord,
    collect_inventory,
    make_record,
    render_inventory,
    write_inventory,
)

__all__ = [
    "InventoryRecord",
    "collect_inventory",
    "make_record",
    "render_inventory",
    "write_inventory",
]

"""
Core module initialization.
Exports configuration and logging utilities.
"""

from restaurant_pos.core.config import (
    get_settings,
    Settings,
    EnvironmentMode,
    InventoryFloorPolicy,
    TotalPricePolicy,
)

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "InventoryFloorPolicy",
    "TotalPricePolicy",
]

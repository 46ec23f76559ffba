"""
                Restaurant POS

Async backend for a restaurant point-of-sale system: kiosk and cashier
checkout, kitchen display queue, and manager back-office for menu,
recipes and inventory.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"

"""
                        Services Module

Business logic of the ordering system, independent of the HTTP layer.

Services:
    - cart: Order drafts, one per table session
    - checkout: Draft submission with bounded retries
    - lifecycle: Order status state machine and order aggregates
    - dashboard: Admin statistics and the optimistic order board
    - catalog: Menu items and restaurant settings
    - tables: Table links for QR codes
    - repository: Data sources (in-memory / SQL)
    - notifications: User-facing notification feed
"""

from qrmenu.services.cart import DraftRegistry, OrderDraft
from qrmenu.services.catalog import CatalogService
from qrmenu.services.checkout import CheckoutService
from qrmenu.services.lifecycle import OrderLifecycleController

__all__ = [
    "CatalogService",
    "CheckoutService",
    "DraftRegistry",
    "OrderDraft",
    "OrderLifecycleController",
]

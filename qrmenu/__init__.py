"""
                Restaurant QR Menu Ordering

Table-side ordering backend: customers scan a per-table QR code,
browse the menu and place an order; staff track orders through
their lifecycle and manage the menu from the dashboard.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"

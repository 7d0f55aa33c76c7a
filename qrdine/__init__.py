"""
                QR Dine

Table-side QR ordering backend: customers scan a table code to browse
the menu and order, staff run the menu, tables, live orders, the kitchen
display and reports.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"

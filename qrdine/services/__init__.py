"""
                        Services Module

Business logic kept out of the route handlers.

Services:
    - order_workflow: Order and item status rules, priority labels
    - kitchen: Kitchen display aggregation
    - reports: Dashboard and report figures (pandas)
    - excel_manager: Menu import/template and locked order export
"""

from qrdine.services.excel_manager import ExcelManager

__all__ = ["ExcelManager"]

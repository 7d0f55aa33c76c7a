"""
Excel File Manager

Spreadsheet operations for:
- Menu template download and bulk menu import
- Order exports (appended by the Celery worker, guarded by a file lock)

Version: 1.0.0
"""

import io
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from filelock import FileLock, Timeout

from qrdine.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

DATA_DIR = Path(settings.data_directory)
ORDERS_FILE = DATA_DIR / settings.excel_filename
ORDERS_LOCK = DATA_DIR / f"{settings.excel_filename}.lock"

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
MENU_SHEET_NAME = "Menu Items"

# Header aliases accepted on import (older templates used camelCase)
MENU_HEADER_ALIASES = {
    "isavailable": "is_available",
    "is available": "is_available",
    "available": "is_available",
}


@dataclass
class MenuImportResult:
    """Outcome of parsing an uploaded menu workbook."""
    items: list[dict[str, Any]] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


class ExcelManager:
    """Excel helpers for menus and order exports."""

    LOCK_TIMEOUT = settings.excel_lock_timeout

    MENU_COLUMNS = [
        "name",
        "description",
        "price",
        "category",
        "is_available",
        "image",
    ]

    MENU_COLUMN_WIDTHS = {
        "A": 30,
        "B": 50,
        "C": 10,
        "D": 20,
        "E": 12,
        "F": 50,
    }

    MENU_EXAMPLE_ROWS = [
        {
            "name": "Margherita Pizza",
            "description": "Classic pizza with tomato sauce, mozzarella, and basil",
            "price": "12.99",
            "category": "Pizza",
            "is_available": "true",
            "image": "https://example.com/pizza.jpg (optional)",
        },
        {
            "name": "Caesar Salad",
            "description": "Fresh romaine lettuce with Caesar dressing and croutons",
            "price": "8.99",
            "category": "Salads",
            "is_available": "true",
            "image": "",
        },
    ]

    ORDER_COLUMNS = [
        "order_id",
        "order_number",
        "date_time",
        "restaurant_id",
        "table_number",
        "customer_name",
        "customer_phone",
        "items",
        "notes",
        "total_amount",
        "order_status",
        "exported_at",
    ]

    # =========================================================================
    # MENU TEMPLATE / IMPORT
    # =========================================================================

    @classmethod
    def build_menu_template(cls) -> bytes:
        """Workbook with the import columns and two example rows."""
        df = pd.DataFrame(cls.MENU_EXAMPLE_ROWS, columns=cls.MENU_COLUMNS)
        buffer = io.BytesIO()

        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name=MENU_SHEET_NAME, index=False)
            sheet = writer.sheets[MENU_SHEET_NAME]
            for column, width in cls.MENU_COLUMN_WIDTHS.items():
                sheet.column_dimensions[column].width = width

        return buffer.getvalue()

    @staticmethod
    def _validate_menu_row(row: dict[str, str]) -> list[str]:
        errors = []

        if not row.get("name"):
            errors.append("Name is required")
        if not row.get("category"):
            errors.append("Category is required")

        try:
            price = float(row.get("price", ""))
            if not math.isfinite(price) or price <= 0:
                errors.append("Price must be a positive number")
        except ValueError:
            errors.append("Price must be a positive number")

        available = row.get("is_available", "")
        if available and available.lower() not in ("true", "false"):
            errors.append("is_available must be true or false")

        return errors

    @classmethod
    def parse_menu_upload(cls, content: bytes) -> MenuImportResult:
        """
        Parse and validate an uploaded menu workbook.

        Every row is validated before anything is returned, so callers can
        import all rows or none. Row numbers in errors match the
        spreadsheet (header is row 1).

        Raises:
            ValueError: if the file is not a readable workbook
        """
        try:
            df = pd.read_excel(io.BytesIO(content), sheet_name=0, dtype=str, engine="openpyxl")
        except Exception as e:
            logger.warning(f"Unreadable menu upload: {e}")
            raise ValueError("File is not a valid Excel workbook") from e

        df.columns = [
            MENU_HEADER_ALIASES.get(str(c).strip().lower(), str(c).strip().lower())
            for c in df.columns
        ]
        df = df.fillna("")
        df = df[(df != "").any(axis=1)]

        result = MenuImportResult()

        if df.empty:
            result.errors.append({"row": 1, "errors": ["No menu items found in file"]})
            return result

        if len(df) > settings.menu_upload_max_rows:
            result.errors.append({
                "row": 1,
                "errors": [f"Too many rows ({len(df)}); limit is {settings.menu_upload_max_rows}"],
            })
            return result

        for index, raw in zip(df.index, df.to_dict("records")):
            row = {key: str(raw.get(key, "")).strip() for key in cls.MENU_COLUMNS}
            row_errors = cls._validate_menu_row(row)

            if row_errors:
                result.errors.append({"row": int(index) + 2, "errors": row_errors})
                continue

            result.items.append({
                "name": row["name"],
                "description": row["description"] or None,
                "price": round(float(row["price"]), 2),
                "category": row["category"],
                "is_available": row["is_available"].lower() != "false",
                "image": row["image"] or None,
            })

        if result.errors:
            logger.info(f"Menu upload rejected: {len(result.errors)} invalid rows")
            result.items = []

        return result

    # =========================================================================
    # ORDER EXPORT
    # =========================================================================

    @classmethod
    def _ensure_data_dir(cls) -> None:
        """Create data directory if needed."""
        if not DATA_DIR.exists():
            DATA_DIR.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {DATA_DIR}")

    @classmethod
    def _load_or_create_df(cls, file_path: Path, columns: list) -> pd.DataFrame:
        """Load existing file or create new DataFrame."""
        if file_path.exists():
            try:
                return pd.read_excel(file_path, engine="openpyxl")
            except Exception as e:
                logger.warning(f"Error reading {file_path}: {e}")
                return pd.DataFrame(columns=columns)
        return pd.DataFrame(columns=columns)

    @classmethod
    def export_order(cls, order_data: dict[str, Any]) -> dict[str, Any]:
        """Append an order to the export workbook with file locking."""
        cls._ensure_data_dir()

        order_id = order_data.get("order_id", 0)
        result = {
            "success": False,
            "message": "",
            "order_id": order_id,
            "exported_at": None,
        }

        try:
            lock = FileLock(str(ORDERS_LOCK), timeout=cls.LOCK_TIMEOUT)

            with lock:
                logger.debug(f"Lock acquired for Order #{order_id}")

                df = cls._load_or_create_df(ORDERS_FILE, cls.ORDER_COLUMNS)

                export_time = datetime.now().isoformat()
                new_row = {
                    "order_id": order_id,
                    "order_number": order_data.get("order_number"),
                    "date_time": order_data.get("created_at", export_time),
                    "restaurant_id": order_data.get("restaurant_id"),
                    "table_number": order_data.get("table_number"),
                    "customer_name": order_data.get("customer_name"),
                    "customer_phone": order_data.get("customer_phone"),
                    "items": order_data.get("items"),
                    "notes": order_data.get("notes"),
                    "total_amount": order_data.get("total_amount"),
                    "order_status": order_data.get("order_status"),
                    "exported_at": export_time,
                }

                new_df = pd.DataFrame([new_row], columns=cls.ORDER_COLUMNS)
                df = new_df if df.empty else pd.concat([df, new_df], ignore_index=True)
                df.to_excel(str(ORDERS_FILE), index=False, engine="openpyxl")

                logger.info(f"Order #{order_id} exported to Excel")

                result["success"] = True
                result["message"] = f"Order #{order_id} exported"
                result["exported_at"] = export_time

            logger.debug(f"Lock released for Order #{order_id}")

        except Timeout:
            result["message"] = f"Lock timeout ({cls.LOCK_TIMEOUT}s)"
            logger.error(f"Lock timeout for Order #{order_id}")

        except Exception as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting Order #{order_id}")

        return result

    @classmethod
    def get_all_orders(cls) -> list[dict[str, Any]]:
        """Get all exported orders."""
        cls._ensure_data_dir()

        if not ORDERS_FILE.exists():
            return []

        try:
            df = pd.read_excel(ORDERS_FILE, engine="openpyxl")
            return df.to_dict("records")
        except Exception as e:
            logger.error(f"Error reading orders: {e}")
            return []

    @classmethod
    def clear_all(cls) -> bool:
        """Delete the export workbook and its lock file."""
        try:
            for f in [ORDERS_FILE, ORDERS_LOCK]:
                if f.exists():
                    f.unlink()
            logger.info("Order export cleared")
            return True
        except OSError as e:
            logger.error(f"Error clearing files: {e}")
            return False

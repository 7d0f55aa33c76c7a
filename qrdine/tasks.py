"""
Celery Tasks
Background tasks for exporting placed orders.
"""

import logging
import time
from datetime import datetime

from qrdine.celery_worker import celery_app
from qrdine.services.excel_manager import ExcelManager

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def export_order_to_excel(self, order_data: dict) -> dict:
    """
    Append a placed order to the Excel export.
    This task runs asynchronously via Celery worker.

    Args:
        order_data: Dictionary containing order information

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    order_id = order_data.get("order_id", "unknown")

    logger.info(f"Task {task_id}: exporting order #{order_id}")
    start_time = time.time()

    result = ExcelManager.export_order(order_data)

    elapsed = round(time.time() - start_time, 3)
    result["task_id"] = task_id
    result["processing_time_seconds"] = elapsed

    if result["success"]:
        logger.info(f"Task {task_id}: order #{order_id} exported in {elapsed}s")
    else:
        logger.warning(f"Task {task_id}: order #{order_id} failed - {result['message']}")

    return result


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        "status": "healthy",
        "worker": "celery",
        "timestamp": datetime.now().isoformat()
    }


@celery_app.task
def clear_order_export() -> dict:
    """
    Clear the order export workbook (for testing/reset purposes).
    """
    success = ExcelManager.clear_all()
    return {
        "success": success,
        "message": "Order export cleared" if success else "Failed to clear order export",
        "timestamp": datetime.now().isoformat()
    }

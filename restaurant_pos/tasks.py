"""
Celery Tasks
Background work that should not block a request: workbook exports of the
sales ledger and a worker heartbeat.
"""

import logging
import time
from datetime import datetime

from restaurant_pos.celery_worker import celery_app
from restaurant_pos.services.report_exporter import ReportExporter

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(OSError,),
    retry_backoff=True
)
def export_sales_report(self, rows: list, filename: str) -> dict:
    """
    Write a sales ledger to an Excel workbook.

    Args:
        rows: JSON-safe ledger rows keyed by ``ReportExporter.LEDGER_COLUMNS``
        filename: Workbook name inside the data directory

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    logger.info(f"📋 Task {task_id}: exporting {len(rows)} bills to {filename}")
    start_time = time.time()

    result = ReportExporter.export_workbook(rows, filename)

    elapsed = round(time.time() - start_time, 3)
    result['task_id'] = task_id
    result['processing_time_seconds'] = elapsed

    if result['success']:
        logger.info(f"✅ Task {task_id}: {filename} written in {elapsed}s")
    else:
        logger.warning(f"⚠️ Task {task_id}: {filename} failed - {result['message']}")

    return result


@celery_app.task
def health_check() -> dict:
    """Simple health check task to verify Celery is working."""
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }

"""
Sales Report Exporter with Concurrency Control

Writes the bill ledger to CSV (for direct download) and to Excel workbooks
under the data directory (for the background export). Workbook writes are
serialized with a file lock so concurrent Celery workers never interleave.

Author: Khalil Bannouri
Version: 1.0.0
"""

import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from filelock import FileLock, Timeout

from restaurant_pos.core.config import get_settings

logger = logging.getLogger(__name__)


class ReportExporter:
    """File-locked ledger exports."""

    # Ledger columns, in download order
    LEDGER_COLUMNS = [
        "Bill Number",
        "Order Number",
        "Table",
        "Bill Date",
        "Subtotal",
        "Tax Amount",
        "Total Amount",
        "Payment Status",
        "Payment Method",
        "Items Count",
        "Items",
    ]

    SUMMARY_COLUMNS = ["Metric", "Value"]

    @classmethod
    def data_dir(cls) -> Path:
        path = Path(get_settings().data_directory)
        if not path.exists():
            path.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {path}")
        return path

    @classmethod
    def ledger_frame(cls, rows: list[dict[str, Any]]) -> pd.DataFrame:
        """Rows keyed by ``LEDGER_COLUMNS`` as a DataFrame with a fixed column order."""
        return pd.DataFrame(rows, columns=cls.LEDGER_COLUMNS)

    @classmethod
    def to_csv(cls, rows: list[dict[str, Any]]) -> str:
        buffer = io.StringIO()
        cls.ledger_frame(rows).to_csv(buffer, index=False)
        return buffer.getvalue()

    @classmethod
    def summary_frame(cls, rows: list[dict[str, Any]]) -> pd.DataFrame:
        df = cls.ledger_frame(rows)
        totals = pd.to_numeric(df["Total Amount"], errors="coerce").fillna(0)
        paid = df["Payment Status"] == "paid"
        return pd.DataFrame(
            [
                ("Bills", len(df)),
                ("Paid bills", int(paid.sum())),
                ("Total billed", round(float(totals.sum()), 2)),
                ("Total paid", round(float(totals[paid].sum()), 2)),
            ],
            columns=cls.SUMMARY_COLUMNS,
        )

    @classmethod
    def export_workbook(cls, rows: list[dict[str, Any]], filename: str) -> dict[str, Any]:
        """
        Write ``rows`` to ``<data_directory>/<filename>`` with a Bills and a
        Summary sheet.

        Returns:
            Result dict with ``success``, ``message``, ``path``, ``rows`` and
            ``exported_at``. Lock timeouts are reported, not raised.
        """
        settings = get_settings()
        target = cls.data_dir() / filename
        lock_path = target.with_suffix(target.suffix + ".lock")

        result = {
            "success": False,
            "message": "",
            "path": str(target),
            "rows": len(rows),
            "exported_at": None,
        }

        try:
            with FileLock(str(lock_path), timeout=settings.report_lock_timeout):
                logger.debug(f"Lock acquired for {filename}")

                with pd.ExcelWriter(str(target), engine="openpyxl") as writer:
                    cls.ledger_frame(rows).to_excel(writer, sheet_name="Bills", index=False)
                    cls.summary_frame(rows).to_excel(writer, sheet_name="Summary", index=False)

                export_time = datetime.now().isoformat()
                result["success"] = True
                result["message"] = f"{len(rows)} bills exported to {filename}"
                result["exported_at"] = export_time
                logger.info(result["message"])

        except Timeout:
            result["message"] = f"Lock timeout ({settings.report_lock_timeout}s)"
            logger.error(f"Lock timeout for {filename}")

        return result

    @classmethod
    def read_workbook(cls, filename: str, sheet: str = "Bills") -> list[dict[str, Any]]:
        target = cls.data_dir() / filename
        if not target.exists():
            return []
        df = pd.read_excel(target, sheet_name=sheet, engine="openpyxl")
        return df.to_dict("records")

    @classmethod
    def list_workbooks(cls) -> list[dict[str, Any]]:
        """Exported workbooks, newest first."""
        files = sorted(cls.data_dir().glob("*.xlsx"), key=lambda p: p.stat().st_mtime, reverse=True)
        return [
            {
                "filename": f.name,
                "size_bytes": f.stat().st_size,
                "modified_at": datetime.fromtimestamp(f.stat().st_mtime).isoformat(),
            }
            for f in files
        ]

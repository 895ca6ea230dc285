"""
Sales endpoints (staff): dashboard, ledger report, menu analytics and
ledger exports.

The CSV download is built in the request; Excel workbooks are written by
a Celery worker into the data directory.
"""

import logging
from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.api.deps import staff_only
from restaurant_pos.database import get_db
from restaurant_pos.models import PaymentStatus, User
from restaurant_pos.pages import action_result, render_page
from restaurant_pos.schemas import BillResponse, OrderResponse, TableResponse
from restaurant_pos.services import sales, tables
from restaurant_pos.services.report_exporter import ReportExporter
from restaurant_pos.tasks import export_sales_report

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sales", tags=["Sales"])


@router.get("", summary="Sales Dashboard")
async def index(
    request: Request,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    data = await sales.dashboard(db, user)
    data["recent_orders"] = [OrderResponse.model_validate(o) for o in data["recent_orders"]]
    return await render_page(request, db, user, "Sales/Dashboard", data)


@router.get("/reports", summary="Sales Reports")
async def reports(
    request: Request,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
    table_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    bills, pagination, summary = await sales.report(
        db, user, date_from, date_to, payment_status, table_id, page
    )
    return await render_page(request, db, user, "Sales/Reports", {
        "bills": [BillResponse.model_validate(b) for b in bills],
        "pagination": pagination,
        "summary": summary,
        "filters": {
            "date_from": date_from,
            "date_to": date_to,
            "payment_status": payment_status,
            "table_id": table_id,
        },
        "tables": [TableResponse.model_validate(t) for t in await tables.list_tables(db)],
    })


@router.get("/analytics", summary="Menu Analytics")
async def analytics(
    request: Request,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    data = await sales.analytics(db, user, date_from, date_to)
    return await render_page(request, db, user, "Sales/Analytics", data)


@router.get("/reports/export", summary="Download Ledger CSV")
async def export_csv(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
    table_id: Optional[int] = Query(None),
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> Response:
    rows = await sales.export_rows(db, user, date_from, date_to, payment_status, table_id)
    filename = sales.export_filename()
    logger.info(f"CSV export of {len(rows)} bills for {user.email}")
    return Response(
        content=ReportExporter.to_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/reports/export-excel", status_code=status.HTTP_202_ACCEPTED)
async def export_excel(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
    table_id: Optional[int] = Query(None),
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Queue a workbook export; the file shows up under ``/sales/reports/exports``."""
    rows = await sales.export_rows(db, user, date_from, date_to, payment_status, table_id)
    filename = sales.export_filename(extension="xlsx")
    task = export_sales_report.delay(rows, filename)
    return action_result(
        f"Export of {len(rows)} bills queued",
        task_id=task.id,
        filename=filename,
    )


@router.get("/reports/exports")
async def list_exports(user: User = Depends(staff_only)) -> dict[str, Any]:
    files = ReportExporter.list_workbooks()
    return action_result(f"{len(files)} exports", files=files)

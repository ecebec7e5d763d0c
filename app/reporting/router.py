# app/reporting/router.py
"""API router for the reporting module."""

import io
import logging
from typing import Any, Dict, List

import pandas as pd
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import ValidationError

from app.core.dependencies import ContextDep
from app.core.exceptions import QueryError, ReportNotFoundError
from app.reporting.schemas import ReportResult, ReportSummary
from app.reporting.service import ReportService

logger = logging.getLogger(__name__)

EMPTY_STATE_MESSAGE = "This report is currently unavailable. Please try again later."

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

router = APIRouter(prefix="/reports", tags=["reports"])


# ===== DEPENDENCY INJECTION =====

def get_report_service(context: ContextDep) -> ReportService:
    """Get ReportService instance."""
    return ReportService(context)


def _run_report(service: ReportService, name: str, params: Dict[str, Any]) -> ReportResult:
    try:
        return service.run(name, params)
    except ReportNotFoundError:
        raise HTTPException(status_code=404, detail=f"Report '{name}' not found")
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=[{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()],
        )


# ===== ENDPOINTS =====

@router.get("/", response_model=List[ReportSummary])
def list_reports(service: ReportService = Depends(get_report_service)) -> List[ReportSummary]:
    """Catalog of runnable reports."""
    return service.list_reports()


@router.get("/{name}", response_model=ReportResult)
def run_report(
    name: str,
    request: Request,
    service: ReportService = Depends(get_report_service),
) -> ReportResult:
    """Run a report; query-string parameters are the report's parameters.

    A database failure renders an empty result with a generic message instead of
    an error page.
    """
    try:
        return _run_report(service, name, dict(request.query_params))
    except QueryError as e:
        logger.error("Report %s failed: %s", name, e.detail, extra={"kind": e.kind.value})
        return ReportResult(name=name, message=EMPTY_STATE_MESSAGE)


@router.get("/{name}/export-xlsx")
def export_report_to_xlsx(
    name: str,
    request: Request,
    service: ReportService = Depends(get_report_service),
) -> Response:
    """Export a report to Excel; subtotal and grand-total rows are styled as totals."""
    result = _run_report(service, name, dict(request.query_params))

    df = pd.DataFrame(result.rows, columns=result.columns)
    excel_buffer = io.BytesIO()

    with pd.ExcelWriter(excel_buffer, engine="openpyxl") as writer:
        sheet_name = name[:31]  # Excel sheet name limit is 31 chars
        df.to_excel(writer, sheet_name=sheet_name, index=False)
        worksheet = writer.sheets[sheet_name]
        _apply_excel_formatting(worksheet, df, result)

    excel_buffer.seek(0)
    return Response(
        content=excel_buffer.getvalue(),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={name}.xlsx"},
    )


def _apply_excel_formatting(worksheet, df: pd.DataFrame, result: ReportResult) -> None:
    """Header styling, bold shaded rollup rows, and column widths."""
    from openpyxl.styles import Alignment, Font, PatternFill
    from openpyxl.utils import get_column_letter

    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
    rollup_font = Font(bold=True)
    rollup_fill = PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid")

    for col_num in range(1, len(df.columns) + 1):
        cell = worksheet.cell(row=1, column=col_num)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center", vertical="center")

    for row_index, row in enumerate(result.rows, start=2):
        if not result.is_rollup_row(row):
            continue
        for col_num in range(1, len(df.columns) + 1):
            cell = worksheet.cell(row=row_index, column=col_num)
            cell.font = rollup_font
            cell.fill = rollup_fill

    for col_index, column in enumerate(df.columns, start=1):
        values = [str(column)] + [str(value) for value in df[column].tolist() if value is not None]
        width = min(max(len(value) for value in values) + 2, 50)
        worksheet.column_dimensions[get_column_letter(col_index)].width = width

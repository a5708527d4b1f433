"""
CSV import and export API Endpoints.

Exports are returned as `text/csv` attachments. Imports take the raw CSV text
as the request body (`Content-Type: text/csv`); every row is validated first
and the valid rows are written in one batch.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from api.dependencies import get_context
from api.models import ExportNumbersRequest, ImportFailure, ImportResultResponse
from services.context import OperationContext
from services.csv_export_service import CsvExport, export_numbers, export_sales_report
from services.csv_import_service import import_numbers, read_csv_rows
from services.errors import OperationError
from services.query_pipeline import ALL

router = APIRouter()


def _attachment(export: CsvExport) -> Response:
    return Response(
        content=export.content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{export.filename}"',
            "X-Record-Count": str(export.record_count),
        },
    )


@router.get(
    "/exports/sales",
    summary="Export Sales Report",
    description="Sales report CSV for the selected buyer, with the money summary rows on top."
)
def export_sales(
    sold_to: str = Query(ALL, description="Buyer name or 'all'"),
    search: str = Query("", description="Mobile search term"),
    ctx: OperationContext = Depends(get_context),
):
    """
    Export the sales report.

    **Example usage:**
    - `GET /api/v1/exports/sales?sold_to=vipnumbershop`

    Responds 404 when no sale matches the filter.
    """
    try:
        return _attachment(export_sales_report(ctx, sold_to, search))
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (HTTPException, OperationError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to export sales report: {str(e)}"
        )


@router.post("/exports/numbers", summary="Export Numbers", description="CSV of the selected numbers.")
def export_selected_numbers(request: ExportNumbersRequest, ctx: OperationContext = Depends(get_context)):
    wanted = set(request.number_ids)
    numbers = [n for n in ctx.store.numbers_for(ctx.actor) if n.id in wanted]
    try:
        return _attachment(export_numbers(ctx, numbers, postpaid=request.postpaid))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post(
    "/imports/numbers",
    response_model=ImportResultResponse,
    summary="Import Numbers from CSV",
    description="Validate and import inventory numbers; `dry_run=true` validates without writing."
)
async def import_numbers_csv(
    request: Request,
    dry_run: bool = Query(False, description="Validate only"),
    ctx: OperationContext = Depends(get_context),
):
    """
    Import numbers from a CSV file.

    **Required columns:** Mobile, Status, PurchasePrice, PurchaseDate.
    RTSDate is required when Status is Non-RTS.

    **Example usage:**
    ```
    curl -X POST -H "Content-Type: text/csv" -H "X-User-Id: <uid>" \\
         --data-binary @numbers.csv /api/v1/imports/numbers?dry_run=true
    ```
    """
    raw = await request.body()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV file must be UTF-8 encoded")

    rows = read_csv_rows(text)
    if not rows:
        raise HTTPException(status_code=400, detail="CSV file has no data rows")

    result = await run_in_threadpool(import_numbers, ctx, rows, dry_run=dry_run)
    return ImportResultResponse(
        total_rows=result.total_rows,
        success_count=result.success_count,
        created=result.created,
        failed=[
            ImportFailure(row_number=f.row_number, record=dict(f.record), reason=f.reason)
            for f in result.failed
        ],
        dry_run=result.dry_run,
    )

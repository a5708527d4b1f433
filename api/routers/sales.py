"""
Sales API Endpoints.

The sales list comes with the money summary for the selected buyer: billed,
purchase cost, profit/loss, paid and remaining.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_context, get_current_user, get_store, list_query
from api.models import (
    CreatedResponse,
    PageResponse,
    SaleResponse,
    SalesListResponse,
    SalesSummaryResponse,
    page_response,
)
from domain.user import User
from services import transition_service
from services.context import OperationContext
from services.errors import OperationError
from services.list_views import ListQuery, sales_view
from services.query_pipeline import ALL
from services.record_store import RecordStore

router = APIRouter()


@router.get(
    "/sales",
    response_model=SalesListResponse,
    summary="List Sales",
    description="Sales visible to the caller with the summary for the selected buyer."
)
def list_sales(
    sold_to: str = Query(ALL, description="Buyer name or 'all'"),
    query: ListQuery = Depends(list_query),
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    """
    Query sales.

    **Example usage:**
    - `GET /api/v1/sales?sold_to=vipnumbershop&sort=sale_date&direction=descending`

    **Returns:**
    - `page`: the requested page of sales
    - `summary`: totals over every sale matching the filter (not only this page)
    - `sold_to_options`: distinct buyers for the filter drop-down
    """
    try:
        view = sales_view(store, user, query, sold_to)
        s = view.summary
        return SalesListResponse(
            page=page_response(view.page, SaleResponse.from_domain),
            summary=SalesSummaryResponse(
                total_billed=s.total_billed,
                total_purchase=s.total_purchase,
                profit_loss=s.profit_loss,
                total_paid=s.total_paid,
                amount_remaining=s.amount_remaining,
                record_count=s.record_count,
            ),
            sold_to_options=view.sold_to_options,
        )
    except (HTTPException, OperationError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to query sales: {str(e)}"
        )


@router.post(
    "/sales/{sale_id}/cancel",
    response_model=CreatedResponse,
    summary="Cancel Sale",
    description="Returns the sold number to inventory; responds with the restored number id."
)
def cancel_sale(sale_id: str, ctx: OperationContext = Depends(get_context)):
    return CreatedResponse(id=transition_service.cancel_sale(ctx, sale_id))

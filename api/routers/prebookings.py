"""
Pre-booking API Endpoints.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_context, get_current_user, get_store, list_query
from api.models import (
    BulkResultResponse,
    BulkSellRequest,
    CreatedResponse,
    PageResponse,
    PreBookingResponse,
    SellRequest,
    bulk_result_response,
    page_response,
)
from domain.user import User
from services import transition_service
from services.context import OperationContext
from services.list_views import ListQuery, prebookings_view
from services.record_store import RecordStore

router = APIRouter()


@router.get("/prebookings", response_model=PageResponse[PreBookingResponse], summary="List Pre-Bookings")
def list_prebookings(
    query: ListQuery = Depends(list_query),
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    return page_response(prebookings_view(store, user, query), PreBookingResponse.from_domain)


@router.post(
    "/prebookings/{prebooking_id}/cancel",
    response_model=CreatedResponse,
    summary="Cancel Pre-Booking",
    description="Returns the number to inventory; responds with the restored number id."
)
def cancel_pre_booking(prebooking_id: str, ctx: OperationContext = Depends(get_context)):
    return CreatedResponse(id=transition_service.cancel_pre_booking(ctx, prebooking_id))


@router.post("/prebookings/{prebooking_id}/sell", response_model=CreatedResponse, status_code=201, summary="Sell Pre-Booked Number")
def sell_pre_booked_number(prebooking_id: str, request: SellRequest, ctx: OperationContext = Depends(get_context)):
    return CreatedResponse(
        id=transition_service.sell_pre_booked_number(
            ctx, prebooking_id, request.sold_to, request.sale_price, request.sale_date,
        )
    )


@router.post("/prebookings/sell", response_model=BulkResultResponse, summary="Bulk Sell Pre-Booked Numbers")
def bulk_sell_pre_booked_numbers(request: BulkSellRequest, ctx: OperationContext = Depends(get_context)):
    return bulk_result_response(
        transition_service.bulk_sell_pre_booked_numbers(
            ctx, request.ids, request.sold_to, request.sale_price, request.sale_date,
        )
    )

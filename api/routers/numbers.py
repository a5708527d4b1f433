"""
Numbers API Endpoints.

Inventory list views (all numbers, postpaid, COCP), every edit of an inventory
number, and the moves out of inventory (sell, pre-book, delete).
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_context, get_current_user, get_store, list_query
from api.models import (
    AddMultipleNumbersRequest,
    AssignNumbersRequest,
    BulkPostpaidDetailsRequest,
    BulkResultResponse,
    BulkSafeCustodyDateRequest,
    BulkSellRequest,
    BulkUploadStatusRequest,
    CreatedResponse,
    DeleteNumbersRequest,
    IdsRequest,
    LocationUpdateRequest,
    MobileListReviewRequest,
    MobileListReviewResponse,
    NumberDraftRequest,
    NumberResponse,
    PageResponse,
    PostpaidDetailsRequest,
    SafeCustodyDateRequest,
    SellRequest,
    StatusUpdateRequest,
    UploadStatusRequest,
    bulk_result_response,
    page_response,
)
from domain.user import User
from services import inventory_service, transition_service
from services.context import OperationContext
from services.errors import OperationError, RecordNotFoundError
from services.list_views import ListQuery, cocp_view, numbers_view, postpaid_view
from services.query_pipeline import ALL, AdvancedSearch
from services.record_store import RecordStore

router = APIRouter()


def advanced_search(
    start_with: str = Query("", description="Mobile starts with"),
    anywhere: str = Query("", description="Mobile contains"),
    end_with: str = Query("", description="Mobile ends with"),
    must_contain: str = Query("", description="Comma list; every token must occur"),
    not_contain: str = Query("", description="Comma list; no token may occur"),
    only_contain: str = Query("", description="Every digit must be one of these"),
    total: str = Query("", description="Plain digit sum equals"),
    sum: str = Query("", description="Digital root equals"),
    max_contain: str = Query("", description="No digit repeated more than N times"),
    most_contains: bool = Query(False, description="Rank by number of pattern matches"),
) -> AdvancedSearch:
    return AdvancedSearch(
        start_with=start_with.strip(),
        anywhere=anywhere.strip(),
        end_with=end_with.strip(),
        must_contain=must_contain,
        not_contain=not_contain,
        only_contain=only_contain.strip(),
        total=total.strip(),
        sum=sum.strip(),
        max_contain=max_contain.strip(),
        most_contains=most_contains,
    )


@router.get(
    "/numbers",
    response_model=PageResponse[NumberResponse],
    summary="List Numbers",
    description="All numbers visible to the caller, with filters, advanced digit search, sorting and paging."
)
def list_numbers(
    status: str = Query(ALL, description="'RTS', 'Non-RTS' or 'all'"),
    number_type: str = Query(ALL, description="'Prepaid', 'Postpaid', 'COCP' or 'all'"),
    upload_status: str = Query(ALL, description="'Pending', 'Done' or 'all'"),
    assigned_to: str = Query(ALL, description="Employee name or 'all'"),
    query: ListQuery = Depends(list_query),
    advanced: AdvancedSearch = Depends(advanced_search),
    ctx: OperationContext = Depends(get_context),
):
    """
    Query inventory numbers.

    Numbers the scheduler promoted to RTS in the last few minutes are listed first.

    **Example usage:**
    - `GET /api/v1/numbers?status=RTS&sort=sr_no&direction=descending`
    - `GET /api/v1/numbers?must_contain=1,4&total=45`
    """
    try:
        page = numbers_view(
            ctx.store, ctx.actor, query,
            status=status, number_type=number_type, upload_status=upload_status,
            assigned_to=assigned_to, advanced=advanced, now=ctx.now(),
        )
        return page_response(page, NumberResponse.from_domain)
    except (HTTPException, OperationError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to query numbers: {str(e)}"
        )


@router.get("/numbers/postpaid", response_model=PageResponse[NumberResponse], summary="List Postpaid Numbers")
def list_postpaid_numbers(
    query: ListQuery = Depends(list_query),
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    return page_response(postpaid_view(store, user, query), NumberResponse.from_domain)


@router.get("/numbers/cocp", response_model=PageResponse[NumberResponse], summary="List COCP Numbers")
def list_cocp_numbers(
    query: ListQuery = Depends(list_query),
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    return page_response(cocp_view(store, user, query), NumberResponse.from_domain)


@router.get("/numbers/{number_id}", response_model=NumberResponse, summary="Get Number")
def get_number(number_id: str, user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    number = next((n for n in store.numbers_for(user) if n.id == number_id), None)
    if number is None:
        raise RecordNotFoundError("numbers", number_id)
    return NumberResponse.from_domain(number)


@router.post("/numbers", response_model=CreatedResponse, status_code=201, summary="Add Number")
def add_number(request: NumberDraftRequest, ctx: OperationContext = Depends(get_context)):
    try:
        return CreatedResponse(id=inventory_service.add_number(ctx, request.to_draft()))
    except (HTTPException, OperationError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to add number: {str(e)}"
        )


@router.post("/numbers/bulk", response_model=BulkResultResponse, summary="Add Multiple Numbers")
def add_multiple_numbers(request: AddMultipleNumbersRequest, ctx: OperationContext = Depends(get_context)):
    result = inventory_service.add_multiple_numbers(ctx, request.details.to_draft(), request.mobiles)
    return bulk_result_response(result)


@router.put("/numbers/{number_id}", status_code=204, summary="Update Number")
def update_number(number_id: str, request: NumberDraftRequest, ctx: OperationContext = Depends(get_context)):
    inventory_service.update_number(ctx, number_id, request.to_draft())


@router.post("/numbers/{number_id}/status", status_code=204, summary="Change RTS Status")
def update_status(number_id: str, request: StatusUpdateRequest, ctx: OperationContext = Depends(get_context)):
    inventory_service.update_number_status(ctx, number_id, request.status, request.rts_date, request.note)


@router.post("/numbers/{number_id}/upload-status", status_code=204, summary="Change Upload Status")
def update_upload_status(number_id: str, request: UploadStatusRequest, ctx: OperationContext = Depends(get_context)):
    inventory_service.update_upload_status(ctx, number_id, request.upload_status)


@router.post("/numbers/upload-status", response_model=BulkResultResponse, summary="Bulk Change Upload Status")
def bulk_update_upload_status(request: BulkUploadStatusRequest, ctx: OperationContext = Depends(get_context)):
    return bulk_result_response(
        inventory_service.bulk_update_upload_status(ctx, request.number_ids, request.upload_status)
    )


@router.post("/numbers/assign", response_model=BulkResultResponse, summary="Assign Numbers")
def assign_numbers(request: AssignNumbersRequest, ctx: OperationContext = Depends(get_context)):
    return bulk_result_response(
        inventory_service.assign_numbers(
            ctx, request.number_ids, request.employee_name, request.location_type, request.current_location,
        )
    )


@router.post("/numbers/location", response_model=BulkResultResponse, summary="Update Location")
def update_location(request: LocationUpdateRequest, ctx: OperationContext = Depends(get_context)):
    return bulk_result_response(
        inventory_service.update_number_location(ctx, request.number_ids, request.location_type, request.current_location)
    )


@router.post("/numbers/{number_id}/check-in", status_code=204, summary="Check In SIM")
def check_in(number_id: str, ctx: OperationContext = Depends(get_context)):
    inventory_service.check_in_number(ctx, number_id)


@router.post("/numbers/{number_id}/safe-custody-date", status_code=204, summary="Change Safe Custody Date")
def update_safe_custody_date(number_id: str, request: SafeCustodyDateRequest, ctx: OperationContext = Depends(get_context)):
    inventory_service.update_safe_custody_date(ctx, number_id, request.safe_custody_date)


@router.post("/numbers/safe-custody-date", response_model=BulkResultResponse, summary="Bulk Change Safe Custody Date")
def bulk_update_safe_custody_date(request: BulkSafeCustodyDateRequest, ctx: OperationContext = Depends(get_context)):
    return bulk_result_response(
        inventory_service.bulk_update_safe_custody_date(ctx, request.number_ids, request.safe_custody_date)
    )


@router.post("/numbers/{number_id}/postpaid-details", status_code=204, summary="Edit Postpaid Details")
def update_postpaid_details(number_id: str, request: PostpaidDetailsRequest, ctx: OperationContext = Depends(get_context)):
    inventory_service.update_postpaid_details(ctx, number_id, request.bill_date, request.pd_bill)


@router.post("/numbers/postpaid-details", response_model=BulkResultResponse, summary="Bulk Edit Postpaid Details")
def bulk_update_postpaid_details(request: BulkPostpaidDetailsRequest, ctx: OperationContext = Depends(get_context)):
    return bulk_result_response(
        inventory_service.bulk_update_postpaid_details(ctx, request.number_ids, request.bill_date, request.pd_bill)
    )


@router.post(
    "/numbers/review-list",
    response_model=MobileListReviewResponse,
    summary="Review Pasted Mobiles",
    description="Split a pasted list into found / not found / duplicate / wrong-type mobiles."
)
def review_list(
    request: MobileListReviewRequest,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    review = inventory_service.review_mobile_list(store.numbers_for(user), request.text, require_type=request.require_type)
    return MobileListReviewResponse(
        found=[NumberResponse.from_domain(n) for n in review.found],
        not_found=review.not_found,
        duplicates=review.duplicates,
        not_cocp=review.not_cocp,
    )


@router.post(
    "/numbers/delete",
    response_model=BulkResultResponse,
    summary="Delete Numbers",
    description="Admin only. Archives the numbers into the deleted-numbers collection with a reason."
)
def delete_numbers(request: DeleteNumbersRequest, ctx: OperationContext = Depends(get_context)):
    return bulk_result_response(transition_service.delete_numbers(ctx, request.number_ids, request.reason))


@router.post("/numbers/{number_id}/sell", response_model=CreatedResponse, status_code=201, summary="Sell Number")
def sell_number(number_id: str, request: SellRequest, ctx: OperationContext = Depends(get_context)):
    """
    Move a number from inventory into sales.

    **Example usage:**
    ```json
    {"sold_to": "vipnumbershop", "sale_price": "8000", "sale_date": "2025-03-01T10:00:00Z"}
    ```
    """
    try:
        sale_id = transition_service.sell_number(ctx, number_id, request.sold_to, request.sale_price, request.sale_date)
        return CreatedResponse(id=sale_id)
    except (HTTPException, OperationError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to sell number: {str(e)}"
        )


@router.post("/numbers/sell", response_model=BulkResultResponse, summary="Bulk Sell Numbers")
def bulk_sell_numbers(request: BulkSellRequest, ctx: OperationContext = Depends(get_context)):
    return bulk_result_response(
        transition_service.bulk_sell_numbers(ctx, request.ids, request.sold_to, request.sale_price, request.sale_date)
    )


@router.post("/numbers/prebook", response_model=BulkResultResponse, summary="Mark as Pre-Booked")
def mark_as_pre_booked(request: IdsRequest, ctx: OperationContext = Depends(get_context)):
    return bulk_result_response(transition_service.mark_as_pre_booked(ctx, request.ids))

"""
Dealer purchase and vendor payment API Endpoints.

Dealer purchases record numbers bought from dealers outside the inventory;
payments record money received from buyers and feed the sales summary.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_context, get_current_user, get_store, list_query
from api.models import (
    CreatedResponse,
    DealerPurchaseRequest,
    DealerPurchaseResponse,
    IdsRequest,
    PageResponse,
    PaymentRequest,
    PaymentResponse,
    page_response,
)
from domain.user import User
from services import ledger_service
from services.context import OperationContext
from services.errors import OperationError
from services.list_views import ListQuery, dealer_purchases_view, payments_view
from services.query_pipeline import ALL
from services.record_store import RecordStore

router = APIRouter()


@router.get("/dealer-purchases", response_model=PageResponse[DealerPurchaseResponse], summary="List Dealer Purchases")
def list_dealer_purchases(
    dealer_name: str = Query(ALL, description="Dealer name or 'all'"),
    query: ListQuery = Depends(list_query),
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    return page_response(dealer_purchases_view(store, query, dealer_name), DealerPurchaseResponse.from_domain)


@router.post("/dealer-purchases", response_model=CreatedResponse, status_code=201, summary="Add Dealer Purchase")
def add_dealer_purchase(request: DealerPurchaseRequest, ctx: OperationContext = Depends(get_context)):
    """
    Record a number bought from a dealer.

    **Example usage:**
    ```json
    {"mobile": "9876543210", "dealer_name": "numberwale", "price": "4500"}
    ```
    """
    try:
        purchase_id = ledger_service.add_dealer_purchase(ctx, request.mobile, request.dealer_name, request.price)
        return CreatedResponse(id=purchase_id)
    except (HTTPException, OperationError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to add dealer purchase: {str(e)}"
        )


@router.post("/dealer-purchases/delete", status_code=204, summary="Delete Dealer Purchases")
def delete_dealer_purchases(request: IdsRequest, ctx: OperationContext = Depends(get_context)):
    ledger_service.delete_dealer_purchases(ctx, request.ids)


@router.get("/payments", response_model=PageResponse[PaymentResponse], summary="List Payments")
def list_payments(
    vendor_name: str = Query(ALL, description="Vendor name or 'all'"),
    query: ListQuery = Depends(list_query),
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    return page_response(payments_view(store, query, vendor_name), PaymentResponse.from_domain)


@router.post("/payments", response_model=CreatedResponse, status_code=201, summary="Record Payment")
def add_payment(request: PaymentRequest, ctx: OperationContext = Depends(get_context)):
    payment_id = ledger_service.add_payment(ctx, request.vendor_name, request.amount, request.payment_date, request.notes)
    return CreatedResponse(id=payment_id)

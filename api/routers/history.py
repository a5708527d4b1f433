"""
Global history, deleted numbers and activity log API Endpoints.

Global history merges every collection a mobile can live in (inventory,
sales, pre-bookings, dealer purchases, deleted numbers) into one row per
record; a mobile present in more than one live collection is flagged with
`location_conflict`.
"""

from typing import List

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_context, get_current_user, get_store, list_query
from api.models import (
    ActivityResponse,
    CreatedResponse,
    DeletedNumberResponse,
    GlobalHistoryResponse,
    IdsRequest,
    LifecycleEventResponse,
    PageResponse,
    page_response,
)
from domain.history import lifecycle_for
from domain.user import User
from services import ledger_service, transition_service
from services.context import OperationContext
from services.list_views import ListQuery, activities_view, deleted_numbers_view, history_view
from services.query_pipeline import ALL
from services.record_store import RecordStore

router = APIRouter()


@router.get("/history", response_model=PageResponse[GlobalHistoryResponse], summary="Global History")
def list_global_history(
    stage: str = Query(ALL, description="Current stage or 'all'"),
    query: ListQuery = Depends(list_query),
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    return page_response(history_view(store, query, stage), GlobalHistoryResponse.from_domain)


@router.get(
    "/history/{mobile}",
    response_model=List[LifecycleEventResponse],
    summary="Lifecycle of a Mobile",
    description="Every lifecycle event of a mobile across all collections, newest first."
)
def get_lifecycle(mobile: str, user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    return [LifecycleEventResponse.from_domain(e) for e in lifecycle_for(store.global_history(), mobile)]


@router.get("/deleted-numbers", response_model=PageResponse[DeletedNumberResponse], summary="List Deleted Numbers")
def list_deleted_numbers(
    query: ListQuery = Depends(list_query),
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    return page_response(deleted_numbers_view(store, query), DeletedNumberResponse.from_domain)


@router.post(
    "/deleted-numbers/{deleted_id}/restore",
    response_model=CreatedResponse,
    summary="Restore Deleted Number",
    description="Admin only. Puts the archived number back into inventory; responds with the new number id."
)
def restore_deleted_number(deleted_id: str, ctx: OperationContext = Depends(get_context)):
    return CreatedResponse(id=transition_service.restore_deleted_number(ctx, deleted_id))


@router.get("/activities", response_model=PageResponse[ActivityResponse], summary="Activity Log")
def list_activities(
    query: ListQuery = Depends(list_query),
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    return page_response(activities_view(store, user, query), ActivityResponse.from_domain)


@router.post("/activities/delete", status_code=204, summary="Delete Activities")
def delete_activities(request: IdsRequest, ctx: OperationContext = Depends(get_context)):
    ledger_service.delete_activities(ctx, request.ids)

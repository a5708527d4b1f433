"""
Reminder API Endpoints.

Employees see the reminders assigned to them; admins see all of them.
`GET /reminders/due` returns the due reminders the caller has not been shown
yet in this process (the pop-up feed).
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from api.dependencies import get_context, get_current_user, get_store, list_query
from api.models import (
    AssignRemindersRequest,
    BulkMarkDoneRequest,
    CreatedResponse,
    IdsRequest,
    MarkDoneRequest,
    PageResponse,
    ReminderBulkResponse,
    ReminderRequest,
    ReminderResponse,
    page_response,
    reminder_bulk_response,
)
from domain.user import User
from services import reminder_service
from services.context import OperationContext
from services.errors import OperationError
from services.list_views import ListQuery, reminders_view
from services.query_pipeline import ALL
from services.record_store import RecordStore

router = APIRouter()


@router.get("/reminders", response_model=PageResponse[ReminderResponse], summary="List Reminders")
def list_reminders(
    status: str = Query(ALL, description="'Pending', 'Done' or 'all'"),
    query: ListQuery = Depends(list_query),
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    return page_response(reminders_view(store, user, query, status), ReminderResponse.from_domain)


@router.get(
    "/reminders/due",
    response_model=List[ReminderResponse],
    summary="New Due Reminders",
    description="Pending reminders due today or earlier that the caller has not been shown yet."
)
def new_due_reminders(request: Request, ctx: OperationContext = Depends(get_context)):
    due = reminder_service.due_reminders(ctx.store, ctx.actor, ctx.now(), ctx.timezone)
    fresh = request.app.state.reminder_popups.take_new(ctx.actor, due)
    return [ReminderResponse.from_domain(r) for r in fresh]


@router.post("/reminders", response_model=CreatedResponse, status_code=201, summary="Create Reminder")
def add_reminder(request: ReminderRequest, ctx: OperationContext = Depends(get_context)):
    """
    Create a reminder for one or more users.

    **Example usage:**
    ```json
    {"task_name": "Collect SIM from Ravi", "assigned_to": ["Ravi"], "due_date": "2025-03-05T00:00:00Z"}
    ```
    """
    try:
        reminder_id = reminder_service.add_reminder(ctx, request.task_name, request.assigned_to, request.due_date)
        return CreatedResponse(id=reminder_id)
    except (HTTPException, OperationError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to create reminder: {str(e)}"
        )


@router.post("/reminders/{reminder_id}/done", status_code=204, summary="Mark Reminder Done")
def mark_reminder_done(reminder_id: str, request: MarkDoneRequest, ctx: OperationContext = Depends(get_context)):
    reminder_service.mark_reminder_done(ctx, reminder_id, request.note)


@router.post(
    "/reminders/done",
    response_model=ReminderBulkResponse,
    summary="Bulk Mark Reminders Done",
    description="Reminders whose underlying task is not finished yet are skipped with the reason."
)
def bulk_mark_reminders_done(request: BulkMarkDoneRequest, ctx: OperationContext = Depends(get_context)):
    return reminder_bulk_response(reminder_service.bulk_mark_reminders_done(ctx, request.reminder_ids, request.note))


@router.post("/reminders/assign", status_code=204, summary="Assign Reminders")
def assign_reminders(request: AssignRemindersRequest, ctx: OperationContext = Depends(get_context)):
    reminder_service.assign_reminders(ctx, request.reminder_ids, request.user_names)


@router.delete("/reminders/{reminder_id}", status_code=204, summary="Delete Reminder")
def delete_reminder(reminder_id: str, ctx: OperationContext = Depends(get_context)):
    reminder_service.delete_reminder(ctx, reminder_id)


@router.post(
    "/reminders/delete",
    response_model=ReminderBulkResponse,
    summary="Bulk Delete Reminders",
    description="Admin only. Completed reminders are deleted; pending ones are skipped."
)
def bulk_delete_reminders(request: IdsRequest, ctx: OperationContext = Depends(get_context)):
    return reminder_bulk_response(reminder_service.bulk_delete_reminders(ctx, request.ids))

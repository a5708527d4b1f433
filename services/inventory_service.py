"""
Inventory service: creating and editing numbers that stay in inventory.

Every operation here:
1. Validates its input against the current store snapshot (before any write).
2. Appends exactly one lifecycle event per touched number (repeated ids
   in a bulk request count once).
3. Writes the number changes and one activity entry in a single batch.

Transitions that move a number out of inventory live in transition_service.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence

from domain.activity import describe_bulk, format_day
from domain.digits import is_valid_mobile
from domain.lifecycle import LifecycleAction, LifecycleLog
from domain.number import (
    LocationType,
    NumberDraft,
    NumberRecord,
    NumberStatus,
    NumberType,
    PdBill,
    UploadStatus,
)
from repositories.document_store import Collection, WriteBatch
from repositories.record_mapping import event_to_document, number_to_document
from services.context import OperationContext
from services.errors import DuplicateNumberError, RecordNotFoundError, ValidationError


@dataclass(frozen=True, slots=True)
class BulkResult:
    """
    Outcome of an operation over many records.

    applied: ids written
    skipped: (id or mobile, reason) for every item that was not written
    """

    applied: List[str]
    skipped: List[tuple[str, str]] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class MobileListReview:
    """Classification of a pasted list of mobiles against inventory."""

    found: List[NumberRecord]
    not_found: List[str]
    duplicates: List[str]
    not_cocp: List[str] = field(default_factory=list)


def _require_number(ctx: OperationContext, number_id: str) -> NumberRecord:
    number = ctx.store.find(Collection.NUMBERS, number_id)
    if number is None:
        raise RecordNotFoundError("numbers", number_id)
    return number


def _resolve_numbers(ctx: OperationContext, number_ids: Iterable[str]) -> tuple[list[NumberRecord], list[tuple[str, str]]]:
    found: list[NumberRecord] = []
    missing: list[tuple[str, str]] = []
    for number_id in dict.fromkeys(number_ids):
        number = ctx.store.find(Collection.NUMBERS, number_id)
        if number is None:
            missing.append((number_id, "Number not found"))
        else:
            found.append(number)
    return found, missing


def _stage_update(
    ctx: OperationContext,
    batch: WriteBatch,
    number: NumberRecord,
    patch: Mapping[str, Any],
    action: LifecycleAction,
    description: str,
) -> None:
    event = number.history.next_event(action, description, ctx.performer, ctx.now())
    batch.update(Collection.NUMBERS, number.id, patch, append_history=[event_to_document(event)])


def _update_many(
    ctx: OperationContext,
    number_ids: Sequence[str],
    patch: Mapping[str, Any] | Callable[[NumberRecord], Mapping[str, Any]],
    action: LifecycleAction,
    description: str,
    activity_action: str,
    activity_base: str,
    info: str,
) -> BulkResult:
    numbers, skipped = _resolve_numbers(ctx, number_ids)
    if not numbers:
        return BulkResult(applied=[], skipped=skipped)

    batch = WriteBatch()
    for number in numbers:
        body = patch(number) if callable(patch) else patch
        _stage_update(ctx, batch, number, body, action, description)
    ctx.add_activity(batch, activity_action, describe_bulk(activity_base, [n.mobile for n in numbers]))
    ctx.commit(batch, path="numbers", operation="update", info={"info": info})
    return BulkResult(applied=[n.id for n in numbers], skipped=skipped)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


# ---------------------------------------------------------------------------
# Creating numbers
# ---------------------------------------------------------------------------

def _validated(ctx: OperationContext, draft: NumberDraft, current_id: Optional[str] = None) -> NumberDraft:
    problems = draft.problems()
    if problems:
        raise ValidationError(problems[0], problems)
    if ctx.store.is_mobile_duplicate(draft.mobile, current_id):
        raise DuplicateNumberError(draft.mobile)
    if draft.assigned_to and draft.name != draft.assigned_to:
        draft = replace(draft, name=draft.assigned_to)
    return draft.normalized()


def add_number(ctx: OperationContext, draft: NumberDraft) -> str:
    """Create one number in inventory; returns its id."""

    draft = _validated(ctx, draft)
    history = LifecycleLog().append(
        LifecycleAction.CREATED,
        f"Number added to inventory by {ctx.performer}.",
        ctx.performer,
        ctx.now(),
    )
    record = draft.to_record(
        record_id=None,
        sr_no=ctx.allocate_sr_no(Collection.NUMBERS),
        created_by=ctx.actor.uid,
        history=history,
    )

    batch = WriteBatch()
    number_id = batch.set(Collection.NUMBERS, number_to_document(record))
    ctx.add_activity(batch, "Added Number", f"Manually added new number {draft.mobile}")
    ctx.commit(batch, path="numbers", operation="create", info={"mobile": draft.mobile})
    return number_id


def add_multiple_numbers(ctx: OperationContext, draft: NumberDraft, mobiles: Sequence[str]) -> BulkResult:
    """
    Create one number per mobile, all sharing the other fields of `draft`.

    Invalid, repeated or already-known mobiles are skipped and reported.
    """

    accepted: list[NumberRecord] = []
    skipped: list[tuple[str, str]] = []
    seen: set[str] = set()

    for raw in mobiles:
        mobile = raw.strip()
        if not is_valid_mobile(mobile):
            skipped.append((mobile, "Invalid mobile number (must be 10 digits)"))
            continue
        if mobile in seen:
            skipped.append((mobile, "Duplicate mobile number in list"))
            continue
        seen.add(mobile)
        if ctx.store.is_mobile_duplicate(mobile):
            skipped.append((mobile, "Mobile number already exists in the system"))
            continue

        candidate = replace(draft, mobile=mobile)
        problems = candidate.problems()
        if problems:
            raise ValidationError(problems[0], problems)
        candidate = replace(candidate, name=candidate.assigned_to).normalized()
        history = LifecycleLog().append(
            LifecycleAction.CREATED,
            f"Number added to inventory via bulk add by {ctx.performer}.",
            ctx.performer,
            ctx.now(),
        )
        accepted.append(
            candidate.to_record(
                record_id=None,
                sr_no=ctx.allocate_sr_no(Collection.NUMBERS),
                created_by=ctx.actor.uid,
                history=history,
            )
        )

    if not accepted:
        return BulkResult(applied=[], skipped=skipped)

    batch = WriteBatch()
    created = [batch.set(Collection.NUMBERS, number_to_document(record)) for record in accepted]
    ctx.add_activity(batch, "Bulk Added Numbers", describe_bulk("Added", [r.mobile for r in accepted]))
    ctx.commit(batch, path="numbers", operation="create", info={"info": f"Bulk add of {len(accepted)} numbers"})
    return BulkResult(applied=created, skipped=skipped)


# ---------------------------------------------------------------------------
# Editing numbers
# ---------------------------------------------------------------------------

def update_number(ctx: OperationContext, number_id: str, draft: NumberDraft) -> None:
    existing = _require_number(ctx, number_id)
    draft = _validated(ctx, draft, current_id=number_id)
    if draft.check_in_date is None and existing.check_in_date is not None:
        draft = replace(draft, check_in_date=existing.check_in_date)

    updated = draft.to_record(
        record_id=number_id,
        sr_no=existing.sr_no,
        created_by=existing.created_by,
        history=existing.history,
    )
    patch = number_to_document(updated)
    for key in ("history", "srNo", "createdBy"):
        patch.pop(key, None)

    batch = WriteBatch()
    _stage_update(
        ctx, batch, existing, patch,
        LifecycleAction.DETAILS_UPDATED,
        f"Number details updated by {ctx.performer}.",
    )
    ctx.add_activity(batch, "Updated Number", f"Updated details for number {draft.mobile}")
    ctx.commit(batch, path=f"numbers/{number_id}", operation="update", info=patch)


def update_number_status(
    ctx: OperationContext,
    number_id: str,
    status: NumberStatus,
    rts_date: Optional[datetime] = None,
    note: Optional[str] = None,
) -> None:
    """
    Flip a number between RTS and Non-RTS.

    RTS clears the RTS date. A note, when given, is appended to the number's notes.
    """

    number = _require_number(ctx, number_id)
    if status == NumberStatus.NON_RTS and rts_date is None:
        raise ValidationError("RTS date is required for Non-RTS numbers.")

    effective_date = None if status == NumberStatus.RTS else rts_date
    description = f"Status changed to {status.value}"
    if effective_date is not None:
        description += f" with RTS date {format_day(effective_date, ctx.timezone)}"
    description = f"{description}. {note or ''}".strip()

    patch: dict[str, Any] = {"status": status.value, "rtsDate": _iso(effective_date)}
    if note:
        patch["notes"] = f"{number.notes or ''}\n{note}".strip()

    batch = WriteBatch()
    _stage_update(ctx, batch, number, patch, LifecycleAction.RTS_STATUS_CHANGED, description)
    ctx.add_activity(batch, "Updated RTS Status", f"Marked {number.mobile} as {status.value}")
    ctx.commit(batch, path=f"numbers/{number_id}", operation="update", info=patch)


def update_upload_status(ctx: OperationContext, number_id: str, upload_status: UploadStatus) -> None:
    number = _require_number(ctx, number_id)
    patch = {"uploadStatus": upload_status.value}

    batch = WriteBatch()
    _stage_update(
        ctx, batch, number, patch,
        LifecycleAction.UPLOAD_STATUS_CHANGED,
        f"Upload status changed to {upload_status.value}.",
    )
    ctx.add_activity(batch, "Updated Upload Status", f"Set upload status for {number.mobile} to {upload_status.value}")
    ctx.commit(batch, path=f"numbers/{number_id}", operation="update", info=patch)


def bulk_update_upload_status(ctx: OperationContext, number_ids: Sequence[str], upload_status: UploadStatus) -> BulkResult:
    return _update_many(
        ctx,
        number_ids,
        {"uploadStatus": upload_status.value},
        LifecycleAction.UPLOAD_STATUS_CHANGED,
        f"Upload status changed to {upload_status.value}.",
        "Bulk Updated Upload Status",
        f"Updated upload status to {upload_status.value} for",
        f"Bulk upload status update for {len(number_ids)} records",
    )


def assign_numbers(
    ctx: OperationContext,
    number_ids: Sequence[str],
    employee_name: str,
    location_type: LocationType,
    current_location: str,
) -> BulkResult:
    """Assign numbers to an employee and move them to a location."""

    return _update_many(
        ctx,
        number_ids,
        {
            "assignedTo": employee_name,
            "name": employee_name,
            "locationType": location_type.value,
            "currentLocation": current_location,
        },
        LifecycleAction.ASSIGNED,
        f"Assigned to {employee_name} and moved to {current_location}.",
        "Assigned Numbers",
        f"Assigned to {employee_name}:",
        f"Batch assign to {employee_name}",
    )


def update_number_location(
    ctx: OperationContext,
    number_ids: Sequence[str],
    location_type: LocationType,
    current_location: str,
) -> BulkResult:
    return _update_many(
        ctx,
        number_ids,
        {"locationType": location_type.value, "currentLocation": current_location},
        LifecycleAction.LOCATION_UPDATED,
        f"Location changed to {current_location}.",
        "Updated Number Location",
        f"Updated location to {current_location} for",
        f"Batch location update for {len(number_ids)} numbers",
    )


def check_in_number(ctx: OperationContext, number_id: str) -> None:
    number = _require_number(ctx, number_id)
    patch = {"checkInDate": ctx.now().isoformat()}

    batch = WriteBatch()
    _stage_update(
        ctx, batch, number, patch,
        LifecycleAction.CHECKED_IN,
        f"SIM Checked In at {number.current_location}.",
    )
    ctx.add_activity(batch, "Checked In Number", f"Checked in SIM number {number.mobile}.")
    ctx.commit(batch, path=f"numbers/{number_id}", operation="update", info={"checkInDate": "NOW"})


def update_safe_custody_date(ctx: OperationContext, number_id: str, new_date: datetime) -> None:
    number = _require_number(ctx, number_id)
    day = format_day(new_date, ctx.timezone)
    patch = {"safeCustodyDate": new_date.isoformat()}

    batch = WriteBatch()
    _stage_update(
        ctx, batch, number, patch,
        LifecycleAction.COCP_DATE_CHANGED,
        f"Safe Custody Date changed to {day}.",
    )
    ctx.add_activity(batch, "Updated Safe Custody Date", f"Updated Safe Custody Date for {number.mobile} to {day}")
    ctx.commit(batch, path=f"numbers/{number_id}", operation="update", info=patch)


def bulk_update_safe_custody_date(ctx: OperationContext, number_ids: Sequence[str], new_date: datetime) -> BulkResult:
    day = format_day(new_date, ctx.timezone)
    return _update_many(
        ctx,
        number_ids,
        {"safeCustodyDate": new_date.isoformat()},
        LifecycleAction.COCP_DATE_CHANGED,
        f"Safe Custody Date changed to {day}.",
        "Bulk Updated Safe Custody Date",
        f"Updated Safe Custody Date to {day} for",
        f"Bulk update of Safe Custody Date for {len(number_ids)} records",
    )


def update_postpaid_details(ctx: OperationContext, number_id: str, bill_date: datetime, pd_bill: PdBill) -> None:
    number = _require_number(ctx, number_id)
    day = format_day(bill_date, ctx.timezone)
    patch = {"billDate": bill_date.isoformat(), "pdBill": pd_bill.value}

    batch = WriteBatch()
    _stage_update(
        ctx, batch, number, patch,
        LifecycleAction.POSTPAID_DETAILS_UPDATED,
        f"Bill Date set to {day}, PD Bill set to {pd_bill.value}.",
    )
    ctx.add_activity(batch, "Updated Postpaid Details", f"Updated postpaid details for {number.mobile}.")
    ctx.commit(batch, path=f"numbers/{number_id}", operation="update", info=patch)


def bulk_update_postpaid_details(
    ctx: OperationContext,
    number_ids: Sequence[str],
    bill_date: datetime,
    pd_bill: PdBill,
) -> BulkResult:
    day = format_day(bill_date, ctx.timezone)
    return _update_many(
        ctx,
        number_ids,
        {"billDate": bill_date.isoformat(), "pdBill": pd_bill.value},
        LifecycleAction.POSTPAID_DETAILS_UPDATED,
        f"Bulk updated: Bill Date to {day}, PD Bill to {pd_bill.value}.",
        "Bulk Updated Postpaid Details",
        "Updated postpaid details for",
        f"Bulk update of postpaid details for {len(number_ids)} records",
    )


# ---------------------------------------------------------------------------
# Pasted mobile lists
# ---------------------------------------------------------------------------

_LIST_SEPARATORS = re.compile(r"[\n,]+")


def review_mobile_list(
    numbers: Sequence[NumberRecord],
    text: str,
    *,
    require_type: Optional[NumberType] = None,
) -> MobileListReview:
    """
    Classify a newline/comma separated list of mobiles against `numbers`.

    With `require_type`, inventory numbers of another type land in `not_cocp`
    (the only type the bulk date changers operate on is COCP).
    """

    by_mobile = {n.mobile: n for n in numbers}
    found: list[NumberRecord] = []
    not_found: list[str] = []
    duplicates: list[str] = []
    wrong_type: list[str] = []
    seen: set[str] = set()

    for token in _LIST_SEPARATORS.split(text):
        mobile = token.strip()
        if not mobile:
            continue
        if mobile in seen:
            if mobile not in duplicates:
                duplicates.append(mobile)
            continue
        seen.add(mobile)

        number = by_mobile.get(mobile)
        if number is None:
            not_found.append(mobile)
        elif require_type is not None and number.number_type != require_type:
            wrong_type.append(mobile)
        else:
            found.append(number)

    return MobileListReview(found=found, not_found=not_found, duplicates=duplicates, not_cocp=wrong_type)


__all__ = [
    "BulkResult",
    "MobileListReview",
    "add_multiple_numbers",
    "add_number",
    "assign_numbers",
    "bulk_update_postpaid_details",
    "bulk_update_safe_custody_date",
    "bulk_update_upload_status",
    "check_in_number",
    "review_mobile_list",
    "update_number",
    "update_number_location",
    "update_number_status",
    "update_postpaid_details",
    "update_safe_custody_date",
    "update_upload_status",
]

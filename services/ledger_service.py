"""
Ledger service: dealer purchases, vendor payments, the activity feed and user
administration.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from domain.activity import describe_bulk, format_amount
from domain.dealer_purchase import DealerPurchaseRecord
from domain.digits import digital_root, is_valid_mobile
from domain.payment import PaymentRecord
from repositories.document_store import Collection, WriteBatch
from repositories.record_mapping import dealer_purchase_to_document, payment_to_document
from services.context import OperationContext
from services.errors import (
    DuplicateNumberError,
    ForbiddenActionError,
    RecordNotFoundError,
    ValidationError,
)


def add_dealer_purchase(ctx: OperationContext, mobile: str, dealer_name: str, price: Decimal) -> str:
    if not is_valid_mobile(mobile):
        raise ValidationError("Mobile number must be exactly 10 digits.")
    if not dealer_name.strip():
        raise ValidationError("Dealer name is required.")
    if price < 0:
        raise ValidationError("Price cannot be negative.")
    if ctx.store.is_mobile_duplicate(mobile):
        raise DuplicateNumberError(mobile)

    purchase = DealerPurchaseRecord(
        id=None,
        sr_no=ctx.allocate_sr_no(Collection.DEALER_PURCHASES),
        mobile=mobile,
        sum=digital_root(mobile),
        dealer_name=dealer_name,
        price=price,
        created_by=ctx.actor.uid,
    )

    batch = WriteBatch()
    purchase_id = batch.set(Collection.DEALER_PURCHASES, dealer_purchase_to_document(purchase))
    ctx.add_activity(batch, "Added Dealer Purchase", f"Added new dealer purchase for {mobile}")
    ctx.commit(batch, path="dealerPurchases", operation="create", info=dealer_purchase_to_document(purchase))
    return purchase_id


def delete_dealer_purchases(ctx: OperationContext, purchase_ids: Sequence[str]) -> None:
    records = [ctx.store.find(Collection.DEALER_PURCHASES, pid) for pid in purchase_ids]
    mobiles = [r.mobile for r in records if r is not None]

    batch = WriteBatch()
    for purchase_id in purchase_ids:
        batch.delete(Collection.DEALER_PURCHASES, purchase_id)
    ctx.add_activity(batch, "Deleted Dealer Purchases", describe_bulk("Deleted from dealer purchases:", mobiles))
    ctx.commit(
        batch, path="dealerPurchases", operation="delete",
        info={"info": f"Batch delete {len(purchase_ids)} records"},
    )


def add_payment(
    ctx: OperationContext,
    vendor_name: str,
    amount: Decimal,
    payment_date: datetime,
    notes: Optional[str] = None,
) -> str:
    if not vendor_name.strip():
        raise ValidationError("Vendor name is required.")
    if amount <= 0:
        raise ValidationError("Payment amount must be positive.")

    payment = PaymentRecord(
        id=None,
        sr_no=ctx.allocate_sr_no(Collection.PAYMENTS),
        vendor_name=vendor_name,
        amount=amount,
        payment_date=payment_date,
        created_by=ctx.actor.uid,
        notes=notes,
    )

    batch = WriteBatch()
    payment_id = batch.set(Collection.PAYMENTS, payment_to_document(payment))
    ctx.add_activity(batch, "Received Payment", f"Received payment of ₹{format_amount(amount)} from {vendor_name}.")
    ctx.commit(batch, path="payments", operation="create", info=payment_to_document(payment))
    return payment_id


def delete_activities(ctx: OperationContext, activity_ids: Sequence[str]) -> None:
    ctx.require_admin("delete activities")

    batch = WriteBatch()
    for activity_id in activity_ids:
        batch.delete(Collection.ACTIVITIES, activity_id)
    ctx.add_activity(batch, "Deleted Activities", f"Deleted {len(activity_ids)} activity record(s).")
    ctx.commit(
        batch, path="activities", operation="delete",
        info={"info": f"Batch delete {len(activity_ids)} activities"},
    )


def delete_user(ctx: OperationContext, uid: str) -> None:
    """Remove a user profile (admin only, never yourself)."""

    ctx.require_admin("delete users")
    if uid == ctx.actor.uid:
        raise ForbiddenActionError("You cannot delete your own account.")
    user = ctx.store.user_by_uid(uid)
    if user is None:
        raise RecordNotFoundError("users", uid)

    batch = WriteBatch()
    batch.delete(Collection.USERS, uid)
    ctx.add_activity(batch, "Deleted User", f"Deleted the user account for {user.display_name or 'Unknown'}.")
    ctx.commit(batch, path=f"users/{uid}", operation="delete")


__all__ = [
    "add_dealer_purchase",
    "add_payment",
    "delete_activities",
    "delete_dealer_purchases",
    "delete_user",
]

"""
Request dependencies: shared application state and the calling user.

The caller identifies itself with the `X-User-Id` header (its user uid);
authentication happens in front of this service.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, Query, Request

from api.config import Settings
from domain.user import User
from services.context import OperationContext
from services.list_views import ListQuery
from services.query_pipeline import SortDirection
from services.record_store import RecordStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_current_user(
    store: RecordStore = Depends(get_store),
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> User:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    user = store.user_by_uid(x_user_id)
    if user is None:
        raise HTTPException(status_code=401, detail=f"Unknown user: {x_user_id}")
    return user


def get_context(
    request: Request,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> OperationContext:
    return OperationContext(
        store=store,
        actor=user,
        clock=request.app.state.clock,
        timezone=settings.business_timezone,
    )


def list_query(
    search: str = Query("", description="Case-insensitive match on the mobile number"),
    sort: Optional[str] = Query(None, description="Column to sort by (snake_case field name)"),
    direction: SortDirection = Query(SortDirection.ASCENDING, description="'ascending' or 'descending'"),
    page: int = Query(1, ge=1, description="Page number (1-based)"),
    page_size: int = Query(10, ge=0, le=1000, description="Rows per page; 0 returns every row"),
) -> ListQuery:
    return ListQuery(
        search=search,
        sort=sort,
        direction=direction,
        page=page,
        page_size=page_size or None,
    )


__all__ = ["get_context", "get_current_user", "get_settings", "get_store", "list_query"]

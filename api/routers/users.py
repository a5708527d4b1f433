"""
User API Endpoints.
"""

from typing import List

from fastapi import APIRouter, Depends

from api.dependencies import get_context, get_current_user, get_store
from api.models import UserResponse
from domain.user import User
from services import ledger_service
from services.context import OperationContext
from services.record_store import RecordStore

router = APIRouter()


@router.get("/users/me", response_model=UserResponse, summary="Current User")
def current_user(user: User = Depends(get_current_user)):
    return UserResponse.from_domain(user)


@router.get("/users", response_model=List[UserResponse], summary="List Users")
def list_users(user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    return [UserResponse.from_domain(u) for u in sorted(store.users, key=lambda u: u.display_name or u.email)]


@router.get("/users/employees", response_model=List[str], summary="Employee Names")
def list_employees(user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    return store.employees


@router.get("/users/vendors", response_model=List[str], summary="Vendor Names")
def list_vendors(user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    return store.vendors


@router.delete("/users/{uid}", status_code=204, summary="Delete User")
def delete_user(uid: str, ctx: OperationContext = Depends(get_context)):
    ledger_service.delete_user(ctx, uid)

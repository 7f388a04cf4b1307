from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from apps.storefront.routes.deps import get_account_service, get_current_user, get_store
from apps.storefront.repositories.store import Store
from apps.storefront.services.account.account_service import AccountService
from apps.storefront.services.account.notifications import list_notifications, mark_read
from apps.storefront.services.core_service import NotFoundError
from apps.storefront.utils.envelope import ok

router = APIRouter(tags=["account"])


class ProfileIn(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[Dict[str, Any]] = None


@router.post("/session")
async def start_session(
    user: Dict[str, Any] = Depends(get_current_user),
    account: AccountService = Depends(get_account_service),
):
    return ok(await account.bootstrap(user))


@router.get("/profile")
async def get_profile(
    user: Dict[str, Any] = Depends(get_current_user),
    account: AccountService = Depends(get_account_service),
):
    return ok(await account.get_profile(user["id"]))


@router.patch("/profile")
async def update_profile(
    body: ProfileIn,
    user: Dict[str, Any] = Depends(get_current_user),
    account: AccountService = Depends(get_account_service),
):
    return ok(await account.update_profile(user["id"], body.dict(exclude_none=True)))


@router.get("/orders")
async def order_history(
    status: Optional[str] = None,
    user: Dict[str, Any] = Depends(get_current_user),
    account: AccountService = Depends(get_account_service),
):
    return ok(await account.order_history(user["id"], status))


@router.post("/orders/{order_id}/reorder")
async def reorder(
    order_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    account: AccountService = Depends(get_account_service),
):
    return ok(await account.reorder(user["id"], order_id))


@router.get("/notifications")
async def notifications(
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    return ok(await list_notifications(store, user["id"]))


@router.post("/notifications/{notification_id}/read")
async def read_notification(
    notification_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    if not await mark_read(store, user["id"], notification_id):
        raise NotFoundError("Notification not found")
    return ok({"id": notification_id, "read": True})

# api/routes_accounts.py
"""
/accounts routes.

`{id}` in every path is a device id: accounts are addressed by any device
they own. Authorization rules live in core.auth.PERMISSIONS.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request

from core.auth import authorize, bearer_token, get_current_user, may_change_role
from core.exceptions import NotFound
from core.response import ok
from models.account import AccountCreate, AccountUpdate, Role
from models.notification import NotificationIn
from services.accounts_service import AccountsService
from services.notification_service import NotificationService

router = APIRouter()


def get_accounts_service(request: Request) -> AccountsService:
    return request.app.state.services.accounts


def get_notification_service(request: Request) -> NotificationService:
    return request.app.state.services.notifications


# --- Accounts ---

@router.post("", status_code=201)
async def create_account(payload: AccountCreate, service: AccountsService = Depends(get_accounts_service)):
    """Create an account. No auth: this is how a device first registers."""
    return ok(await service.create_account(payload))


@router.get("")
async def list_accounts(
    role: Optional[Role] = None,
    user: dict = Depends(get_current_user),
    service: AccountsService = Depends(get_accounts_service),
):
    authorize(user, "list_accounts")
    return ok(await service.list_accounts(role))


# Accounts - Sync
@router.post("/add-device")
async def add_device(request: Request, service: AccountsService = Depends(get_accounts_service)):
    """Merge the two devices named in the bearer sync token."""
    return ok(await service.add_device(bearer_token(request)))


@router.get("/{id}")
async def get_account(id: str, user: dict = Depends(get_current_user),
                      service: AccountsService = Depends(get_accounts_service)):
    authorize(user, "get_account", id)
    account = await service.get_account(id)
    if account is None:
        raise NotFound("Account not found")
    return ok(account)


@router.put("/{id}")
async def update_account(id: str, payload: AccountUpdate, user: dict = Depends(get_current_user),
                         service: AccountsService = Depends(get_accounts_service)):
    authorize(user, "update_account", id)
    fields = payload.model_dump(exclude_unset=True)
    if not may_change_role(user) or fields.get("role") is None:
        fields.pop("role", None)
    return ok(await service.update_account(id, fields))


@router.delete("/{id}")
async def delete_account(id: str, user: dict = Depends(get_current_user),
                         service: AccountsService = Depends(get_accounts_service)):
    authorize(user, "delete_account", id)
    account = await service.delete_account(id)
    if account is None:
        raise NotFound("Account not found")
    return ok(account)


@router.post("/{id}/add-device/{device_id}")
async def merge_device(id: str, device_id: str, user: dict = Depends(get_current_user),
                       service: AccountsService = Depends(get_accounts_service)):
    authorize(user, "merge_device", id)
    return ok(await service.merge_devices(id, device_id))


@router.delete("/{id}/remove-device/{device_id}")
async def remove_device(id: str, device_id: str, user: dict = Depends(get_current_user),
                        service: AccountsService = Depends(get_accounts_service)):
    authorize(user, "remove_device", id)
    return ok(await service.remove_device(id, device_id))


# --- Favorites ---

@router.post("/{id}/favorite-lines/{line_id}")
async def toggle_favorite_line(id: str, line_id: str, user: dict = Depends(get_current_user),
                               service: AccountsService = Depends(get_accounts_service)):
    authorize(user, "toggle_favorite", id)
    return ok(await service.toggle_favorite_line(id, line_id))


@router.post("/{id}/favorite-stops/{stop_id}")
async def toggle_favorite_stop(id: str, stop_id: str, user: dict = Depends(get_current_user),
                               service: AccountsService = Depends(get_accounts_service)):
    authorize(user, "toggle_favorite", id)
    return ok(await service.toggle_favorite_stop(id, stop_id))


# --- Notifications ---

@router.get("/{id}/notifications")
async def list_notifications(id: str, user: dict = Depends(get_current_user),
                             service: NotificationService = Depends(get_notification_service)):
    authorize(user, "notifications", id)
    return ok(await service.list_notifications(id))


@router.get("/{id}/notifications/{notification_id}")
async def get_notification(id: str, notification_id: str, user: dict = Depends(get_current_user),
                           service: NotificationService = Depends(get_notification_service)):
    authorize(user, "notifications", id)
    return ok(await service.get_notification(id, notification_id))


@router.post("/{id}/notifications", status_code=201)
async def create_notification(id: str, payload: NotificationIn, user: dict = Depends(get_current_user),
                              service: NotificationService = Depends(get_notification_service)):
    authorize(user, "notifications", id)
    return ok(await service.create_notification(id, payload))


@router.put("/{id}/notifications/{notification_id}")
async def update_notification(id: str, notification_id: str, payload: NotificationIn,
                              user: dict = Depends(get_current_user),
                              service: NotificationService = Depends(get_notification_service)):
    authorize(user, "notifications", id)
    return ok(await service.update_notification(id, notification_id, payload))


@router.delete("/{id}/notifications/{notification_id}")
async def delete_notification(id: str, notification_id: str, user: dict = Depends(get_current_user),
                              service: NotificationService = Depends(get_notification_service)):
    authorize(user, "notifications", id)
    return ok(await service.delete_notification(id, notification_id))

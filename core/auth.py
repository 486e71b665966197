import logging
from typing import Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from config.settings import settings
from core.exceptions import Forbidden, Unauthorized

logger = logging.getLogger(__name__)

# Define security scheme for Swagger UI (auto_error=False allows us to handle missing tokens ourselves)
security = HTTPBearer(auto_error=False)

STAFF_ROLES = ("admin", "owner")

# Who may do what to the account addressed by {id}.
#   "self"          -> caller's device_id must be {id}
#   "self_or_staff" -> self, or caller role admin/owner
#   "staff"         -> caller role admin/owner
# Updating `role` is additionally limited to owners (see may_change_role).
PERMISSIONS = {
    "get_account": "self_or_staff",
    "list_accounts": "staff",
    "update_account": "self_or_staff",
    "delete_account": "self_or_staff",
    "merge_device": "self_or_staff",
    "remove_device": "self_or_staff",
    "toggle_favorite": "self",
    "notifications": "self_or_staff",
}


def _extract_token(header_val: str) -> Optional[str]:
    """Helper to strip 'Bearer ' prefix if present."""
    if not header_val:
        return None
    hv = header_val.strip()
    if hv.lower().startswith("bearer "):
        return hv.split(None, 1)[1].strip() or None
    return None


def decode_token(token: Optional[str]) -> dict:
    """Verify and decode a bearer token; Unauthorized when missing, expired or invalid."""
    if not token:
        raise Unauthorized("Missing authorization token")
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.warning("Token expired")
        raise Unauthorized("Token expired")
    except jwt.InvalidTokenError as e:
        logger.warning("Token decode error: %s", e)
        raise Unauthorized("Invalid authorization token")
    if not payload.get("device_id"):
        raise Unauthorized("Invalid authorization token")
    return payload


def bearer_token(request: Request) -> Optional[str]:
    return _extract_token(request.headers.get("Authorization") or "")


async def get_current_user(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """
    Auth dependency: decode the bearer token and resolve the caller's role from
    the account owning the token's device ("user" when the device has no account).
    """
    token_value = creds.credentials if creds and creds.credentials else bearer_token(request)
    payload = decode_token(token_value)

    device_id = payload["device_id"]
    account = await request.app.state.services.accounts.repository.find_by_device_id(device_id)
    return {"device_id": device_id, "role": account.role if account else "user"}


def authorize(user: dict, action: str, account_device_id: Optional[str] = None) -> None:
    """Raise Forbidden unless `user` may perform `action` on the account addressed by `account_device_id`."""
    rule = PERMISSIONS[action]
    is_self = account_device_id is not None and user.get("device_id") == account_device_id
    is_staff = user.get("role") in STAFF_ROLES

    if rule == "self" and is_self:
        return
    if rule == "staff" and is_staff:
        return
    if rule == "self_or_staff" and (is_self or is_staff):
        return
    logger.info("Forbidden: device=%s role=%s action=%s target=%s",
                user.get("device_id"), user.get("role"), action, account_device_id)
    raise Forbidden()


def may_change_role(user: dict) -> bool:
    return user.get("role") == "owner"

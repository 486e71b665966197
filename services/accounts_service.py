"""
Account use cases: CRUD, device merge / removal and favorite toggles.

Device merge protocol (merge_devices):
1. Resolve the accounts owning d1 and d2 (plain reads, no lock).
2. Neither exists -> NotFound.
3. Inside one store transaction:
   - an unknown side gets a fresh single-device account,
   - the same account on both sides -> BadRequest (already merged),
   - both sources are deleted through the normal delete path,
   - the merged account (see services.account_merge) is inserted through the
     uniqueness-checked create.
4. Any error rolls the whole transaction back; callers see either both
   source accounts or the merged one, never a mix.
5. After commit the remote notification mirrors are moved to the merged
   account's id (same local-first policy as notification CRUD).

Deleting an account, directly or by removing its last device, deletes its
remote mirrors after the local delete has committed.
"""
import logging
from typing import List, Optional

from sqlalchemy import and_

from core.auth import decode_token
from core.document_store import DocumentStore, pull, push
from core.exceptions import BadRequest, NotFound, Unauthorized
from models.account import Account, AccountCreate, Device
from models.db_models import AccountModel
from services.account_merge import merge_accounts
from services.account_repository import AccountRepository, owns_device
from services.notification_service import NotificationService

logger = logging.getLogger(__name__)

LIST_FIELDS = ("favorite_lines", "favorite_stops")


class AccountsService:
    def __init__(self, store: DocumentStore, repository: AccountRepository,
                 notifications: Optional[NotificationService] = None):
        self.store = store
        self.repository = repository
        self.notifications = notifications

    # --- CRUD ---

    async def create_account(self, payload: AccountCreate) -> Account:
        return await self.repository.create(Account(**payload.model_dump()))

    async def get_account(self, device_id: str) -> Optional[Account]:
        return await self.repository.find_by_device_id(device_id)

    async def list_accounts(self, role: Optional[str] = None) -> List[Account]:
        if role:
            return await self.repository.list_by_role(role)
        return await self.repository.list_all()

    async def update_account(self, device_id: str, fields: dict) -> Account:
        for field in LIST_FIELDS:
            if field in fields and fields[field] is None:
                raise BadRequest(f"{field} must be a list")
        if not fields:
            account = await self.repository.find_by_device_id(device_id)
            if account is None:
                raise NotFound("Account not found")
            return account
        return await self.repository.update_by_device_id(device_id, fields)

    async def delete_account(self, device_id: str) -> Optional[Account]:
        account = await self.repository.delete_by_device_id(device_id)
        if account is not None:
            await self._drop_mirrors(account)
        return account

    async def _drop_mirrors(self, account: Account) -> None:
        if self.notifications is not None:
            await self.notifications.drop_mirrors(account)

    # --- Devices ---

    async def add_device(self, token: Optional[str]) -> Account:
        """Merge the two devices named by a sync token (claims device_id and device_id_2)."""
        payload = decode_token(token)
        if not payload.get("device_id_2"):
            raise Unauthorized("Invalid authorization token")
        return await self.merge_devices(payload["device_id"], payload["device_id_2"])

    async def merge_devices(self, device_id: str, other_device_id: str) -> Account:
        if not device_id or not other_device_id:
            raise BadRequest("Device id is required")

        account1 = await self.repository.find_by_device_id(device_id)
        account2 = await self.repository.find_by_device_id(other_device_id)

        if account1 is None and account2 is None:
            raise NotFound("No account owns either device")

        async with self.store.transaction() as session:
            if account1 is None:
                account1 = await self.repository.create(Account(devices=[Device(device_id=device_id)]), session=session)
            elif account2 is None:
                account2 = await self.repository.create(Account(devices=[Device(device_id=other_device_id)]), session=session)

            if account1.id == account2.id:
                raise BadRequest("Cannot merge an account with itself")

            merged = merge_accounts(account1, account2)

            for source_device_id in (device_id, other_device_id):
                deleted = await self.repository.delete_by_device_id(source_device_id, session=session)
                if deleted is None:
                    raise NotFound(f"Account for device {source_device_id} no longer exists")

            result = await self.repository.create(merged, session=session)

        logger.info("Merged accounts %s and %s into %s", account1.id, account2.id, result.id)
        if self.notifications is not None:
            await self.notifications.rekey_merged(result, [account1, account2])
        return result

    async def remove_device(self, device_id: str, target_device_id: str) -> Account:
        """
        Unbind `target_device_id` from the account addressed by `device_id`.

        Removing the last device deletes the account in the same transaction;
        the deleted account is returned in that case.
        """
        async with self.store.transaction() as session:
            both = and_(owns_device(device_id), owns_device(target_device_id))
            document = await self.store.find_one(AccountModel, both, session=session)
            if document is None:
                raise NotFound("Account/device pair not found")

            if all(d.device_id == target_device_id for d in document.devices):
                account = await self.repository.delete_by_id(document.id, session=session)
                deleted = True
            else:
                account = await self.repository.update_by_device_id(
                    device_id,
                    pull("devices", where=lambda d: d.device_id == target_device_id),
                    session=session,
                )
                deleted = False

        if deleted:
            logger.info("Removed last device %s, account %s deleted", target_device_id, account.id)
            await self._drop_mirrors(account)
        return account

    # --- Favorites ---

    async def toggle_favorite_line(self, device_id: str, line_id: str) -> Account:
        return await self._toggle_favorite(device_id, "favorite_lines", line_id)

    async def toggle_favorite_stop(self, device_id: str, stop_id: str) -> Account:
        return await self._toggle_favorite(device_id, "favorite_stops", stop_id)

    async def _toggle_favorite(self, device_id: str, field: str, value: str) -> Account:
        # read, branch, write: two overlapping toggles of the same id can both decide to add
        account = await self.repository.get_or_create_by_device_id(device_id)
        patch = pull(field, value) if value in getattr(account, field) else push(field, value)
        return await self.repository.update_by_device_id(device_id, patch)

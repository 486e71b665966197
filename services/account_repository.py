"""
Account repository on top of the generic document store.

Accounts are addressed by any of their device ids (the natural key); the
internal id is only used once an account has already been resolved.

Exclusive device ownership is enforced here, in create(): a new account is
refused if any of its device ids already belongs to another account.
"""
from typing import List, Optional
import logging

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from core.document_store import DocumentStore, Patch
from models.account import Account, Device
from models.db_models import AccountModel, DeviceModel

logger = logging.getLogger(__name__)


def owns_device(device_id: str):
    """Filter: accounts whose device list contains `device_id`."""
    return AccountModel.devices.any(DeviceModel.device_id == device_id)


def to_account(document: AccountModel) -> Account:
    return Account.model_validate(document)


def to_document(account: Account) -> dict:
    """Account -> constructor kwargs for AccountModel (identity and audit fields left to the store)."""
    data = account.model_dump(exclude={"id", "version", "created_at", "updated_at", "notifications"})
    data["notifications"] = [notification.model_dump(mode="json") for notification in account.notifications]
    return data


class AccountRepository:
    def __init__(self, store: DocumentStore):
        self.store = store

    async def find_by_device_id(self, device_id: str, session: Optional[AsyncSession] = None) -> Optional[Account]:
        document = await self.store.find_one(AccountModel, owns_device(device_id), session=session)
        return to_account(document) if document is not None else None

    async def list_all(self) -> List[Account]:
        return [to_account(d) for d in await self.store.find(AccountModel)]

    async def list_by_role(self, role: str) -> List[Account]:
        return [to_account(d) for d in await self.store.find(AccountModel, AccountModel.role == role)]

    async def create(self, account: Account, session: Optional[AsyncSession] = None) -> Account:
        """Insert `account`; Conflict if any of its devices already belongs to an account."""
        unique_filter = or_(*[owns_device(device_id) for device_id in account.device_ids()])
        document = await self.store.create_unique(AccountModel, to_document(account), unique_filter, session=session)
        logger.info("Created account %s for devices %s", document.id, account.device_ids())
        return to_account(document)

    async def get_or_create_by_device_id(self, device_id: str, session: Optional[AsyncSession] = None) -> Account:
        """
        Return the account owning `device_id`, creating a single-device account
        for it first when the device is unknown.
        """
        account = await self.find_by_device_id(device_id, session=session)
        if account is not None:
            return account
        logger.info("Unknown device %s, creating a fresh account", device_id)
        return await self.create(Account(devices=[Device(device_id=device_id)]), session=session)

    async def update_by_device_id(self, device_id: str, patch: Patch,
                                  session: Optional[AsyncSession] = None) -> Account:
        document = await self.store.update_one(AccountModel, owns_device(device_id), patch, session=session)
        return to_account(document)

    async def delete_by_device_id(self, device_id: str, session: Optional[AsyncSession] = None) -> Optional[Account]:
        document = await self.store.delete_one(AccountModel, owns_device(device_id), session=session)
        if document is None:
            return None
        logger.info("Deleted account %s (via device %s)", document.id, device_id)
        return to_account(document)

    async def delete_by_id(self, account_id: str, session: Optional[AsyncSession] = None) -> Optional[Account]:
        document = await self.store.delete_one(AccountModel, AccountModel.id == account_id, session=session)
        if document is None:
            return None
        logger.info("Deleted account %s", account_id)
        return to_account(document)

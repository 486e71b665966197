# services/notification_service.py
"""
Notification subscriptions of an account, mirrored to the smart notifications service.

Ordering: the local write is the source of truth and is committed first; the
remote call follows. If the remote call fails the caller gets the
UpstreamError, but the local change stays committed (no rollback, no retry).
The two stores converge on the next successful write of that notification.
"""
import logging
from datetime import datetime, timezone
from typing import List

from core.document_store import push
from core.exceptions import NotFound
from models.account import Account
from models.notification import Notification, NotificationIn
from services.account_repository import AccountRepository
from services.smart_notifications import SmartNotificationsClient, subscription_key

logger = logging.getLogger(__name__)


def _find(account: Account, notification_id: str) -> Notification:
    for notification in account.notifications:
        if notification.id == notification_id:
            return notification
    raise NotFound("Notification not found")


def _replace_notification(notification_id: str, payload: NotificationIn):
    def apply(document):
        for index, item in enumerate(document.notifications):
            if item.get("id") == notification_id:
                notification = Notification(
                    **payload.model_dump(),
                    id=notification_id,
                    created_at=item.get("created_at"),
                    updated_at=datetime.now(timezone.utc),
                )
                document.notifications[index] = notification.model_dump(mode="json")
                return
        raise NotFound("Notification not found")
    return apply


def _remove_notification(notification_id: str):
    def apply(document):
        remaining = [item for item in document.notifications if item.get("id") != notification_id]
        if len(remaining) == len(document.notifications):
            raise NotFound("Notification not found")
        document.notifications = remaining
    return apply


class NotificationService:
    def __init__(self, repository: AccountRepository, client: SmartNotificationsClient):
        self.repository = repository
        self.client = client

    @staticmethod
    def projection(account_id: str, notification: Notification) -> dict:
        """Body sent to POST /notifications."""
        return {**notification.model_dump(mode="json"), "user_id": account_id, "id": notification.id}

    async def _account(self, device_id: str) -> Account:
        account = await self.repository.find_by_device_id(device_id)
        if account is None:
            raise NotFound("Account not found")
        return account

    async def list_notifications(self, device_id: str) -> List[Notification]:
        return (await self._account(device_id)).notifications

    async def get_notification(self, device_id: str, notification_id: str) -> Notification:
        return _find(await self._account(device_id), notification_id)

    async def create_notification(self, device_id: str, payload: NotificationIn) -> Notification:
        notification = Notification(**payload.model_dump())
        account = await self.repository.update_by_device_id(
            device_id, push("notifications", notification.model_dump(mode="json"))
        )
        logger.info("Stored notification %s on account %s", notification.id, account.id)

        await self.client.upsert_notification(self.projection(account.id, notification))
        return notification

    async def update_notification(self, device_id: str, notification_id: str, payload: NotificationIn) -> Notification:
        account = await self.repository.update_by_device_id(device_id, _replace_notification(notification_id, payload))
        notification = _find(account, notification_id)
        logger.info("Updated notification %s on account %s", notification_id, account.id)

        await self.client.upsert_notification(self.projection(account.id, notification))
        return notification

    async def delete_notification(self, device_id: str, notification_id: str) -> Notification:
        existing = _find(await self._account(device_id), notification_id)
        account = await self.repository.update_by_device_id(device_id, _remove_notification(notification_id))
        logger.info("Removed notification %s from account %s", notification_id, account.id)

        await self.client.delete_notification(subscription_key(account.id, notification_id))
        return existing

    # --- Account lifecycle ---

    async def rekey_merged(self, merged: Account, sources: List[Account]) -> None:
        """
        Move the remote mirrors of a merged account to its new id.

        Every carried notification is upserted under `merged.id` first, then
        the source keys are deleted, so a failure part-way leaves an extra
        mirror rather than a missing one.
        """
        for notification in merged.notifications:
            await self.client.upsert_notification(self.projection(merged.id, notification))
        for source in sources:
            if source.id == merged.id:
                continue
            for notification in source.notifications:
                await self.client.delete_notification(subscription_key(source.id, notification.id))
        logger.info("Re-keyed %d notification(s) onto account %s", len(merged.notifications), merged.id)

    async def drop_mirrors(self, account: Account) -> None:
        """Delete the remote mirror of every notification of a deleted account."""
        for notification in account.notifications:
            await self.client.delete_notification(subscription_key(account.id, notification.id))

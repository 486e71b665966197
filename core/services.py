# core/services.py
"""
Process-wide service registry.

Built once at startup (build_services), attached to app.state.services and
torn down at shutdown (close). Route handlers and the auth dependency reach
services through the request's app, never through module globals.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from config.settings import Settings
from core.db import Database
from core.document_store import DocumentStore
from services.account_repository import AccountRepository
from services.accounts_service import AccountsService
from services.notification_service import NotificationService
from services.smart_notifications import SmartNotificationsClient

logger = logging.getLogger(__name__)


@dataclass
class Services:
    database: Database
    store: DocumentStore
    accounts: AccountsService
    notifications: NotificationService
    smart_notifications: SmartNotificationsClient

    async def close(self) -> None:
        await self.smart_notifications.aclose()
        await self.database.dispose()
        logger.info("Services closed")


def build_services(
    settings: Settings,
    database: Optional[Database] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Services:
    database = database or Database(settings.MYSQL_ASYNC_URL, echo=settings.DEBUG)
    store = DocumentStore(database)
    repository = AccountRepository(store)
    client = SmartNotificationsClient(
        settings.SMART_NOTIFICATIONS_URL,
        timeout=settings.SMART_NOTIFICATIONS_TIMEOUT,
        transport=transport,
    )
    notifications = NotificationService(repository, client)
    return Services(
        database=database,
        store=store,
        accounts=AccountsService(store, repository, notifications),
        notifications=notifications,
        smart_notifications=client,
    )

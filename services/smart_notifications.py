"""
HTTP client for the external smart notifications service.

The service owns delivery; this process only registers and removes
subscriptions:
- POST   /notifications                        upsert (body: notification + user_id + id)
- DELETE /notifications/{account_id}:{notification_id}

Non-2xx responses and transport failures are raised as UpstreamError.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from core.exceptions import UpstreamError

logger = logging.getLogger(__name__)


def subscription_key(account_id: str, notification_id: str) -> str:
    return f"{account_id}:{notification_id}"


class SmartNotificationsClient:
    def __init__(self, base_url: str, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Smart notifications %s %s failed: %s", method, path, e)
            raise UpstreamError(f"Smart notifications service unreachable: {e}") from e
        if not (200 <= resp.status_code < 300):
            message = resp.reason_phrase
            try:
                body = resp.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("message"):
                message = body["message"]
            logger.error("Smart notifications %s %s returned %s: %s", method, path, resp.status_code, message)
            raise UpstreamError(message, status_code=resp.status_code)
        return resp

    async def upsert_notification(self, payload: Dict[str, Any]) -> Any:
        resp = await self._request("POST", "/notifications", json=payload)
        logger.info("Upserted smart notification %s", subscription_key(payload["user_id"], payload["id"]))
        return resp.json() if resp.content else None

    async def delete_notification(self, key: str) -> None:
        await self._request("DELETE", f"/notifications/{key}")
        logger.info("Deleted smart notification %s", key)

    async def aclose(self) -> None:
        await self._client.aclose()

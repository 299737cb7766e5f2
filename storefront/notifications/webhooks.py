"""
Notifications sortantes (webhook générique type Zapier) pour les événements client.
- Une notification par événement significatif: inscription, achat.
- Charge utile minimale: nom, e-mail, total de commande (aucun identifiant de plateforme tierce).
- Fire-and-forget: un échec est journalisé puis ignoré, jamais remonté à l'utilisateur
  ni rejoué dans le parcours (le retry éventuel relève du destinataire).
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

import httpx

from storefront.config import WEBHOOK_TIMEOUT_SECONDS, WEBHOOK_URL
from storefront.errors import WebhookDeliveryFailed

logger = logging.getLogger(__name__)

CHECKOUT_SUCCESS = "checkout_success"
USER_SIGNUP = "user_signup"
EVENT_TYPES = {CHECKOUT_SUCCESS, USER_SIGNUP}
USER_AGENT = "Storefront-Webhook/1.0"

# module storefront.notifications.webhooks
def split_name(full_name: str) -> Dict[str, str]:
    parts = (full_name or "").strip().split()
    return {"first_name": parts[0] if parts else "", "last_name": " ".join(parts[1:])}

def build_payload(event_type: str, customer_name: str, customer_email: str,
                  order_total: Optional[int] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
    if event_type not in EVENT_TYPES:
        raise ValueError(f"event_type inconnu: {event_type}")
    payload: Dict[str, Any] = {
        "event_type": event_type,
        "timestamp": (now or datetime.now(timezone.utc)).isoformat(),
        "customer_data": {**split_name(customer_name), "email": customer_email},
    }
    if order_total is not None:
        payload["order_data"] = {"order_total": f"{order_total:.2f}"}
    return payload


class WebhookNotifier:
    """
    Émetteur de webhooks.
    - send: un POST, lève WebhookDeliveryFailed sur erreur réseau / statut non 2xx
    - dispatch: send + journalisation, ne lève jamais
    - fire_and_forget: planifie dispatch en tâche de fond (références conservées jusqu'à la fin)
    """

    def __init__(self, url: str = WEBHOOK_URL, timeout: float = WEBHOOK_TIMEOUT_SECONDS,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.timeout = timeout
        self._transport = transport
        self._tasks: Set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def send(self, payload: Dict[str, Any]) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.url, json=payload, headers={"User-Agent": USER_AGENT})
        except httpx.HTTPError as e:
            raise WebhookDeliveryFailed(f"{payload.get('event_type')}: {e}") from e
        if resp.status_code >= 300:
            raise WebhookDeliveryFailed(f"{payload.get('event_type')}: HTTP {resp.status_code}")

    async def dispatch(self, event_type: str, customer_name: str, customer_email: str,
                       order_total: Optional[int] = None) -> bool:
        if not self.enabled:
            logger.info("notifications.webhook skipped (no WEBHOOK_URL) event_type=%s", event_type)
            return False
        payload = build_payload(event_type, customer_name, customer_email, order_total)
        try:
            await self.send(payload)
        except WebhookDeliveryFailed:
            logger.warning("notifications.webhook delivery failed event_type=%s", event_type, exc_info=True)
            return False
        logger.info("notifications.webhook sent event_type=%s", event_type)
        return True

    def fire_and_forget(self, event_type: str, customer_name: str, customer_email: str,
                        order_total: Optional[int] = None) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(
            self.dispatch(event_type, customer_name, customer_email, order_total)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Attend les envois en cours (arrêt de l'application, tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

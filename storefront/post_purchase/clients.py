"""
Clients HTTP du parcours post-achat (httpx, asynchrones, bornés par un timeout).
- ConfirmationClient: GET /thank-you?order=... ; 404 -> OrderNotFound, 410 -> OrderExpired, sinon OrderUnavailable
- IntakeClient: statut du questionnaire (consultatif) et soumission (best-effort)
"""
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

import httpx

from storefront.config import BASE_URL, INTAKE_STATUS_TIMEOUT_SECONDS
from storefront.errors import IntakeCheckFailed, OrderExpired, OrderNotFound, OrderUnavailable
from storefront.orders.models import Confirmation, Order

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

def _auth_headers(token: Optional[str]) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"} if token else {}


class ConfirmationClient:
    def __init__(self, base_url: str = BASE_URL, timeout: float = DEFAULT_TIMEOUT,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    async def fetch(self, order_number: str) -> Confirmation:
        """
        - 404 -> OrderNotFound, 410 -> OrderExpired
        - erreur réseau, autre statut ou corps illisible -> OrderUnavailable (réessayable)
        """
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get("/thank-you", params={"order": order_number})
        except httpx.HTTPError as e:
            logger.warning("post_purchase.confirmation fetch failed order=%s", order_number, exc_info=True)
            raise OrderUnavailable(order_number, str(e)) from e
        if resp.status_code == 404:
            raise OrderNotFound(order_number)
        if resp.status_code == 410:
            raise OrderExpired(order_number)
        if resp.status_code != 200:
            logger.warning("post_purchase.confirmation status=%s order=%s", resp.status_code, order_number)
            raise OrderUnavailable(order_number, f"status={resp.status_code}")
        try:
            body = resp.json()
            return Confirmation(
                order=Order.from_dict(body["orderDetails"]),
                time_remaining=timedelta(milliseconds=int(body.get("timeRemaining") or 0)),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("post_purchase.confirmation unreadable body order=%s", order_number, exc_info=True)
            raise OrderUnavailable(order_number, str(e)) from e


class IntakeClient:
    """
    Accès au questionnaire pour l'utilisateur connecté.
    is_completed lève IntakeCheckFailed sur toute erreur: l'appelant saute l'étape, il ne la bloque pas.
    """

    def __init__(self, base_url: str = BASE_URL, token: Optional[str] = None,
                 timeout: float = INTAKE_STATUS_TIMEOUT_SECONDS,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url
        self.token = token
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=_auth_headers(self.token),
            transport=self._transport,
        )

    async def is_completed(self) -> bool:
        try:
            async with self._client() as client:
                resp = await client.get("/api/v1/intake-form/status")
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise IntakeCheckFailed(str(e)) from e
        if not isinstance(body, dict):
            raise IntakeCheckFailed(f"réponse illisible: {body!r}")
        completed = body.get("completed")
        if not isinstance(completed, bool):
            raise IntakeCheckFailed(f"statut illisible: {completed!r}")
        return completed

    async def submit(self, responses: Dict[str, Any]) -> bool:
        try:
            async with self._client() as client:
                resp = await client.post("/api/v1/intake-form/submit", json={"responses": responses})
            resp.raise_for_status()
        except httpx.HTTPError:
            logger.warning("post_purchase.intake submit failed", exc_info=True)
            return False
        return True

"""
Lecture à deux niveaux de la commande affichée après paiement.
1) numéro dans l'URL -> passerelle de confirmation (source durable)
2) sinon copie locale écrite à la redirection de paiement, lue une seule fois,
   puis promotion du numéro dans l'URL (un rafraîchissement repasse par la passerelle)
La copie locale suit la même fenêtre de confirmation que la passerelle.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from storefront.errors import OrderExpired, OrderNotFound
from storefront.orders.gateway import CONFIRMATION_WINDOW, expires_at
from storefront.orders.models import Confirmation, Order
from .clients import ConfirmationClient

logger = logging.getLogger(__name__)


class LocalOrderCache:
    def __init__(self):
        self._order: Optional[Order] = None

    def put(self, order: Order) -> None:
        self._order = order

    def take(self) -> Optional[Order]:
        order, self._order = self._order, None
        return order

    def clear(self) -> None:
        self._order = None

    def __bool__(self) -> bool:
        return self._order is not None


class OrderResolver:
    def __init__(self, client: ConfirmationClient, cache: LocalOrderCache,
                 promote: Optional[Callable[[str], None]] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 window: timedelta = CONFIRMATION_WINDOW):
        self.client = client
        self.cache = cache
        self._promote = promote
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._window = window

    async def resolve(self, order_number: Optional[str] = None) -> Confirmation:
        if order_number:
            self.cache.clear()
            return await self.client.fetch(order_number)

        order = self.cache.take()
        if order is None:
            raise OrderNotFound("")
        deadline = expires_at(order.created_at, self._window)
        now = self._clock()
        if now > deadline:
            raise OrderExpired(order.order_number)
        if self._promote is not None:
            self._promote(order.order_number)
        logger.info("post_purchase.resolver served cached order=%s", order.order_number)
        return Confirmation(order=order, time_remaining=deadline - now)

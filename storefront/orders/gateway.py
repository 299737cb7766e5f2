"""
Passerelle de confirmation: lecture d'une commande par son numéro public,
uniquement pendant la fenêtre de confirmation.

expires_at = order.created_at + fenêtre, recalculé à chaque lecture (jamais stocké),
donc toujours relatif à l'horodatage réel de la commande.
Borne: now == expires_at est encore visible (<= fenêtre).
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from storefront.config import CONFIRMATION_WINDOW_SECONDS
from storefront.errors import OrderExpired, OrderNotFound
from .models import Confirmation
from .store import OrderRecordStore

CONFIRMATION_WINDOW = timedelta(seconds=CONFIRMATION_WINDOW_SECONDS)

# module storefront.orders.gateway
def expires_at(created_at: datetime, window: timedelta = CONFIRMATION_WINDOW) -> datetime:
    return created_at + window

async def get_order_for_confirmation(
    store: OrderRecordStore,
    order_number: str,
    now: Optional[datetime] = None,
    window: timedelta = CONFIRMATION_WINDOW,
) -> Confirmation:
    """
    - OrderNotFound si aucun numéro ne correspond.
    - OrderExpired si now > created_at + fenêtre (les détails contiennent nom/e-mail:
      ils ne doivent pas rester accessibles en devinant un numéro dans l'URL).
    - Sinon la commande et le temps restant.
    """
    order = await store.get_by_number(order_number) if order_number else None
    if order is None:
        raise OrderNotFound(order_number)

    now = now or datetime.now(timezone.utc)
    deadline = expires_at(order.created_at, window)
    if now > deadline:
        raise OrderExpired(order_number)
    return Confirmation(order=order, time_remaining=deadline - now)

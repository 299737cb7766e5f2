"""
Store des commandes finalisées (numéro de commande -> Order).

- record_order est idempotent par payment_ref: un doublon (retry du webhook de la passerelle,
  confirmation manuelle concurrente) renvoie la commande existante.
- Deux implémentations: mémoire (verrou sans I/O) et Supabase (contrainte unique sur payment_ref).
"""
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from postgrest.exceptions import APIError
from starlette.concurrency import run_in_threadpool

import storefront.infra.supabase_client as supabase_client
from storefront.config import ORDER_NUMBER_PREFIX, ORDER_NUMBER_START
from storefront.pricing import PricedCart
from .models import Customer, Order

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
UNIQUE_VIOLATION = "23505"
MAX_NUMBER_ATTEMPTS = 5

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def format_order_number(n: int, prefix: str = ORDER_NUMBER_PREFIX) -> str:
    return f"{prefix}-{n:04d}"

def parse_order_number(order_number: str, prefix: str = ORDER_NUMBER_PREFIX) -> Optional[int]:
    head = f"{prefix}-"
    if not order_number or not order_number.startswith(head):
        return None
    try:
        return int(order_number[len(head):])
    except ValueError:
        return None


class OrderRecordStore(ABC):
    @abstractmethod
    async def record_order(self, cart: PricedCart, customer: Customer, payment_ref: str,
                           customer_ref: Optional[str] = None) -> Order:
        ...

    @abstractmethod
    async def get_by_number(self, order_number: str) -> Optional[Order]:
        ...

    @abstractmethod
    async def get_by_payment_ref(self, payment_ref: str) -> Optional[Order]:
        ...


class InMemoryOrderRecordStore(OrderRecordStore):
    def __init__(self, clock: Optional[Clock] = None, start: int = ORDER_NUMBER_START,
                 prefix: str = ORDER_NUMBER_PREFIX):
        self._clock = clock or utcnow
        self._prefix = prefix
        self._numbers = itertools.count(start)
        self._lock = threading.Lock()
        self._by_number: Dict[str, Order] = {}
        self._by_payment_ref: Dict[str, Order] = {}

    async def record_order(self, cart: PricedCart, customer: Customer, payment_ref: str,
                           customer_ref: Optional[str] = None) -> Order:
        if not payment_ref:
            raise ValueError("payment_ref requis")
        with self._lock:
            existing = self._by_payment_ref.get(payment_ref)
            if existing is not None:
                return existing
            order = Order.from_cart(
                order_number=format_order_number(next(self._numbers), self._prefix),
                cart=cart,
                customer=customer,
                payment_ref=payment_ref,
                created_at=self._clock(),
                customer_ref=customer_ref,
            )
            self._by_number[order.order_number] = order
            self._by_payment_ref[payment_ref] = order
        logger.info("orders.store recorded order_number=%s payment_ref=%s", order.order_number, payment_ref)
        return order

    async def get_by_number(self, order_number: str) -> Optional[Order]:
        with self._lock:
            return self._by_number.get(order_number)

    async def get_by_payment_ref(self, payment_ref: str) -> Optional[Order]:
        with self._lock:
            return self._by_payment_ref.get(payment_ref)

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_number)


def _row_to_order(row: Dict[str, Any]) -> Order:
    return Order.from_dict({
        "orderNumber": row["order_number"],
        "items": row.get("items") or [],
        "addOnItems": row.get("add_on_items") or [],
        "subtotal": row["subtotal"],
        "discount": row["discount"],
        "couponCode": row.get("coupon_code"),
        "couponDiscount": row.get("coupon_discount") or 0,
        "total": row["total"],
        "customerName": row.get("customer_name"),
        "customerEmail": row.get("customer_email"),
        "createdAt": row["created_at"],
        "paymentRef": row.get("payment_ref"),
        "customerRef": row.get("customer_ref"),
    })


class SupabaseOrderRecordStore(OrderRecordStore):
    """
    Table 'orders' (service-role). Contraintes uniques attendues: order_number, payment_ref.
    Le client supabase-py est synchrone: chaque appel passe par le threadpool de Starlette.
    """

    def __init__(self, client_factory: Optional[Callable[[], Any]] = None, clock: Optional[Clock] = None,
                 start: int = ORDER_NUMBER_START, prefix: str = ORDER_NUMBER_PREFIX):
        self._client = client_factory or supabase_client.get_service_supabase
        self._clock = clock or utcnow
        self._start = start
        self._prefix = prefix

    def _select_one(self, column: str, value: str) -> Optional[Order]:
        res = self._client().table("orders").select("*").eq(column, value).limit(1).execute()
        rows = res.data or []
        return _row_to_order(rows[0]) if rows else None

    def _next_number(self) -> int:
        res = (
            self._client()
            .table("orders")
            .select("order_number")
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        last = parse_order_number(rows[0].get("order_number"), self._prefix) if rows else None
        return (last + 1) if last is not None else self._start

    def _record_sync(self, cart: PricedCart, customer: Customer, payment_ref: str,
                     customer_ref: Optional[str]) -> Order:
        existing = self._select_one("payment_ref", payment_ref)
        if existing is not None:
            return existing

        for attempt in range(MAX_NUMBER_ATTEMPTS):
            order = Order.from_cart(
                order_number=format_order_number(self._next_number(), self._prefix),
                cart=cart,
                customer=customer,
                payment_ref=payment_ref,
                created_at=self._clock(),
                customer_ref=customer_ref,
            )
            row = {
                "order_number": order.order_number,
                "payment_ref": payment_ref,
                "customer_ref": customer_ref,
                "customer_name": customer.name,
                "customer_email": customer.email,
                "subtotal": order.subtotal,
                "discount": order.discount,
                "coupon_code": order.coupon_code,
                "coupon_discount": order.coupon_discount,
                "total": order.total,
                "items": [li.to_dict() for li in order.items],
                "add_on_items": [a.to_dict() for a in order.addon_items],
                "created_at": order.created_at.isoformat(),
            }
            try:
                self._client().table("orders").insert(row).execute()
                logger.info("orders.store recorded order_number=%s payment_ref=%s", order.order_number, payment_ref)
                return order
            except APIError as e:
                if getattr(e, "code", None) != UNIQUE_VIOLATION:
                    raise
                # Doublon: soit le même paiement a gagné la course, soit le numéro est pris
                existing = self._select_one("payment_ref", payment_ref)
                if existing is not None:
                    return existing
                logger.warning("orders.store order_number conflict attempt=%s number=%s", attempt + 1, order.order_number)

        raise RuntimeError(f"Impossible d'attribuer un numéro de commande (payment_ref={payment_ref})")

    async def record_order(self, cart: PricedCart, customer: Customer, payment_ref: str,
                           customer_ref: Optional[str] = None) -> Order:
        if not payment_ref:
            raise ValueError("payment_ref requis")
        return await run_in_threadpool(self._record_sync, cart, customer, payment_ref, customer_ref)

    async def get_by_number(self, order_number: str) -> Optional[Order]:
        return await run_in_threadpool(self._select_one, "order_number", order_number)

    async def get_by_payment_ref(self, payment_ref: str) -> Optional[Order]:
        return await run_in_threadpool(self._select_one, "payment_ref", payment_ref)

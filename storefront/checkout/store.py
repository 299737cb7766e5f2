"""
Store des sessions de checkout: id opaque -> instantané de panier pré-paiement.

Contrat:
- create(cart, customer_ref) -> session_id (non devinable)
- consume(session_id) -> PricedCart, une seule fois (compare-and-swap atomique)
  - SessionAlreadyConsumedError au second appel
  - SessionNotFoundError si inconnue ou expirée
- get(session_id) -> CheckoutSession, lecture sans consommation (validation côté page paiement)
Deux implémentations: mémoire (mono-process, verrou sans I/O) et Redis (script Lua + TTL natif).
"""
import json
import logging
import secrets
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from storefront.config import CHECKOUT_SESSION_TTL_SECONDS
from storefront.errors import SessionAlreadyConsumedError, SessionNotFoundError
from storefront.pricing import PricedCart
from .models import CheckoutSession

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class CheckoutSessionStore(ABC):
    @abstractmethod
    async def create(self, cart: PricedCart, customer_ref: Optional[str] = None) -> str:
        ...

    @abstractmethod
    async def consume(self, session_id: str) -> PricedCart:
        ...

    @abstractmethod
    async def get(self, session_id: str) -> CheckoutSession:
        ...

    async def purge_expired(self) -> int:
        """Éviction explicite; no-op si le backend expire lui-même les clés."""
        return 0

    async def close(self) -> None:
        return None


@dataclass
class _Entry:
    session: CheckoutSession
    consumed: bool = False


class InMemoryCheckoutSessionStore(CheckoutSessionStore):
    """
    Store mémoire. Le verrou ne protège que des opérations dict (aucune I/O),
    ce qui rend consume atomique entre threads et entre tâches asyncio.
    """

    def __init__(self, ttl_seconds: int = CHECKOUT_SESSION_TTL_SECONDS, clock: Optional[Clock] = None):
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or utcnow
        self._lock = threading.Lock()
        self._entries: Dict[str, _Entry] = {}

    def _expired(self, entry: _Entry, now: datetime) -> bool:
        return now - entry.session.created_at > self._ttl

    def _purge_locked(self, now: datetime) -> int:
        stale = [sid for sid, e in self._entries.items() if self._expired(e, now)]
        for sid in stale:
            del self._entries[sid]
        return len(stale)

    def _live_entry_locked(self, session_id: str, now: datetime) -> _Entry:
        entry = self._entries.get(session_id)
        if entry is None:
            raise SessionNotFoundError(session_id)
        if self._expired(entry, now):
            del self._entries[session_id]
            raise SessionNotFoundError(session_id)
        return entry

    async def create(self, cart: PricedCart, customer_ref: Optional[str] = None) -> str:
        now = self._clock()
        session = CheckoutSession(
            session_id=new_session_id(),
            cart=cart,
            customer_ref=customer_ref,
            created_at=now,
        )
        with self._lock:
            self._purge_locked(now)
            self._entries[session.session_id] = _Entry(session)
        return session.session_id

    async def consume(self, session_id: str) -> PricedCart:
        now = self._clock()
        with self._lock:
            entry = self._live_entry_locked(session_id, now)
            if entry.consumed:
                raise SessionAlreadyConsumedError(session_id)
            entry.consumed = True
            return entry.session.cart

    async def get(self, session_id: str) -> CheckoutSession:
        now = self._clock()
        with self._lock:
            entry = self._live_entry_locked(session_id, now)
            if entry.consumed:
                raise SessionAlreadyConsumedError(session_id)
            return entry.session

    async def purge_expired(self) -> int:
        with self._lock:
            return self._purge_locked(self._clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# 0 = inconnue/expirée, 2 = déjà consommée, 1 = consommée maintenant (+ données)
_CONSUME_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 0 then
  return {0}
end
if redis.call('HGET', KEYS[1], 'consumed') == '1' then
  return {2}
end
redis.call('HSET', KEYS[1], 'consumed', '1')
return {1, redis.call('HGET', KEYS[1], 'data')}
"""


class RedisCheckoutSessionStore(CheckoutSessionStore):
    """
    Store Redis partagé entre workers.
    - Une session = un hash {data, consumed} avec TTL natif (pas d’éviction manuelle).
    - consume exécute un script Lua: vérification + marquage en une seule opération atomique.
    """

    def __init__(self, redis_client, ttl_seconds: int = CHECKOUT_SESSION_TTL_SECONDS,
                 key_prefix: str = "checkout:session:", clock: Optional[Clock] = None):
        self._redis = redis_client
        self._ttl = ttl_seconds
        self._prefix = key_prefix
        self._clock = clock or utcnow
        self._consume = redis_client.register_script(_CONSUME_SCRIPT)

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}{session_id}"

    @staticmethod
    def _text(value) -> str:
        return value.decode("utf-8") if isinstance(value, bytes) else str(value)

    async def create(self, cart: PricedCart, customer_ref: Optional[str] = None) -> str:
        session = CheckoutSession(
            session_id=new_session_id(),
            cart=cart,
            customer_ref=customer_ref,
            created_at=self._clock(),
        )
        key = self._key(session.session_id)
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.hset(key, mapping={"data": json.dumps(session.to_dict()), "consumed": "0"})
            pipe.expire(key, self._ttl)
            await pipe.execute()
        return session.session_id

    async def consume(self, session_id: str) -> PricedCart:
        result = await self._consume(keys=[self._key(session_id)])
        status = int(result[0])
        if status == 0:
            raise SessionNotFoundError(session_id)
        if status == 2:
            raise SessionAlreadyConsumedError(session_id)
        return CheckoutSession.from_dict(json.loads(self._text(result[1]))).cart

    async def get(self, session_id: str) -> CheckoutSession:
        raw = await self._redis.hgetall(self._key(session_id))
        if not raw:
            raise SessionNotFoundError(session_id)
        fields = {self._text(k): self._text(v) for k, v in raw.items()}
        if fields.get("consumed") == "1":
            raise SessionAlreadyConsumedError(session_id)
        return CheckoutSession.from_dict(json.loads(fields["data"]))

    async def close(self) -> None:
        try:
            await self._redis.aclose()
        except Exception:
            logger.warning("checkout.store redis close failed", exc_info=True)

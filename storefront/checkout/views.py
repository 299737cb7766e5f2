# module storefront.checkout.views

"""Endpoints du checkout (pré-paiement).
- POST /sessions: price le panier et crée une session de checkout (anonyme autorisé, rate-limité).
- GET /sessions/{id}: valide une session sans la consommer (page de paiement).
Les erreurs d’intégrité (session inconnue/expirée/déjà utilisée) sont converties en 409
par les gestionnaires d’exceptions: l’utilisateur doit recommencer le checkout.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from storefront.stores import get_session_store
from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.security import get_optional_user
from .service import create_checkout_session
from .store import CheckoutSessionStore

router = APIRouter(prefix="/api/v1/checkout", tags=["Checkout API"])


class TrackPayload(BaseModel):
    id: str = Field(min_length=1)
    title: str = ""
    artist: str = ""
    image_url: str = ""
    url: str = ""


class CartItemPayload(BaseModel):
    track: TrackPayload
    package_id: str = Field(min_length=1)


class CreateSessionRequest(BaseModel):
    items: List[CartItemPayload] = Field(default_factory=list)
    addon_ids: List[str] = Field(default_factory=list)
    coupon_code: Optional[str] = None


@router.post("/sessions", dependencies=[Depends(optional_rate_limit(times=20, seconds=60))])
async def api_create_session(
    payload: CreateSessionRequest,
    store: CheckoutSessionStore = Depends(get_session_store),
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
):
    """Crée une session de checkout.
    Étapes:
    - Construit le panier (positions = ordre des items) et le price (remises, addons, coupon).
    - Stocke l’instantané et renvoie {"sessionId", "cart"}.
    - 400 si panier vide, package/addon inconnu, coupon invalide.
    """
    session_id, cart = await create_checkout_session(
        store,
        items=[item.model_dump() for item in payload.items],
        addon_ids=payload.addon_ids,
        coupon_code=payload.coupon_code,
        customer_ref=(user or {}).get("id"),
    )
    return {"sessionId": session_id, "cart": cart.to_dict()}


@router.get("/sessions/{session_id}")
async def api_validate_session(session_id: str, store: CheckoutSessionStore = Depends(get_session_store)):
    """Valide une session active sans la consommer et renvoie l’instantané du panier."""
    session = await store.get(session_id)
    return {"isValid": True, "cart": session.cart.to_dict()}

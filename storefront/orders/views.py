"""Consultation des commandes.
- GET /thank-you?order=...: lien partageable, limité à la fenêtre de confirmation (404/410 ensuite).
- GET /api/v1/orders/{order_number}: vue propriétaire authentifiée, sans limite de temps.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query

from storefront.stores import get_order_store
from storefront.utils.security import require_user
from .gateway import get_order_for_confirmation
from .store import OrderRecordStore

page_router = APIRouter(tags=["Orders"])
api_router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])


@page_router.get("/thank-you")
async def thank_you(order: str = Query(default=""), store: OrderRecordStore = Depends(get_order_store)):
    confirmation = await get_order_for_confirmation(store, order)
    return confirmation.to_dict()


@api_router.get("/{order_number}")
async def get_my_order(
    order_number: str,
    store: OrderRecordStore = Depends(get_order_store),
    user: Dict[str, Any] = Depends(require_user),
):
    """Commande de l’utilisateur connecté (propriétaire par customer_ref ou e-mail), 404 sinon."""
    order = await store.get_by_number(order_number)
    if order is None:
        raise HTTPException(status_code=404, detail="Commande introuvable")
    email = (user.get("email") or "").lower()
    owns = (order.customer_ref and order.customer_ref == user.get("id")) or (
        email and order.customer_email.lower() == email
    )
    if not owns:
        raise HTTPException(status_code=404, detail="Commande introuvable")
    return {"orderDetails": order.to_dict()}

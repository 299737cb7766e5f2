import logging
from typing import Any, Dict, Optional

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, Field

from storefront.checkout.store import CheckoutSessionStore
from storefront.orders.models import Customer
from storefront.orders.store import OrderRecordStore
from storefront.stores import get_order_store, get_session_store
from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.security import get_optional_user
from . import service as payments_service
from . import stripe_client

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])


class StartPaymentRequest(BaseModel):
    session_id: str = Field(min_length=1)
    customer_name: str = ""
    customer_email: str = ""


def _thank_you_url(order_number: str) -> str:
    return f"/thank-you?order={order_number}"

# module storefront.payments.views
@router.post("/checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def create_payment(
    request: Request,
    payload: StartPaymentRequest,
    session_store: CheckoutSessionStore = Depends(get_session_store),
    order_store: OrderRecordStore = Depends(get_order_store),
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
):
    """
    Démarre le paiement d’une session de checkout.
    - Entrée JSON: { "session_id": "<checkout session>", "customer_name"?, "customer_email"? }
    - Total nul: commande enregistrée directement, réponse {"free": true, "orderNumber", "redirect"}
    - Sinon: session Stripe créée, réponse {"id", "url"}
    - Erreurs: 409 si la session est inconnue/expirée/déjà utilisée, 400 si Stripe refuse
    """
    user = user or {}
    session = await session_store.get(payload.session_id)
    if session.cart.total == 0:
        customer = Customer(
            name=payload.customer_name or user.get("name") or "",
            email=payload.customer_email or user.get("email") or "",
        )
        order = await payments_service.finalize_free_order(
            session_store, order_store, payload.session_id, customer,
            customer_ref=session.customer_ref or user.get("id"),
        )
        return {"free": True, "orderNumber": order.order_number, "redirect": _thank_you_url(order.order_number)}

    base = str(request.base_url).rstrip("/")
    success_url = f"{base}{router.prefix}/confirm?session_id={{CHECKOUT_SESSION_ID}}"
    cancel_url = f"{base}/checkout?sessionId={payload.session_id}"
    try:
        stripe_session = await payments_service.start_payment(
            session_store, payload.session_id, success_url, cancel_url,
            customer_email=payload.customer_email or user.get("email"),
        )
    except stripe.StripeError as e:
        logger.exception("payments.create_payment stripe failed session_id=%s", payload.session_id)
        raise HTTPException(status_code=400, detail=f"Erreur Stripe: {e}")
    return JSONResponse({"id": stripe_session.get("id"), "url": stripe_session.get("url")})

@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(
    request: Request,
    session_store: CheckoutSessionStore = Depends(get_session_store),
    order_store: OrderRecordStore = Depends(get_order_store),
):
    """
    Webhook Stripe: consomme checkout.session.completed pour enregistrer la commande.
    - Signature: valide via stripe_client.parse_event (Stripe-Signature + STRIPE_WEBHOOK_SECRET)
    - Idempotent: un retry de Stripe renvoie la même commande
    - Réponses: {"status": "ok", "orderNumber"} ou {"status": "ignored"}
    - Erreurs: 400 si signature/payload invalide
    """
    try:
        event = await stripe_client.parse_event(request)
    except (ValueError, stripe.SignatureVerificationError):
        logger.warning("payments.webhook invalid payload or signature")
        raise HTTPException(status_code=400, detail="Invalid Stripe webhook payload")
    if event.get("type") != stripe_client.COMPLETED_EVENT:
        return JSONResponse({"status": "ignored"})
    data = stripe_client.as_dict(event.get("data"))
    order = await payments_service.finalize_stripe_session(
        session_store, order_store, stripe_client.as_dict(data.get("object")),
    )
    logger.info("payments.webhook order=%s", order.order_number)
    return JSONResponse({"status": "ok", "orderNumber": order.order_number})

@router.get("/confirm")
async def confirm_checkout(
    session_id: str,
    session_store: CheckoutSessionStore = Depends(get_session_store),
    order_store: OrderRecordStore = Depends(get_order_store),
):
    """
    Retour de Stripe (success_url): confirme la session et redirige vers la page de remerciement.
    - Enregistre la commande si le webhook ne l’a pas déjà fait
    - 303 vers /thank-you?order=<numéro>
    """
    try:
        order = await payments_service.confirm_stripe_session(session_store, order_store, session_id)
    except stripe.StripeError as e:
        logger.exception("payments.confirm stripe failed session_id=%s", session_id)
        raise HTTPException(status_code=400, detail=f"Erreur Stripe: {e}")
    return RedirectResponse(url=_thank_you_url(order.order_number), status_code=status.HTTP_303_SEE_OTHER)

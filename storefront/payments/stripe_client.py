"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
Les objets Stripe sont convertis en dict avant de quitter ce module.
"""
from typing import Any, Dict, List, Optional

import stripe
from fastapi import Request

from storefront.config import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET

COMPLETED_EVENT = "checkout.session.completed"
PAID_STATUSES = {"paid", "no_payment_required"}

# module storefront.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l’emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY si disponible.
    - En absence de clé, les appels Stripe échouent côté SDK (No API key provided).
    """
    if STRIPE_SECRET_KEY:
        stripe.api_key = STRIPE_SECRET_KEY
    return stripe

def as_dict(obj: Any) -> Dict[str, Any]:
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return obj
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return dict(obj)

def create_session(
    *,
    line_items: List[Dict[str, Any]],
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, Any],
    customer_email: Optional[str] = None,
    client_reference_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout (mode "payment").
    - metadata: {"checkout_session_id": "...", "customer_ref": "..."}; jamais le panier lui-même
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    params: Dict[str, Any] = {
        "line_items": line_items,
        "mode": "payment",
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": metadata,
        "payment_method_types": ["card"],
    }
    if customer_email:
        params["customer_email"] = customer_email
    if client_reference_id:
        params["client_reference_id"] = client_reference_id
    return as_dict(stripe.checkout.Session.create(**params))

def get_session(session_id: str) -> Dict[str, Any]:
    """
    Récupère une session Stripe Checkout par son identifiant.
    Retour: dict session incluant "id", "payment_status", "payment_intent", "metadata", "customer_details".
    """
    require_stripe()
    return as_dict(stripe.checkout.Session.retrieve(session_id))

async def parse_event(request: Request) -> Dict[str, Any]:
    """
    Parse et valide un événement Stripe signé (webhook).
    - Lit le body brut + en-tête Stripe-Signature
    - Valide la signature via Webhook.construct_event (STRIPE_WEBHOOK_SECRET)
    Lève ValueError (payload) ou stripe.SignatureVerificationError (signature).
    """
    require_stripe()
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature") or ""
    event = stripe.Webhook.construct_event(payload, sig_header, STRIPE_WEBHOOK_SECRET or "")
    return as_dict(event)

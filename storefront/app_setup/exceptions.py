"""
Gestionnaires d’exceptions métier.
- Entrées invalides (panier vide, package/addon inconnu, coupon invalide, paiement non confirmé): 400
- Intégrité du checkout (session introuvable/expirée/déjà utilisée): 409 + restart_checkout
- Commande introuvable: 404 ; fenêtre de confirmation dépassée: 410 + lien vers le tableau de bord
Les erreurs best-effort (intake, webhook) sont traitées au point d’appel et n’arrivent jamais ici.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from storefront.config import DASHBOARD_PATH
from storefront.errors import (
    CheckoutIntegrityError,
    EmptyCartError,
    InvalidCouponError,
    OrderExpired,
    OrderNotFound,
    PaymentNotConfirmedError,
    UnknownAddonError,
    UnknownPackageError,
)

logger = logging.getLogger(__name__)

BAD_REQUEST_ERRORS = (
    EmptyCartError,
    UnknownPackageError,
    UnknownAddonError,
    InvalidCouponError,
    PaymentNotConfirmedError,
)

def register_exception_handlers(app: FastAPI) -> None:
    async def bad_request(request: Request, exc: Exception):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    for exc_class in BAD_REQUEST_ERRORS:
        app.add_exception_handler(exc_class, bad_request)

    @app.exception_handler(CheckoutIntegrityError)
    async def checkout_integrity(request: Request, exc: CheckoutIntegrityError):
        logger.info("checkout integrity error reason=%s path=%s", exc.reason, request.url.path)
        return JSONResponse(
            status_code=409,
            content={"detail": str(exc), "reason": exc.reason, "restart_checkout": True},
        )

    @app.exception_handler(OrderNotFound)
    async def order_not_found(request: Request, exc: OrderNotFound):
        return JSONResponse(status_code=404, content={"detail": str(exc), "expired": False})

    @app.exception_handler(OrderExpired)
    async def order_expired(request: Request, exc: OrderExpired):
        return JSONResponse(
            status_code=410,
            content={"detail": str(exc), "expired": True, "dashboard_url": DASHBOARD_PATH},
        )

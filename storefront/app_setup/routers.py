"""
Registre central des routers.
- Pages: /thank-you
- API v1: catalogue, coupons, checkout, paiements, commandes, questionnaire, événements
- Health: /health
"""
from fastapi import FastAPI

from storefront.catalog import views as catalog_views
from storefront.checkout import views as checkout_views
from storefront.coupons import views as coupons_views
from storefront.health.router import router as health_router
from storefront.intake import views as intake_views
from storefront.notifications import views as notifications_views
from storefront.orders import views as orders_views
from storefront.payments import views as payments_views

def register_routers(app: FastAPI) -> None:
    # Pages
    app.include_router(orders_views.page_router)
    # API v1
    app.include_router(catalog_views.router)
    app.include_router(coupons_views.router)
    app.include_router(checkout_views.router)
    app.include_router(payments_views.router)
    app.include_router(orders_views.api_router)
    app.include_router(intake_views.router)
    app.include_router(notifications_views.router)
    # Health & monitoring
    app.include_router(health_router)

"""
ASGI entrypoint: expose `app` pour les process managers / déploiements.
Un serveur ASGI importe `storefront.asgi:app`; toute la configuration est dans app_setup.factory.
"""
import logging
import os

from storefront.app_setup.factory import create_app

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "info").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()

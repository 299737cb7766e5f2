# module storefront.catalog.views
from fastapi import APIRouter

from .data import ADDONS, PACKAGES

router = APIRouter(prefix="/api/v1/catalog", tags=["Catalog API"])


@router.get("")
def get_catalog():
    """Liste publique des packages et addons (hydrate la page de sélection)."""
    return {
        "packages": [p.to_dict() for p in PACKAGES],
        "addons": [a.to_dict() for a in ADDONS],
    }

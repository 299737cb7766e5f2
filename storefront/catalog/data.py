"""
Catalogue statique (lecture seule) des packages de promotion et des addons.
Les prix sont des entiers dans l'unité de la devise (ex: 39 = 39 USD);
la conversion en centimes n'a lieu qu'au moment du passage à Stripe.
"""
from typing import Dict, List

from storefront.errors import UnknownAddonError, UnknownPackageError
from .models import Addon, Package

# module storefront.catalog.data
PACKAGES: List[Package] = [
    Package("test", "TEST", 1, "Test Package", "For Testing Only", "Package de test à 1$"),
    Package("legendary", "LEGENDARY", 479, "125,000 - 150,000 Streams", "375 - 400 Playlist Pitches", "Legendary status"),
    Package("unstoppable", "UNSTOPPABLE", 259, "45,000 - 50,000 Streams", "150 - 170 Playlist Pitches", "Become unstoppable"),
    Package("dominate", "DOMINATE", 149, "18,000 - 20,000 Streams", "60 - 70 Playlist Pitches", "Dominate the charts"),
    Package("momentum", "MOMENTUM", 79, "7,500 - 8,500 Streams", "25 - 30 Playlist Pitches", "Build your momentum"),
    Package("breakthrough", "BREAKTHROUGH", 39, "3,000 - 3,500 Streams", "10 - 12 Playlist Pitches", "Perfect for getting started"),
]

ADDONS: List[Addon] = [
    Addon("express-launch", "EXPRESS: 8hr Rapid Launch", "⚡️", 14, is_on_sale=True, original_price=28),
    Addon("discover-weekly-push", "Guaranteed 'Discover Weekly' Push", "🔥", 19, is_on_sale=True, original_price=38),
]

_PACKAGES_BY_ID: Dict[str, Package] = {p.id: p for p in PACKAGES}
_ADDONS_BY_ID: Dict[str, Addon] = {a.id: a for a in ADDONS}


def get_package(package_id: str) -> Package:
    try:
        return _PACKAGES_BY_ID[package_id]
    except KeyError:
        raise UnknownPackageError(package_id) from None


def get_addon(addon_id: str) -> Addon:
    try:
        return _ADDONS_BY_ID[addon_id]
    except KeyError:
        raise UnknownAddonError(addon_id) from None


def get_addons(addon_ids: List[str]) -> List[Addon]:
    """
    Résout une sélection d'addons en conservant l'ordre et en ignorant les doublons.
    - Soulève UnknownAddonError sur un id inconnu.
    """
    seen = set()
    addons: List[Addon] = []
    for addon_id in addon_ids or []:
        if addon_id in seen:
            continue
        seen.add(addon_id)
        addons.append(get_addon(addon_id))
    return addons

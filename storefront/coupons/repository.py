"""
Accès aux données pour la feature 'coupons' (table 'coupons').
"""
import logging
from typing import Any, Dict, Optional

import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

# module storefront.coupons.repository
def get_coupon_by_code(code: str) -> Optional[Dict[str, Any]]:
    """
    Récupère un coupon par son code normalisé.
    - Retourne None si introuvable ou en cas d’erreur (un coupon illisible est traité comme invalide).
    """
    if not code:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("coupons")
            .select("*")
            .eq("code", code)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("coupons.repository.get_coupon_by_code failed code=%s", code)
        return None

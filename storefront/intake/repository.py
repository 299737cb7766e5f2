"""Accès aux données (Supabase) pour le questionnaire d'accueil.
- Statut: RPC check_intake_form_status(user_id) -> bool
- Soumission: insert intake_form_responses puis RPC mark_intake_form_completed(user_id)
Lecture: None en cas d'erreur (l'appelant décide, le parcours client échoue « ouvert »).
Écriture: False en cas d'erreur.
"""
import logging
from typing import Any, Dict, Optional

import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def get_intake_status(user_id: str) -> Optional[bool]:
    if not user_id:
        return None
    try:
        res = supabase_client.get_service_supabase().rpc("check_intake_form_status", {"user_id": user_id}).execute()
        return bool(res.data)
    except Exception:
        logger.exception("intake.repository.get_intake_status failed user_id=%s", user_id)
        return None

def save_responses(user_id: str, responses: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Insère la ligne de réponses puis marque le drapeau. Retourne la ligne insérée ou None."""
    try:
        client = supabase_client.get_service_supabase()
        res = client.table("intake_form_responses").insert({"user_id": user_id, "responses": responses}).execute()
        rows = res.data or []
        client.rpc("mark_intake_form_completed", {"user_id": user_id}).execute()
        return rows[0] if rows else {}
    except Exception:
        logger.exception("intake.repository.save_responses failed user_id=%s", user_id)
        return None

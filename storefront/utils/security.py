from fastapi import Request, HTTPException, Depends
from typing import Optional, Dict, Any
import logging

import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

COOKIE_NAME = "sb_access"

def _token_from_request(request: Request) -> Optional[str]:
    # Hybride: priorité au Bearer, fallback cookie
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return request.cookies.get(COOKIE_NAME) or None

def get_user_from_token(token: str) -> Dict[str, Any]:
    """
    Résout l'utilisateur auprès du fournisseur d'auth (Supabase Auth).
    Retour: {"id", "email", "name"}; lève si le token est invalide.
    """
    res = supabase_client.get_supabase().auth.get_user(token)
    user = getattr(res, "user", None)
    if not user or not getattr(user, "id", None):
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")
    metadata = getattr(user, "user_metadata", None) or {}
    return {
        "id": user.id,
        "email": getattr(user, "email", None),
        "name": metadata.get("full_name") or metadata.get("name") or "",
    }

def get_optional_user(request: Request) -> Optional[Dict[str, Any]]:
    """Checkout anonyme autorisé: None si pas de token ou token invalide."""
    token = _token_from_request(request)
    if not token:
        return None
    try:
        return get_user_from_token(token)
    except Exception:
        logger.info("security.get_optional_user invalid token, continuing anonymously")
        return None

def get_current_user(request: Request) -> Dict[str, Any]:
    token = _token_from_request(request)
    if not token:
        raise HTTPException(status_code=401, detail="Non authentifié")
    try:
        return get_user_from_token(token)
    except HTTPException:
        raise
    except Exception:
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")

def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user

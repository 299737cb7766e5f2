"""Événements client déclenchés côté serveur.
L’achat est notifié par le parcours post-achat (une seule fois par commande);
l’inscription passe par ici, en tâche de fond après la réponse.
"""
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends

from storefront.stores import get_notifier
from storefront.utils.security import require_user
from .webhooks import USER_SIGNUP, WebhookNotifier

router = APIRouter(prefix="/api/v1/events", tags=["Events API"])


@router.post("/signup", status_code=202)
async def signup_event(
    background_tasks: BackgroundTasks,
    user: Dict[str, Any] = Depends(require_user),
    notifier: WebhookNotifier = Depends(get_notifier),
):
    background_tasks.add_task(notifier.dispatch, USER_SIGNUP, user.get("name") or "", user.get("email") or "")
    return {"accepted": True, "enabled": notifier.enabled}

from typing import Any, Dict
from fastapi import Request, Response, HTTPException
import os
import time
import hashlib
import logging
from storefront.utils.security import COOKIE_NAME

logger = logging.getLogger(__name__)

def _client_key(req: Request) -> str:
    # Priorité: cookie de session (hashé) puis IP, toujours par chemin
    token = req.cookies.get(COOKIE_NAME)
    path = req.url.path
    if token:
        h = hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
        return f"user:{h}:{path}"
    ip = req.client.host if req.client else "local"
    return f"ip:{ip}:{path}"

def _local_hit(request: Request, times: int, seconds: int) -> None:
    """Fenêtre glissante en mémoire (dev / secours si Redis indisponible)."""
    now = time.time()
    key = _client_key(request)
    store = getattr(request.app.state, "_rl_store", {})
    # Entrées: clé -> (fenêtre, horodatages); une clé sans hit récent est retirée
    for stale in [k for k, (window, ts) in store.items() if not ts or now - ts[-1] >= window]:
        del store[stale]
    hits = [t for t in store.get(key, (seconds, []))[1] if now - t < seconds]
    if len(hits) >= times:
        store[key] = (seconds, hits)
        request.app.state._rl_store = store
        raise HTTPException(status_code=429, detail="Too Many Requests")
    hits.append(now)
    store[key] = (seconds, hits)
    request.app.state._rl_store = store

def optional_rate_limit(times: int, seconds: int):
    """
    Dépendance de rate limiting tolérante:
    - LOCAL_RATE_LIMIT_FALLBACK=1: fenêtre mémoire
    - app.state.rate_limit_enabled False: désactivé
    - sinon fastapi-limiter (Redis); une erreur du limiter ne bloque jamais la requête
    """
    async def _dep(request: Request, response: Response):
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            _local_hit(request, times, seconds)
            return

        if getattr(request.app.state, "rate_limit_enabled", None) is False:
            return

        try:
            from fastapi_limiter.depends import RateLimiter

            async def _identifier(req: Request) -> str:
                return _client_key(req)
            return await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request, response)
        except HTTPException:
            raise
        except Exception:
            logger.debug("rate limiter unavailable, request allowed", exc_info=True)
            return
    return _dep

def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)
    try:
        from fastapi_limiter import FastAPILimiter
        ready = getattr(FastAPILimiter, "redis", None) is not None
    except Exception:
        ready = False
    return {
        "enabled": (bool(enabled) if enabled is not None else None),
        "ready": ready,
        "backend": "redis" if ready else None,
    }

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from storefront.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root():
    return {"ok": True}

@router.get("/stores")
def health_stores(request: Request):
    state = request.app.state
    return JSONResponse({
        "checkout_sessions": type(state.session_store).__name__,
        "orders": type(state.order_store).__name__,
        "webhook_enabled": state.notifier.enabled,
        "rate_limit": rate_limit_health_info(request),
    })

# module storefront.coupons.views
from fastapi import APIRouter
from pydantic import BaseModel, Field

from .service import resolve_coupon

router = APIRouter(prefix="/api/v1/coupons", tags=["Coupons API"])


class ValidateCouponRequest(BaseModel):
    coupon_code: str = Field(min_length=1)
    order_amount: int = Field(gt=0)


@router.post("/validate")
def validate_coupon(payload: ValidateCouponRequest):
    """
    Valide un code promo pour un montant donné (sous-total après remises).
    - 200: {"valid": true, "coupon": {"code", "calculated_discount"}}
    - 400: InvalidCouponError (via le handler d’exceptions)
    """
    coupon = resolve_coupon(payload.coupon_code, payload.order_amount)
    return {
        "valid": True,
        "coupon": {"code": coupon.code, "calculated_discount": coupon.discount_amount},
    }

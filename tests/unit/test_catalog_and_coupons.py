from datetime import datetime, timedelta, timezone

import pytest

from storefront.catalog.data import get_addon, get_addons, get_package
from storefront.catalog.models import Addon
from storefront.coupons import service as coupons_service
from storefront.coupons.repository import get_coupon_by_code
from storefront.errors import InvalidCouponError, UnknownAddonError, UnknownPackageError


def test_get_package_and_unknown():
    assert get_package("legendary").unit_price == 479
    with pytest.raises(UnknownPackageError) as exc:
        get_package("nope")
    assert exc.value.package_id == "nope"


def test_get_addons_dedupes_and_keeps_order():
    addons = get_addons(["discover-weekly-push", "express-launch", "discover-weekly-push"])
    assert [a.id for a in addons] == ["discover-weekly-push", "express-launch"]
    with pytest.raises(UnknownAddonError):
        get_addon("nope")


def test_addon_sale_requires_original_price():
    with pytest.raises(ValueError):
        Addon("x", "X", "*", 10, is_on_sale=True)
    with pytest.raises(ValueError):
        Addon("x", "X", "*", 10, original_price=20)


def _coupon_row(**overrides):
    row = {
        "code": "SAVE10",
        "discount_type": "percentage",
        "discount_value": 10,
        "is_active": True,
        "expires_at": None,
        "max_uses": None,
        "current_uses": 0,
        "min_order_amount": 0,
    }
    row.update(overrides)
    return row


@pytest.fixture
def coupon_row(monkeypatch):
    rows = {}
    monkeypatch.setattr("storefront.coupons.service.repository.get_coupon_by_code", lambda code: rows.get(code))
    return rows


def test_percentage_coupon_is_floored(coupon_row):
    coupon_row["SAVE10"] = _coupon_row()

    coupon = coupons_service.resolve_coupon("  save10 ", 199)

    assert coupon.code == "SAVE10"
    assert coupon.discount_amount == 19


def test_flat_coupon(coupon_row):
    coupon_row["FLAT50"] = _coupon_row(code="FLAT50", discount_type="flat", discount_value=50)

    assert coupons_service.resolve_coupon("FLAT50", 39).discount_amount == 50


def test_coupon_expiry_accepts_trimmed_fraction(coupon_row):
    coupon_row["SAVE10"] = _coupon_row(expires_at="2026-10-19T07:30:00.12345+00:00")

    before = datetime(2026, 10, 19, 7, 30, tzinfo=timezone.utc)
    after = datetime(2026, 10, 19, 7, 31, tzinfo=timezone.utc)

    assert coupons_service.resolve_coupon("SAVE10", 199, now=before).discount_amount == 19
    with pytest.raises(InvalidCouponError):
        coupons_service.resolve_coupon("SAVE10", 199, now=after)


@pytest.mark.parametrize("overrides, message", [
    ({"is_active": False}, "invalide"),
    ({"expires_at": (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()}, "expiré"),
    ({"max_uses": 3, "current_uses": 3}, "plus disponible"),
    ({"min_order_amount": 500}, "minimum"),
    ({"discount_type": "bogus"}, "invalide"),
])
def test_coupon_rejections(coupon_row, overrides, message):
    coupon_row["SAVE10"] = _coupon_row(**overrides)

    with pytest.raises(InvalidCouponError) as exc:
        coupons_service.resolve_coupon("SAVE10", 199)
    assert message in str(exc.value)


def test_unknown_or_empty_coupon(coupon_row):
    with pytest.raises(InvalidCouponError):
        coupons_service.resolve_coupon("NOPE", 100)
    with pytest.raises(InvalidCouponError):
        coupons_service.resolve_coupon("   ", 100)
    with pytest.raises(InvalidCouponError):
        coupons_service.resolve_coupon("SAVE10", 0)


def test_repository_returns_none_on_error(mock_supabase):
    mock_supabase.table.side_effect = RuntimeError("boom")
    assert get_coupon_by_code("SAVE10") is None


def test_repository_reads_first_row(mock_supabase):
    mock_supabase.table.return_value.select.return_value.eq.return_value.limit.return_value.execute.return_value.data = [
        {"code": "SAVE10"}
    ]
    assert get_coupon_by_code("SAVE10") == {"code": "SAVE10"}
    mock_supabase.table.assert_called_with("coupons")

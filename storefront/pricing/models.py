"""
Types du moteur de prix.
Tous les montants sont des entiers (unité de la devise du catalogue).
Les instantanés (PricedCart) se sérialisent en dict JSON pour transiter par les stores.
"""
from dataclasses import dataclass, field, replace
from itertools import count
from typing import Any, Dict, List, Optional

from storefront.catalog.models import Addon, Package


@dataclass(frozen=True)
class TrackRef:
    """Référence opaque vers un titre externe (id/titre/artiste/visuel)."""
    id: str
    title: str = ""
    artist: str = ""
    image_url: str = ""
    url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "imageUrl": self.image_url,
            "url": self.url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrackRef":
        return cls(
            id=str(data.get("id") or ""),
            title=str(data.get("title") or ""),
            artist=str(data.get("artist") or ""),
            image_url=str(data.get("imageUrl") or data.get("image_url") or ""),
            url=str(data.get("url") or ""),
        )


@dataclass(frozen=True)
class CartLineItem:
    track: TrackRef
    package: Package
    position_index: int

    def __post_init__(self):
        if self.position_index < 0:
            raise ValueError("position_index doit être >= 0")


@dataclass(frozen=True)
class PricedLineItem:
    track: TrackRef
    package: Package
    position_index: int
    original_price: int
    discounted_price: int
    is_discounted: bool

    @property
    def markdown(self) -> int:
        return self.original_price - self.discounted_price

    def to_dict(self) -> Dict[str, Any]:
        return {
            "track": self.track.to_dict(),
            "package": self.package.to_dict(),
            "positionIndex": self.position_index,
            "originalPrice": self.original_price,
            "discountedPrice": self.discounted_price,
            "isDiscounted": self.is_discounted,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PricedLineItem":
        pkg = data.get("package") or {}
        return cls(
            track=TrackRef.from_dict(data.get("track") or {}),
            package=Package(
                id=str(pkg.get("id") or ""),
                display_name=str(pkg.get("name") or ""),
                unit_price=int(pkg.get("price") or 0),
                stream_range_label=str(pkg.get("plays") or ""),
                placement_range_label=str(pkg.get("placements") or ""),
                description=str(pkg.get("description") or ""),
            ),
            position_index=int(data.get("positionIndex") or 0),
            original_price=int(data["originalPrice"]),
            discounted_price=int(data["discountedPrice"]),
            is_discounted=bool(data.get("isDiscounted")),
        )


@dataclass(frozen=True)
class Coupon:
    code: str
    discount_amount: int

    def __post_init__(self):
        if self.discount_amount < 0:
            raise ValueError("discount_amount doit être >= 0")


@dataclass(frozen=True)
class PricedCart:
    line_items: List[PricedLineItem]
    addon_items: List[Addon]
    subtotal: int
    discount: int
    coupon_code: Optional[str]
    coupon_discount: int
    total: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [li.to_dict() for li in self.line_items],
            "addOnItems": [a.to_dict() for a in self.addon_items],
            "subtotal": self.subtotal,
            "discount": self.discount,
            "couponCode": self.coupon_code,
            "couponDiscount": self.coupon_discount,
            "total": self.total,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PricedCart":
        return cls(
            line_items=[PricedLineItem.from_dict(li) for li in data.get("items") or []],
            addon_items=[Addon.from_dict(a) for a in data.get("addOnItems") or []],
            subtotal=int(data["subtotal"]),
            discount=int(data["discount"]),
            coupon_code=data.get("couponCode"),
            coupon_discount=int(data.get("couponDiscount") or 0),
            total=int(data["total"]),
        )


@dataclass
class Cart:
    """
    Panier en construction côté checkout.
    - Chaque ajout reçoit la position suivante; une position n'est jamais recalculée
      (retirer ou modifier un autre article ne décale rien).
    """
    items: List[CartLineItem] = field(default_factory=list)
    _positions: Any = field(default_factory=count, repr=False)

    def add(self, track: TrackRef, package: Package) -> CartLineItem:
        item = CartLineItem(track=track, package=package, position_index=next(self._positions))
        self.items.append(item)
        return item

    def remove(self, position_index: int) -> None:
        self.items = [it for it in self.items if it.position_index != position_index]

    def change_package(self, position_index: int, package: Package) -> CartLineItem:
        for i, it in enumerate(self.items):
            if it.position_index == position_index:
                self.items[i] = replace(it, package=package)
                return self.items[i]
        raise KeyError(position_index)

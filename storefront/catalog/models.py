from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Package:
    id: str
    display_name: str
    unit_price: int
    stream_range_label: str
    placement_range_label: str
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.display_name,
            "price": self.unit_price,
            "plays": self.stream_range_label,
            "placements": self.placement_range_label,
            "description": self.description,
        }


@dataclass(frozen=True)
class Addon:
    """Option payante ajoutée à la commande. `price` intègre déjà la promo éventuelle."""
    id: str
    name: str
    emoji: str
    price: int
    is_on_sale: bool = False
    original_price: Optional[int] = None

    def __post_init__(self):
        # original_price présent si et seulement si l'addon est en promo
        if self.is_on_sale != (self.original_price is not None):
            raise ValueError(f"Addon {self.id}: original_price doit accompagner is_on_sale")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "emoji": self.emoji,
            "price": self.price,
            "isOnSale": self.is_on_sale,
        }
        if self.is_on_sale:
            data["originalPrice"] = self.original_price
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Addon":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            emoji=str(data.get("emoji") or ""),
            price=int(data["price"]),
            is_on_sale=bool(data.get("isOnSale")),
            original_price=(int(data["originalPrice"]) if data.get("originalPrice") is not None else None),
        )

# provide dataclass models for the backend payloads the client keeps around

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

Role = Literal["user", "admin", "superadmin"]
OrderStatus = Literal["pending", "paid", "completed", "cancelled"]

ROLES = ("user", "admin", "superadmin")


def _pick(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only the keys that are fields of cls; the backend sends extras."""
    names = {f.name for f in dataclasses.fields(cls)}
    return {k: v for k, v in data.items() if k in names}


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    price: float
    description: Optional[str] = None
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    brand: Optional[str] = None
    stock: Optional[int] = None
    category_id: Optional[int] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Product":
        kwargs = _pick(cls, data)
        kwargs["id"] = int(kwargs["id"])
        kwargs["price"] = float(kwargs["price"])
        return cls(**kwargs)


@dataclass(frozen=True)
class CartItem:
    id: int  # backend line-item id, or a negative temporary id before sync
    product: Product  # snapshot, later price changes do not touch the line
    quantity: int
    is_syncing: bool = False

    @property
    def line_total(self) -> float:
        return self.product.price * self.quantity

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "CartItem":
        return cls(
            id=int(data["id"]),
            product=Product.from_api(data["product"]),
            quantity=int(data["quantity"]),
            is_syncing=bool(data.get("is_syncing", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class Category:
    id: int
    name: str
    slug: Optional[str] = None
    parent_id: Optional[int] = None
    description: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Category":
        return cls(**_pick(cls, data))


@dataclass(frozen=True)
class Address:
    id: int
    full_name: str
    phone_number: Optional[str] = None
    street_address: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    is_default: bool = False

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Address":
        return cls(**_pick(cls, data))

    def one_line(self) -> str:
        parts = [self.street_address, self.city, self.state, self.postal_code, self.country]
        return ", ".join(p for p in parts if p)


@dataclass(frozen=True)
class OrderItem:
    id: int
    product_id: int
    quantity: int
    price: float  # unit price at time of order
    product: Optional[Product] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "OrderItem":
        product = data.get("product")
        return cls(
            id=int(data["id"]),
            product_id=int(data["product_id"]),
            quantity=int(data["quantity"]),
            price=float(data["price"]),
            product=Product.from_api(product) if product else None,
        )


@dataclass(frozen=True)
class Order:
    id: int
    total_amount: float
    status: OrderStatus
    created_at: str
    items: List[OrderItem] = field(default_factory=list)
    receipt_url: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Order":
        return cls(
            id=int(data["id"]),
            total_amount=float(data["total_amount"]),
            status=data["status"],
            created_at=str(data.get("created_at", "")),
            items=[OrderItem.from_api(i) for i in data.get("items") or []],
            receipt_url=data.get("receipt_url"),
        )


@dataclass(frozen=True)
class AuthResult:
    """What the login and OTP endpoints hand back."""

    access_token: str
    role: Optional[Role]
    username: Optional[str]
    email: Optional[str]

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "AuthResult":
        role = data.get("role")
        return cls(
            access_token=data["access_token"],
            role=role if role in ROLES else None,
            username=data.get("username"),
            email=data.get("email"),
        )

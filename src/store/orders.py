from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from store.models import Order

TRACKED_STATUSES = ("pending", "paid", "completed", "cancelled")


@dataclass
class OrderSummary:
    """Order history plus the totals shown above it."""

    orders: List[Order] = field(default_factory=list)
    total_sales: float = 0.0
    total_orders: int = 0
    avg_order_value: float = 0.0
    status_counts: Dict[str, int] = field(
        default_factory=lambda: {s: 0 for s in TRACKED_STATUSES}
    )

    @classmethod
    def from_orders(cls, orders: Optional[Iterable[Order]]) -> "OrderSummary":
        orders = list(orders or [])
        total_sales = sum(o.total_amount for o in orders)
        counts = {s: 0 for s in TRACKED_STATUSES}
        for o in orders:
            if o.status in counts:
                counts[o.status] += 1
        return cls(
            orders=orders,
            total_sales=total_sales,
            total_orders=len(orders),
            avg_order_value=total_sales / len(orders) if orders else 0.0,
            status_counts=counts,
        )

from __future__ import annotations

import enum
import json
import time
from dataclasses import replace
from typing import Callable, Iterable, List, Optional

from db.storage import PersistentStorage
from store.models import CartItem, Product
from utils import config
from utils.logger import get_logger

_logger = get_logger(__name__)

CartListener = Callable[["CartStore"], None]


class HydrationState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    HYDRATING = "hydrating"
    HYDRATED = "hydrated"


class CartStatus(enum.Enum):
    """What the UI should show. LOADING is never to be rendered as an empty cart."""

    LOADING = "loading"
    EMPTY = "empty"
    READY = "ready"


class TempIdGenerator:
    """
    Hands out temporary line-item ids for items not yet confirmed by the backend.

    Ids are negative, so they cannot collide with backend ids, and strictly
    decreasing, derived from the wall clock in microseconds.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._last = 0

    def __call__(self) -> int:
        candidate = int(self._clock() * 1_000_000)
        self._last = max(candidate, self._last + 1)
        return -self._last


def is_temp_id(item_id: int) -> bool:
    return item_id < 0


class CartStore:
    """
    Local view of the cart, mutated optimistically.

    All mutators are synchronous and local-only; mirroring to the backend is
    the caller's job (see store.sync.CartSync). Every change is persisted.
    """

    def __init__(
        self,
        storage: PersistentStorage,
        storage_key: str = config.CART_STORAGE_KEY,
        temp_ids: Optional[Callable[[], int]] = None,
    ):
        self.storage = storage
        self.storage_key = storage_key
        self.items: List[CartItem] = []
        self.hydration = HydrationState.UNINITIALIZED
        self._temp_ids = temp_ids or TempIdGenerator()
        self._listeners: List[CartListener] = []

    # ---------------------------
    # Read side
    # ---------------------------

    @property
    def is_hydrated(self) -> bool:
        return self.hydration is HydrationState.HYDRATED

    @property
    def status(self) -> CartStatus:
        if not self.is_hydrated:
            return CartStatus.LOADING
        return CartStatus.READY if self.items else CartStatus.EMPTY

    @property
    def subtotal(self) -> float:
        return sum(item.line_total for item in self.items)

    @property
    def count(self) -> int:
        """Total number of units, what the cart badge shows."""
        return sum(item.quantity for item in self.items)

    def find(self, item_id: int) -> Optional[CartItem]:
        return next((i for i in self.items if i.id == item_id), None)

    def find_by_product(self, product_id: int) -> Optional[CartItem]:
        return next((i for i in self.items if i.product.id == product_id), None)

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---------------------------
    # Mutations
    # ---------------------------

    def set_items(self, items: Iterable[CartItem]) -> None:
        """Replace the whole cart, e.g. with what the backend returned."""
        self._commit(list(items), hydrated=True)

    def add_item(self, product: Product, quantity: int = 1) -> CartItem:
        """
        Add quantity units of product and return the resulting line.

        An existing line for the same product is incremented, so there is
        never more than one line per product. The caller clamps quantity to
        at least 1.
        """
        existing = self.find_by_product(product.id)
        if existing is not None:
            updated = replace(existing, quantity=existing.quantity + quantity)
            self._commit([updated if i is existing else i for i in self.items])
            return updated

        item = CartItem(
            id=self._temp_ids(), product=product, quantity=quantity, is_syncing=True
        )
        self._commit([*self.items, item])
        return item

    def remove_item(self, item_id: int) -> None:
        if self.find(item_id) is None:
            return
        self._commit([i for i in self.items if i.id != item_id])

    def update_quantity(self, item_id: int, quantity: int) -> None:
        """Set the quantity of a line. Anything below 1 becomes 1."""
        if self.find(item_id) is None:
            return
        quantity = max(1, quantity)
        self._commit(
            [replace(i, quantity=quantity) if i.id == item_id else i for i in self.items]
        )

    def clear_cart(self) -> None:
        self._commit([])

    # ---------------------------
    # Persistence
    # ---------------------------

    async def hydrate(self) -> None:
        """
        Load the persisted cart. Runs at most once; if set_items already
        hydrated the store, the persisted copy is older and is ignored.
        Unreadable data gives an empty cart, the store is hydrated either way.
        """
        if self.hydration is not HydrationState.UNINITIALIZED:
            _logger.debug(f"cart hydrate skipped, already {self.hydration.value}")
            return

        self.hydration = HydrationState.HYDRATING
        items: List[CartItem] = []
        try:
            raw = await self.storage.load(self.storage_key)
            if raw:
                items = self._decode(raw)
        except Exception:
            _logger.warning("Persisted cart is unreadable, starting empty.", exc_info=True)
            items = []

        # set_items may have landed while we were reading
        if self.hydration is HydrationState.HYDRATED:
            return
        self.items = items
        self.hydration = HydrationState.HYDRATED
        _logger.debug(f"cart hydrated with {len(items)} item(s)")
        self._emit()

    def _commit(self, items: List[CartItem], hydrated: bool = False) -> None:
        self.items = items
        if hydrated:
            self.hydration = HydrationState.HYDRATED
        self.storage.set_item(
            self.storage_key, json.dumps([i.to_dict() for i in self.items])
        )
        self._emit()

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    @staticmethod
    def _decode(raw: str) -> List[CartItem]:
        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValueError(f"expected a list, got {type(data).__name__}")
        return [CartItem.from_api(entry) for entry in data]

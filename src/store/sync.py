from __future__ import annotations

from typing import Awaitable, Callable, Dict, Hashable, Optional

from api.client import BackendClient
from api.errors import ApiError, UnauthorizedError, response_message
from store.cart import CartStore, is_temp_id
from store.models import CartItem, Product
from store.session import SessionStore
from utils.logger import get_logger

_logger = get_logger(__name__)

Notify = Callable[..., None]

CLEAR_KEY = "*clear*"


def _log_notify(message: str, severity: str = "information") -> None:
    _logger.info(f"[{severity}] {message}")


class CartSync:
    """
    Keeps the local cart and the backend cart in step.

    Mutations are applied to the CartStore first, then mirrored to the
    backend when someone is logged in. A failed mirror is reported through
    `notify` and is not rolled back; the next successful fetch overwrites
    the local cart with whatever the backend holds (last fetch wins).

    Out-of-order responses are resolved with sequence numbers: every mirror
    gets the next number for its key (the product it touches), and a clear
    supersedes everything issued before it. A superseded failure is not
    reported; every success, superseded or not, is followed by a refetch.
    Fetches carry a generation, and a fetch result older than the one last
    applied is dropped.
    """

    def __init__(
        self,
        cart: CartStore,
        session: SessionStore,
        api: BackendClient,
        notify: Optional[Notify] = None,
    ):
        self.cart = cart
        self.session = session
        self.api = api
        self.notify = notify or _log_notify

        self._seq = 0
        self._latest: Dict[Hashable, int] = {}
        self._cleared_at = 0
        self._fetch_gen = 0
        self._applied_gen = 0

    @property
    def should_sync(self) -> bool:
        return self.session.is_authenticated

    # ---------------------------
    # Remote -> local
    # ---------------------------

    async def refresh(self) -> bool:
        """
        Fetch the backend cart and replace the local items with it.
        Only applies with a token present and a hydrated store, both checked
        again when the response arrives. Returns True if local state changed.
        """
        if not self.should_sync or not self.cart.is_hydrated:
            return False

        self._fetch_gen += 1
        generation = self._fetch_gen
        try:
            items = await self.api.fetch_cart()
        except ApiError as e:
            # passive refetch, the next one will try again
            _logger.warning(f"Cart fetch failed: {e.message}")
            return False

        if generation < self._applied_gen:
            _logger.debug(f"dropping cart fetch #{generation}, #{self._applied_gen} already applied")
            return False
        if not self.should_sync or not self.cart.is_hydrated:
            return False

        self._applied_gen = generation
        self.cart.set_items(items)
        _logger.debug(f"cart replaced by backend copy ({len(items)} item(s))")
        return True

    # ---------------------------
    # Local -> remote
    # ---------------------------

    async def add(self, product: Product, quantity: int = 1) -> CartItem:
        quantity = max(1, quantity)
        item = self.cart.add_item(product, quantity)
        if self.should_sync:
            await self._mirror(
                product.id,
                lambda: self.api.add_to_cart(product.id, quantity),
                "Failed to sync cart with server.",
            )
        return item

    async def update_quantity(self, item_id: int, quantity: int) -> None:
        item = self.cart.find(item_id)
        self.cart.update_quantity(item_id, quantity)
        if item is None or not self.should_sync:
            return
        product_id = item.product.id
        quantity = max(1, quantity)
        await self._mirror(
            product_id,
            lambda: self.api.update_cart_item(product_id, quantity),
            "Failed to update quantity",
        )

    async def remove(self, item_id: int) -> None:
        item = self.cart.find(item_id)
        self.cart.remove_item(item_id)
        if not self.should_sync:
            return
        if is_temp_id(item_id):
            # the backend never saw this id; the pending add refetches and settles it
            _logger.debug(f"not mirroring removal of unsynced line {item_id}")
            return
        # the local copy may be stale, the backend may still hold the line
        key = item.product.id if item is not None else ("item", item_id)
        await self._mirror(
            key, lambda: self.api.remove_cart_item(item_id), "Failed to remove item"
        )

    async def clear(self) -> None:
        self.cart.clear_cart()
        if self.should_sync:
            await self._mirror(CLEAR_KEY, self.api.clear_cart, "Failed to clear cart")

    async def complete_payment(self, reference: str) -> None:
        """Payment gateway reported success for `reference`: the cart is spent."""
        _logger.info(f"Payment {reference} confirmed, clearing cart.")
        await self.clear()

    # ---------------------------
    # Internals
    # ---------------------------

    def _issue(self, key: Hashable) -> int:
        self._seq += 1
        self._latest[key] = self._seq
        if key == CLEAR_KEY:
            self._cleared_at = self._seq
        return self._seq

    def is_superseded(self, key: Hashable, seq: int) -> bool:
        if self._latest.get(key) != seq:
            return True
        return key != CLEAR_KEY and self._cleared_at > seq

    async def _mirror(
        self, key: Hashable, call: Callable[[], Awaitable[None]], failure_message: str
    ) -> bool:
        seq = self._issue(key)
        try:
            await call()
        except UnauthorizedError as e:
            # the 401 hook already ended the session
            self.notify(e.message, severity="error")
            return False
        except ApiError as e:
            if self.is_superseded(key, seq):
                _logger.debug(f"ignoring failure of superseded request #{seq}: {e.message}")
                return False
            _logger.warning(f"Cart sync #{seq} failed: {e.message}")
            self.notify(response_message(e.payload, failure_message), severity="error")
            return False

        if self.is_superseded(key, seq):
            # the newer request may still fail, so this one reconciles as well
            _logger.debug(f"request #{seq} superseded, refetching anyway")
        await self.refresh()
        return True

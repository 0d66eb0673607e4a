"""Helpers shared by the test modules."""

import asyncio
import base64
import json
import os
import tempfile
from typing import Any, Dict, List, Optional

from api.errors import ApiError
from store.models import CartItem, Product


def make_token(claims: Dict[str, Any]) -> str:
    def seg(obj) -> str:
        raw = json.dumps(obj).encode()
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()

    return f"{seg({'alg': 'HS256', 'typ': 'JWT'})}.{seg(claims)}.signature"


def product(pid: int = 1, price: float = 10.0, name: Optional[str] = None) -> Product:
    return Product(id=pid, name=name or f"Product {pid}", price=price, stock=50)


def line(item_id: int, pid: int, quantity: int, price: float = 10.0) -> CartItem:
    return CartItem(id=item_id, product=product(pid, price), quantity=quantity)


class TempDbMixin:
    """Points storage at a throwaway sqlite file."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "storage.sqlite")

    def tearDown(self):
        self.temp_dir.cleanup()


class FakeApi:
    """
    Stands in for BackendClient in store tests.

    `remote` is what fetch_cart returns. Set `fail` to a method name -> ApiError
    to make that call raise. Set `gates[name]` to an asyncio.Event to hold a
    call until the test releases it.
    """

    def __init__(self, remote: Optional[List[CartItem]] = None):
        self.remote: List[CartItem] = list(remote or [])
        self.calls: List[tuple] = []
        self.fail: Dict[str, ApiError] = {}
        self.gates: Dict[str, asyncio.Event] = {}

    async def _call(self, name: str, *args):
        self.calls.append((name, *args))
        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()
        if name in self.fail:
            raise self.fail[name]

    def names(self) -> List[str]:
        return [c[0] for c in self.calls]

    async def fetch_cart(self) -> List[CartItem]:
        snapshot = list(self.remote)
        await self._call("fetch_cart")
        return snapshot

    async def add_to_cart(self, product_id: int, quantity: int) -> None:
        await self._call("add_to_cart", product_id, quantity)

    async def update_cart_item(self, product_id: int, quantity: int) -> None:
        await self._call("update_cart_item", product_id, quantity)

    async def remove_cart_item(self, item_id: int) -> None:
        await self._call("remove_cart_item", item_id)

    async def clear_cart(self) -> None:
        await self._call("clear_cart")

    async def logout(self) -> None:
        await self._call("logout")

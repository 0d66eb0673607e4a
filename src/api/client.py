"""Async client for the storefront backend.

Every call goes through `BackendClient._send`, which attaches the bearer
token, decodes the body and turns failures into `ApiError`. A 401 on a
request that carried a token means the session is no longer valid: the
registered `on_unauthorized` hook runs before the error is raised.

Endpoints that return data build their models inside `_fetch`, so a body
the models cannot be built from surfaces as an `ApiError` too.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

import httpx

from api.errors import ApiError, UnauthorizedError, response_message
from store.models import Address, AuthResult, CartItem, Category, Order, Product
from utils import config
from utils.logger import get_logger

_logger = get_logger(__name__)

T = TypeVar("T")

# what a model constructor raises on a body of the wrong shape
MALFORMED_BODY = (KeyError, TypeError, ValueError, AttributeError)


def _unwrap(payload: Any) -> Any:
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _as_list(payload: Any, *keys: str) -> List[Dict[str, Any]]:
    """Lists come back bare, in a data envelope, or under a named key."""
    payload = _unwrap(payload)
    if isinstance(payload, dict):
        for key in keys:
            if isinstance(payload.get(key), list):
                return payload[key]
        return []
    return payload or []


def _order_ref(payload: Any) -> Tuple[int, str]:
    payload = _unwrap(payload) or {}
    return int(payload["order_id"]), str(payload.get("status", "pending"))


class BackendClient:
    def __init__(
        self,
        base_url: str = config.API_URL,
        timeout: float = config.API_TIMEOUT,
        token_getter: Optional[Callable[[], Optional[str]]] = None,
        on_unauthorized: Optional[Callable[[], None]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token_getter = token_getter or (lambda: None)
        self.on_unauthorized = on_unauthorized
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(
        self, method: str, path: str, *, authenticated: bool = True, **kwargs
    ) -> Tuple[int, Any]:
        headers = kwargs.pop("headers", {})
        token = self.token_getter() if authenticated else None
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.RequestError as e:
            _logger.warning(f"{method} {path} failed: {e!r}")
            raise ApiError("Could not reach the server.", None) from e

        try:
            payload = response.json() if response.content else None
        except ValueError:
            payload = None

        if response.status_code == 401 and token:
            _logger.warning(f"{method} {path} -> 401, session is no longer valid")
            if self.on_unauthorized is not None:
                self.on_unauthorized()
            raise UnauthorizedError(
                response_message(payload, "Session expired. Please log in again."),
                401,
                payload,
            )

        if response.is_error:
            _logger.debug(f"{method} {path} -> {response.status_code}")
            raise ApiError(
                response_message(payload, f"Request failed ({response.status_code})."),
                response.status_code,
                payload,
            )

        _logger.debug(f"{method} {path} -> {response.status_code}")
        return response.status_code, payload

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        _, payload = await self._send(method, path, **kwargs)
        return payload

    async def _fetch(
        self, parse: Callable[[Any], T], failure: str, method: str, path: str, **kwargs
    ) -> T:
        """`_request`, then build the result with parse; an unreadable body raises ApiError(failure)."""
        status, payload = await self._send(method, path, **kwargs)
        try:
            return parse(payload)
        except MALFORMED_BODY as e:
            _logger.warning(f"{method} {path} -> {status} with an unexpected body: {e!r}")
            raise ApiError(failure, status, payload) from e

    # ---------------------------
    # Auth
    # ---------------------------

    async def login(self, username: str, password: str) -> AuthResult:
        return await self._fetch(
            lambda p: AuthResult.from_api(_unwrap(p)),
            "Login failed. Please try again.",
            "POST",
            "/auth/token",
            authenticated=False,
            data={"username": username, "password": password},
        )

    async def register(self, username: str, email: str, password: str) -> str:
        """Create an account; the backend then mails an OTP to verify it."""
        payload = await self._request(
            "POST",
            "/auth/register",
            authenticated=False,
            json={"username": username, "email": email, "password": password},
        )
        return response_message(payload, "Registration successful. Check your email for the OTP.")

    async def verify_otp(self, email: str, otp: str) -> AuthResult:
        return await self._fetch(
            lambda p: AuthResult.from_api(_unwrap(p)),
            "OTP verification failed. Please try again.",
            "POST",
            "/auth/verify-otp",
            authenticated=False,
            json={"email": email, "otp": otp},
        )

    async def resend_otp(self, email: str) -> str:
        payload = await self._request(
            "POST", "/auth/resend-otp", authenticated=False, json={"email": email}
        )
        return response_message(payload, "OTP resent successfully!")

    async def logout(self) -> None:
        await self._request("POST", "/auth/logout")

    # ---------------------------
    # Cart
    # ---------------------------

    async def fetch_cart(self) -> List[CartItem]:
        return await self._fetch(
            lambda p: [CartItem.from_api(i) for i in _as_list(p, "items")],
            "Failed to load cart.",
            "GET",
            "/cart",
        )

    async def add_to_cart(self, product_id: int, quantity: int) -> None:
        await self._request(
            "POST", "/cart/add", json={"product_id": product_id, "quantity": quantity}
        )

    async def update_cart_item(self, product_id: int, quantity: int) -> None:
        await self._request(
            "PATCH",
            "/cart/update",
            params={"product_id": product_id, "quantity": quantity},
        )

    async def remove_cart_item(self, item_id: int) -> None:
        await self._request("DELETE", f"/cart/remove/{item_id}")

    async def clear_cart(self) -> None:
        await self._request("DELETE", "/cart/clear")

    # ---------------------------
    # Catalogue
    # ---------------------------

    async def list_products(self, skip: int = 0, limit: int = 30) -> List[Product]:
        return await self._fetch(
            lambda p: [Product.from_api(i) for i in _as_list(p, "products", "items")],
            "Failed to load products.",
            "GET",
            "/products",
            params={"skip": skip, "limit": limit},
        )

    async def get_product(self, product_id: int) -> Product:
        return await self._fetch(
            lambda p: Product.from_api(_unwrap(p)),
            "Failed to load product.",
            "GET",
            f"/products/{product_id}",
        )

    async def search_products(
        self, query: str, page: int = 0, limit: int = 12
    ) -> List[Product]:
        """Empty queries are not sent, they match nothing."""
        if not query.strip():
            return []
        return await self._fetch(
            lambda p: [Product.from_api(i) for i in _as_list(p, "products", "items")],
            "Search failed.",
            "GET",
            "/products/search",
            params={"q": query.strip(), "skip": page * limit, "limit": limit},
        )

    async def list_categories(self, skip: int = 0, limit: int = 20) -> List[Category]:
        return await self._fetch(
            lambda p: [Category.from_api(c) for c in _as_list(p, "categories", "items")],
            "Failed to load categories.",
            "GET",
            "/categories",
            params={"skip": skip, "limit": limit},
        )

    async def list_category_products(self, slug: str) -> List[Product]:
        return await self._fetch(
            lambda p: [Product.from_api(i) for i in _as_list(p, "products", "items")],
            "Failed to load products.",
            "GET",
            f"/products/category/{slug}",
        )

    # ---------------------------
    # Addresses
    # ---------------------------

    async def list_addresses(self) -> List[Address]:
        return await self._fetch(
            lambda p: [Address.from_api(a) for a in _as_list(p, "addresses")],
            "Failed to load addresses.",
            "GET",
            "/addresses",
        )

    async def add_address(self, fields: Dict[str, Any]) -> Address:
        return await self._fetch(
            lambda p: Address.from_api(_unwrap(p)),
            "Failed to add address.",
            "POST",
            "/addresses",
            json=fields,
        )

    async def update_address(self, address_id: int, updates: Dict[str, Any]) -> Address:
        return await self._fetch(
            lambda p: Address.from_api(_unwrap(p)),
            "Failed to update address.",
            "PATCH",
            f"/addresses/{address_id}",
            json=updates,
        )

    async def delete_address(self, address_id: int) -> None:
        await self._request("DELETE", f"/addresses/{address_id}")

    # ---------------------------
    # Checkout & orders
    # ---------------------------

    async def checkout(self, address_id: int) -> Tuple[int, str]:
        """Place an order from the backend cart. Returns (order_id, status)."""
        return await self._fetch(
            _order_ref,
            "Failed to create order",
            "POST",
            "/orders/checkout",
            params={"address_id": address_id},
        )

    async def list_orders(self) -> List[Order]:
        return await self._fetch(
            lambda p: [Order.from_api(o) for o in _as_list(p, "orders")],
            "Failed to load orders.",
            "GET",
            "/orders",
        )

    async def get_order(self, order_id: int) -> Order:
        return await self._fetch(
            lambda p: Order.from_api(_unwrap(p)),
            "Failed to load order.",
            "GET",
            f"/orders/{order_id}",
        )

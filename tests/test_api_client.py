import json
import unittest

import httpx

from api.client import BackendClient
from api.errors import ApiError, UnauthorizedError


class BackendClientTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.requests = []
        self.routes = {}
        self.token = None
        self.unauthorized = 0

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            key = (request.method, request.url.path)
            if key not in self.routes:
                return httpx.Response(404, json={"detail": "Not Found"})
            route = self.routes[key]
            if isinstance(route, Exception):
                raise route
            status, body = route
            return httpx.Response(status, json=body)

        def on_unauthorized():
            self.unauthorized += 1

        self.api = BackendClient(
            "http://backend.test",
            token_getter=lambda: self.token,
            on_unauthorized=on_unauthorized,
            transport=httpx.MockTransport(handler),
        )

    async def asyncTearDown(self):
        await self.api.aclose()

    # ---------- Auth ----------

    async def test_login_posts_form_and_parses_result(self):
        self.routes[("POST", "/auth/token")] = (
            200,
            {"access_token": "tok", "role": "admin", "username": "jane", "email": "j@x.io"},
        )
        result = await self.api.login("jane", "pw")

        self.assertEqual(result.access_token, "tok")
        self.assertEqual(result.role, "admin")
        request = self.requests[0]
        self.assertEqual(request.headers["content-type"], "application/x-www-form-urlencoded")
        self.assertEqual(request.content, b"username=jane&password=pw")
        self.assertNotIn("authorization", request.headers)

    async def test_failed_login_does_not_trigger_session_teardown(self):
        self.token = "stale"
        self.routes[("POST", "/auth/token")] = (401, {"detail": "Incorrect username or password"})

        with self.assertRaises(ApiError) as ctx:
            await self.api.login("jane", "bad")

        self.assertNotIsInstance(ctx.exception, UnauthorizedError)
        self.assertEqual(ctx.exception.message, "Incorrect username or password")
        self.assertEqual(ctx.exception.status, 401)
        self.assertEqual(self.unauthorized, 0)

    async def test_verify_otp_unwraps_data_envelope(self):
        self.routes[("POST", "/auth/verify-otp")] = (
            200,
            {"data": {"access_token": "tok", "role": "user", "username": "jane", "email": None}},
        )
        result = await self.api.verify_otp("j@x.io", "123456")
        self.assertEqual(result.username, "jane")
        self.assertEqual(json.loads(self.requests[0].content), {"email": "j@x.io", "otp": "123456"})

    # ---------- Tokens and 401 ----------

    async def test_bearer_token_is_attached(self):
        self.token = "tok"
        self.routes[("GET", "/cart")] = (200, {"data": {"items": [], "total_price": 0}})

        self.assertEqual(await self.api.fetch_cart(), [])
        self.assertEqual(self.requests[0].headers["authorization"], "Bearer tok")

    async def test_401_with_token_runs_handler(self):
        self.token = "tok"
        self.routes[("GET", "/cart")] = (401, {"detail": "Could not validate credentials"})

        with self.assertRaises(UnauthorizedError):
            await self.api.fetch_cart()
        self.assertEqual(self.unauthorized, 1)

    async def test_401_without_token_only_raises(self):
        self.routes[("POST", "/cart/add")] = (401, {"detail": "Not authenticated"})

        with self.assertRaises(ApiError) as ctx:
            await self.api.add_to_cart(1, 1)
        self.assertNotIsInstance(ctx.exception, UnauthorizedError)
        self.assertEqual(self.unauthorized, 0)

    async def test_transport_error_becomes_api_error(self):
        self.routes[("GET", "/cart")] = httpx.ConnectError("refused")

        with self.assertRaises(ApiError) as ctx:
            await self.api.fetch_cart()
        self.assertIsNone(ctx.exception.status)

    # ---------- Cart endpoints ----------

    async def test_fetch_cart_parses_items(self):
        self.token = "tok"
        self.routes[("GET", "/cart")] = (
            200,
            {
                "data": {
                    "items": [
                        {
                            "id": 3,
                            "cart_id": 1,
                            "quantity": 2,
                            "product": {"id": 9, "name": "Mug", "price": "4.50", "stock": 3},
                        }
                    ],
                    "total_price": 9.0,
                }
            },
        )
        items = await self.api.fetch_cart()

        self.assertEqual(len(items), 1)
        self.assertEqual(items[0].id, 3)
        self.assertEqual(items[0].product.price, 4.5)
        self.assertEqual(items[0].line_total, 9.0)

    async def test_cart_mutations_hit_expected_endpoints(self):
        self.token = "tok"
        self.routes[("POST", "/cart/add")] = (200, {"success": True})
        self.routes[("PATCH", "/cart/update")] = (200, {"success": True})
        self.routes[("DELETE", "/cart/remove/3")] = (200, {"success": True})
        self.routes[("DELETE", "/cart/clear")] = (200, {"success": True})

        await self.api.add_to_cart(9, 2)
        await self.api.update_cart_item(9, 5)
        await self.api.remove_cart_item(3)
        await self.api.clear_cart()

        add, update, remove, clear = self.requests
        self.assertEqual(json.loads(add.content), {"product_id": 9, "quantity": 2})
        self.assertEqual(dict(update.url.params), {"product_id": "9", "quantity": "5"})
        self.assertEqual(remove.url.path, "/cart/remove/3")
        self.assertEqual(clear.method, "DELETE")

    async def test_failure_message_falls_back_to_status(self):
        self.token = "tok"
        self.routes[("DELETE", "/cart/clear")] = (500, {})

        with self.assertRaises(ApiError) as ctx:
            await self.api.clear_cart()
        self.assertEqual(ctx.exception.message, "Request failed (500).")

    # ---------- Catalogue and orders ----------

    async def test_list_products_and_search(self):
        self.routes[("GET", "/products")] = (200, {"data": [{"id": 1, "name": "Mug", "price": 4}]})
        self.routes[("GET", "/products/search")] = (
            200,
            {"success": True, "message": "ok", "data": [{"id": 2, "name": "Cup", "price": 3}]},
        )

        products = await self.api.list_products(skip=30, limit=30)
        found = await self.api.search_products("  cup ", page=1, limit=12)

        self.assertEqual([p.name for p in products], ["Mug"])
        self.assertEqual([p.name for p in found], ["Cup"])
        self.assertEqual(dict(self.requests[0].url.params), {"skip": "30", "limit": "30"})
        self.assertEqual(
            dict(self.requests[1].url.params), {"q": "cup", "skip": "12", "limit": "12"}
        )

    async def test_blank_search_sends_nothing(self):
        self.assertEqual(await self.api.search_products("   "), [])
        self.assertEqual(self.requests, [])

    async def test_checkout_and_orders(self):
        self.token = "tok"
        self.routes[("POST", "/orders/checkout")] = (
            200,
            {"success": True, "order_id": 44, "status": "pending"},
        )
        self.routes[("GET", "/orders")] = (
            200,
            {
                "data": [
                    {
                        "id": 44,
                        "user_id": 1,
                        "total_amount": 12.5,
                        "status": "pending",
                        "created_at": "2025-01-01T10:00:00",
                        "items": [
                            {"id": 1, "order_id": 44, "product_id": 9, "quantity": 5, "price": 2.5}
                        ],
                    }
                ]
            },
        )

        self.assertEqual(await self.api.checkout(address_id=7), (44, "pending"))
        orders = await self.api.list_orders()

        self.assertEqual(dict(self.requests[0].url.params), {"address_id": "7"})
        self.assertEqual(orders[0].items[0].quantity, 5)
        self.assertIsNone(orders[0].items[0].product)

    async def test_order_detail(self):
        self.token = "tok"
        self.routes[("GET", "/orders/44")] = (
            200,
            {
                "id": 44,
                "total_amount": 5,
                "status": "paid",
                "created_at": "2025-01-01T10:00:00",
                "items": [
                    {
                        "id": 1,
                        "product_id": 9,
                        "quantity": 2,
                        "price": 2.5,
                        "product": {"id": 9, "name": "Mug", "price": 2.5},
                    }
                ],
            },
        )

        order = await self.api.get_order(44)

        self.assertEqual(order.status, "paid")
        self.assertEqual(order.items[0].product.name, "Mug")

    async def test_single_product_and_categories(self):
        self.routes[("GET", "/products/9")] = (
            200,
            {"data": {"id": 9, "name": "Mug", "price": 4, "stock": 0, "category_id": 2}},
        )
        self.routes[("GET", "/categories")] = (
            200,
            {"data": [{"id": 2, "name": "Kitchen", "slug": "kitchen", "parent_id": None}]},
        )
        self.routes[("GET", "/products/category/kitchen")] = (
            200,
            {"data": [{"id": 9, "name": "Mug", "price": 4}]},
        )

        product = await self.api.get_product(9)
        categories = await self.api.list_categories()
        in_category = await self.api.list_category_products(categories[0].slug)

        self.assertEqual((product.stock, product.category_id), (0, 2))
        self.assertEqual(categories[0].slug, "kitchen")
        self.assertEqual(dict(self.requests[1].url.params), {"skip": "0", "limit": "20"})
        self.assertEqual([p.id for p in in_category], [9])

    # ---------- Addresses ----------

    async def test_address_add_update_delete(self):
        self.token = "tok"
        saved = {
            "id": 5,
            "user_id": 1,
            "full_name": "Jane Doe",
            "phone_number": "0800",
            "street_address": "1 Main St",
            "city": "Lagos",
            "country": "Nigeria",
            "is_default": True,
        }
        self.routes[("POST", "/addresses")] = (
            200,
            {"success": True, "message": "Address added", "data": saved},
        )
        self.routes[("PATCH", "/addresses/5")] = (
            200,
            {"success": True, "message": "Address updated", "data": {**saved, "city": "Abuja"}},
        )
        self.routes[("DELETE", "/addresses/5")] = (200, {"ok": True})
        fields = {k: v for k, v in saved.items() if k not in ("id", "user_id")}

        added = await self.api.add_address(fields)
        updated = await self.api.update_address(5, {"city": "Abuja"})
        await self.api.delete_address(5)

        self.assertEqual(added.id, 5)
        self.assertTrue(added.is_default)
        self.assertEqual(updated.city, "Abuja")
        add, update, delete = self.requests
        self.assertEqual(json.loads(add.content), fields)
        self.assertEqual(json.loads(update.content), {"city": "Abuja"})
        self.assertEqual(update.method, "PATCH")
        self.assertEqual(delete.url.path, "/addresses/5")

    async def test_add_address_without_saved_record_is_an_api_error(self):
        self.token = "tok"
        self.routes[("POST", "/addresses")] = (200, {"success": True, "message": "ok"})

        with self.assertRaises(ApiError) as ctx:
            await self.api.add_address({"full_name": "Jane Doe"})
        self.assertEqual(ctx.exception.message, "Failed to add address.")

    # ---------- Unreadable bodies ----------

    async def test_checkout_without_order_id_is_an_order_failure(self):
        self.token = "tok"
        self.routes[("POST", "/orders/checkout")] = (200, {"data": {"message": "queued"}})

        with self.assertRaises(ApiError) as ctx:
            await self.api.checkout(address_id=7)

        self.assertEqual(ctx.exception.message, "Failed to create order")
        self.assertEqual(ctx.exception.status, 200)
        self.assertEqual(ctx.exception.payload, {"data": {"message": "queued"}})

    async def test_checkout_with_non_numeric_order_id_is_an_order_failure(self):
        self.token = "tok"
        self.routes[("POST", "/orders/checkout")] = (200, {"order_id": "abc"})

        with self.assertRaises(ApiError):
            await self.api.checkout(address_id=7)

    async def test_malformed_cart_line_is_an_api_error(self):
        self.token = "tok"
        self.routes[("GET", "/cart")] = (
            200,
            {"data": {"items": [{"id": 3, "quantity": 1, "product": {"id": 9, "name": "Mug", "price": None}}]}},
        )

        with self.assertRaises(ApiError) as ctx:
            await self.api.fetch_cart()
        self.assertEqual(ctx.exception.message, "Failed to load cart.")
        self.assertEqual(self.unauthorized, 0)

    async def test_login_without_token_is_an_api_error(self):
        self.routes[("POST", "/auth/token")] = (200, {"role": "user", "username": "jane"})

        with self.assertRaises(ApiError) as ctx:
            await self.api.login("jane", "pw")
        self.assertEqual(ctx.exception.message, "Login failed. Please try again.")

    async def test_verify_otp_with_empty_body_is_an_api_error(self):
        self.routes[("POST", "/auth/verify-otp")] = (200, None)

        with self.assertRaises(ApiError) as ctx:
            await self.api.verify_otp("j@x.io", "123456")
        self.assertEqual(ctx.exception.message, "OTP verification failed. Please try again.")


if __name__ == "__main__":
    unittest.main()

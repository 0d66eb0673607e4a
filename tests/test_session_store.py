import json
import unittest

from api.errors import ApiError
from db.storage import PersistentStorage
from store.session import EMPTY_SESSION, SessionStore
from support import FakeApi, TempDbMixin


class SessionStoreTestCase(TempDbMixin, unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.storage = PersistentStorage(self.db_path)
        await self.storage.open()
        self.routes = []
        self.session = SessionStore(self.storage, navigate=self.routes.append)

    async def asyncTearDown(self):
        await self.storage.close()

    async def _reload(self) -> SessionStore:
        await self.storage.flush()
        restored = SessionStore(PersistentStorage(self.db_path))
        await restored.hydrate()
        return restored

    async def test_set_auth_sets_all_fields_and_persists(self):
        self.session.set_auth("jane", "jane@example.com", "admin", "tok")

        self.assertTrue(self.session.is_authenticated)
        self.assertTrue(self.session.is_admin)
        restored = await self._reload()
        self.assertEqual(restored.state, self.session.state)
        self.assertEqual(restored.username, "jane")
        self.assertEqual(restored.token, "tok")

    async def test_clear_auth_resets_everything(self):
        self.session.set_auth("jane", "jane@example.com", "user", "tok")
        self.session.clear_auth()

        self.assertEqual(self.session.state, EMPTY_SESSION)
        self.assertFalse(self.session.is_authenticated)
        self.assertEqual((await self._reload()).state, EMPTY_SESSION)

    async def test_role_without_token_is_not_admin(self):
        self.session.set_auth("jane", None, "superadmin", None)
        self.assertFalse(self.session.is_admin)

    async def test_listeners_see_every_change_until_unsubscribed(self):
        tokens = []
        unsubscribe = self.session.subscribe(lambda s: tokens.append(s.token))
        self.session.set_auth("a", None, "user", "t1")
        self.session.clear_auth()
        unsubscribe()
        self.session.set_auth("b", None, "user", "t2")
        self.assertEqual(tokens, ["t1", None])

    async def test_hydrate_corrupt_session_starts_logged_out(self):
        self.storage.set_item(self.session.storage_key, "[1, 2")
        restored = await self._reload()
        self.assertTrue(restored.is_hydrated)
        self.assertEqual(restored.state, EMPTY_SESSION)

    async def test_hydrate_drops_unknown_role(self):
        self.storage.set_item(
            self.session.storage_key,
            json.dumps({"username": "x", "email": None, "role": "root", "token": "t"}),
        )
        restored = await self._reload()
        self.assertIsNone(restored.role)
        self.assertEqual(restored.token, "t")

    async def test_logout_success_clears_purges_and_redirects(self):
        self.session.set_auth("jane", "jane@example.com", "user", "tok")
        api = FakeApi()

        await self.session.logout(api)

        self.assertEqual(api.names(), ["logout"])
        self.assertEqual(self.session.state, EMPTY_SESSION)
        self.assertEqual(self.routes, ["login"])
        await self.storage.flush()
        fresh = PersistentStorage(self.db_path)
        self.assertIsNone(await fresh.load(self.session.storage_key))

    async def test_logout_failure_keeps_session(self):
        self.session.set_auth("jane", "jane@example.com", "user", "tok")
        api = FakeApi()
        api.fail["logout"] = ApiError("Could not reach the server.")

        with self.assertRaises(ApiError):
            await self.session.logout(api)

        self.assertEqual(self.session.token, "tok")
        self.assertEqual(self.routes, [])

        # retry once the backend is back
        del api.fail["logout"]
        await self.session.logout(api)
        self.assertFalse(self.session.is_authenticated)


if __name__ == "__main__":
    unittest.main()

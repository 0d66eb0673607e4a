from __future__ import annotations

import time
from typing import Callable, Optional

import httpx

from api.client import BackendClient
from db.storage import PersistentStorage
from store.cart import CartStore
from store.models import AuthResult
from store.session import SessionStore
from store.sync import CartSync
from store.watchdog import TokenWatchdog
from utils import config
from utils.logger import get_logger

_logger = get_logger(__name__)


class AppState:
    """
    Everything the screens share, built once per application.

    Fields:
      - storage: durable key-value storage both stores persist into
      - session: who is logged in
      - cart: the local cart
      - api: backend client, reads the token from `session`
      - sync: mirrors cart mutations to the backend and reconciles
      - watchdog: logs the session out when its token expires

    `navigate` and `notify` are hooks into whatever UI owns the state; they
    may be set after construction.
    """

    def __init__(
        self,
        db_path: str = config.DB_PATH,
        api_url: str = config.API_URL,
        navigate: Optional[Callable[[str], None]] = None,
        notify: Optional[Callable[..., None]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.navigate = navigate
        self.notify = notify

        self.storage = PersistentStorage(db_path)
        self.session = SessionStore(self.storage, navigate=self._navigate)
        self.cart = CartStore(self.storage)
        self.api = BackendClient(
            api_url,
            token_getter=lambda: self.session.token,
            on_unauthorized=self.handle_unauthorized,
            transport=transport,
        )
        self.sync = CartSync(self.cart, self.session, self.api, notify=self._notify)
        self.watchdog = TokenWatchdog(self.session, navigate=self._navigate, clock=clock)

    async def startup(self) -> None:
        """Hydrate both stores, arm the watchdog, then pull the backend cart."""
        await self.storage.open()
        await self.session.hydrate()
        await self.cart.hydrate()
        self.watchdog.start()
        await self.sync.refresh()

    async def shutdown(self) -> None:
        self.watchdog.stop()
        await self.storage.close()
        await self.api.aclose()

    async def login(self, username: str, password: str) -> AuthResult:
        result = await self.api.login(username, password)
        self._accept(result)
        await self.sync.refresh()
        return result

    async def verify_otp(self, email: str, otp: str) -> AuthResult:
        result = await self.api.verify_otp(email, otp)
        self._accept(result)
        await self.sync.refresh()
        return result

    async def logout(self) -> None:
        """Raises ApiError if the backend refuses; nothing changes locally then."""
        await self.session.logout(self.api)
        # the next person at this terminal should not inherit the cart
        self.cart.clear_cart()

    def handle_unauthorized(self) -> None:
        """A token-bearing request got 401: the session is over."""
        if not self.session.is_authenticated:
            return
        _logger.info("Backend rejected the session, logging out.")
        self.session.clear_auth()
        self._navigate(config.LOGIN_ROUTE)

    def _accept(self, result: AuthResult) -> None:
        self.session.set_auth(result.username, result.email, result.role, result.access_token)

    def _navigate(self, route: str) -> None:
        if self.navigate is not None:
            self.navigate(route)

    def _notify(self, message: str, severity: str = "information") -> None:
        if self.notify is not None:
            self.notify(message, severity=severity)
        else:
            _logger.info(f"[{severity}] {message}")

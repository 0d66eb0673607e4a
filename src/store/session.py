from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Callable, List, Optional

from db.storage import PersistentStorage
from store.models import ROLES, Role
from utils import config
from utils.logger import get_logger

if TYPE_CHECKING:
    from api.client import BackendClient

_logger = get_logger(__name__)

SessionListener = Callable[["SessionStore"], None]


@dataclass(frozen=True)
class Session:
    """
    Identity of whoever is using the client.

    Fields:
      - username / email: as returned by the auth endpoints
      - role: "user" | "admin" | "superadmin", only meaningful with a token
      - token: bearer token; None means nobody is logged in
    """

    username: Optional[str] = None
    email: Optional[str] = None
    role: Optional[Role] = None
    token: Optional[str] = None


EMPTY_SESSION = Session()


class SessionStore:
    """Single source of truth for "who is logged in", persisted across runs."""

    def __init__(
        self,
        storage: PersistentStorage,
        storage_key: str = config.AUTH_STORAGE_KEY,
        navigate: Optional[Callable[[str], None]] = None,
    ):
        self.storage = storage
        self.storage_key = storage_key
        self.navigate = navigate
        self.state: Session = EMPTY_SESSION
        self.is_hydrated = False
        self._listeners: List[SessionListener] = []

    @property
    def username(self) -> Optional[str]:
        return self.state.username

    @property
    def email(self) -> Optional[str]:
        return self.state.email

    @property
    def role(self) -> Optional[Role]:
        return self.state.role

    @property
    def token(self) -> Optional[str]:
        return self.state.token

    @property
    def is_authenticated(self) -> bool:
        return self.state.token is not None

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and self.state.role in ("admin", "superadmin")

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call listener after every change. Returns a function that unsubscribes."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_auth(
        self,
        username: Optional[str],
        email: Optional[str],
        role: Optional[Role],
        token: Optional[str],
    ) -> None:
        """Overwrite all four fields at once. Login, register and OTP verify all end here."""
        self._set(Session(username=username, email=email, role=role, token=token))
        _logger.debug(f"session set for {username!r} ({role})")

    def clear_auth(self) -> None:
        self._set(EMPTY_SESSION)
        _logger.debug("session cleared")

    async def logout(self, api: "BackendClient") -> None:
        """
        End the session on the backend, then locally.

        Not optimistic: if the backend call raises, the error propagates and the
        local session is left as it was, so the caller can simply retry.
        """
        await api.logout()
        self.clear_auth()
        self.storage.remove_item(self.storage_key)
        _logger.info("Logged out.")
        if self.navigate is not None:
            self.navigate(config.LOGIN_ROUTE)

    async def hydrate(self) -> None:
        """Restore the persisted session. Unreadable data leaves the session empty."""
        session = EMPTY_SESSION
        try:
            raw = await self.storage.load(self.storage_key)
            if raw:
                session = self._decode(raw)
        except Exception:
            _logger.warning("Persisted session is unreadable, starting logged out.", exc_info=True)
            session = EMPTY_SESSION

        self.is_hydrated = True
        self.state = session
        self._emit()

    def _set(self, session: Session) -> None:
        self.state = session
        self.storage.set_item(self.storage_key, json.dumps(asdict(session)))
        self._emit()

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    @staticmethod
    def _decode(raw: str) -> Session:
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"expected an object, got {type(data).__name__}")
        role = data.get("role")
        token = data.get("token")
        return Session(
            username=data.get("username"),
            email=data.get("email"),
            role=role if role in ROLES else None,
            token=token if isinstance(token, str) and token else None,
        )

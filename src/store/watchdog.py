from __future__ import annotations

import asyncio
import base64
import binascii
import json
import time
from typing import Callable, Optional

from store.session import SessionStore
from utils import config
from utils.logger import get_logger

_logger = get_logger(__name__)


class TokenDecodeError(ValueError):
    pass


def decode_token_expiry(token: str) -> float:
    """
    Return the `exp` claim (seconds since epoch) of a three-part bearer token.

    Only the payload is read; the signature is the backend's business.
    Raises TokenDecodeError if the token is malformed or carries no numeric exp.
    """
    parts = token.split(".")
    if len(parts) != 3:
        raise TokenDecodeError(f"expected 3 segments, got {len(parts)}")

    payload = parts[1]
    payload += "=" * (-len(payload) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload.encode("ascii")))
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise TokenDecodeError(f"payload is not base64url JSON: {e}") from e

    if not isinstance(claims, dict):
        raise TokenDecodeError("payload is not an object")
    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise TokenDecodeError(f"exp claim missing or not numeric: {exp!r}")
    return float(exp)


class TokenWatchdog:
    """
    Ends the session when its token expires, without asking the backend.

    Rearmed on every token change: an already expired token clears the
    session on the spot, otherwise a one-shot timer fires at the expiry
    instant. A token that cannot be decoded is logged and left alone.
    """

    def __init__(
        self,
        session: SessionStore,
        navigate: Optional[Callable[[str], None]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.session = session
        self.navigate = navigate
        self._clock = clock
        self._token: Optional[str] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def is_armed(self) -> bool:
        return self._timer is not None

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.session.subscribe(self._on_session_change)
        self._on_session_change(self.session)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._cancel()
        self._token = None

    def _on_session_change(self, session: SessionStore) -> None:
        token = session.token
        if token == self._token:
            return
        self._token = token
        self._cancel()
        if token is None:
            return

        try:
            expires_at = decode_token_expiry(token)
        except TokenDecodeError as e:
            _logger.warning(f"Failed to decode token, expiry not enforced: {e}")
            return

        remaining = expires_at - self._clock()
        if remaining <= 0:
            _logger.info("Token already expired.")
            self._expire()
            return

        self._timer = asyncio.get_running_loop().call_later(remaining, self._expire)
        _logger.debug(f"token expires in {remaining:.0f}s")

    def _cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _expire(self) -> None:
        self._timer = None
        _logger.info("Session expired, logging out.")
        self.session.clear_auth()
        if self.navigate is not None:
            self.navigate(config.LOGIN_ROUTE)

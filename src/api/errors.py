from typing import Any, Optional


class ApiError(Exception):
    """Error talking to the backend. status is None when no response arrived."""

    def __init__(self, message: str, status: Optional[int] = None, payload: Any = None):
        self.message = message
        self.status = status
        self.payload = payload
        super().__init__(message)


class UnauthorizedError(ApiError):
    """Backend answered 401 to a request that carried a bearer token."""

    pass


def response_message(payload: Any, default: str) -> str:
    """Pick the human readable part of a response body, whichever key the backend used."""
    if isinstance(payload, dict):
        for key in ("detail", "message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
            # validation errors come back as a list of {"msg": ...}
            if isinstance(value, list) and value and isinstance(value[0], dict):
                msg = value[0].get("msg")
                if msg:
                    return str(msg)
    return default

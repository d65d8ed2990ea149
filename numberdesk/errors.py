from typing import Optional


class NumberDeskError(Exception):
    """Base class for every failure the control surface reports."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigError(NumberDeskError):
    pass


class ValidationError(NumberDeskError):
    """Input rejected locally. No request was issued."""


class GatewayError(NumberDeskError):
    """A dispatched request did not produce a usable response."""


class AuthorizationError(GatewayError):
    """The backend refused the call's credentials (401)."""

    def __init__(self, detail: Optional[str] = None, status: int = 401):
        super().__init__(detail or "Not authenticated")
        self.status = status
        self.detail = detail


class BackendError(GatewayError):
    """Non-2xx response. `message` is the backend's detail when it sent one."""

    def __init__(self, status: int, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.detail = detail


class TransportError(GatewayError):
    """Network failure or timeout. No response was received."""

"""Custom exceptions for the application"""
from typing import Any, Optional


class GatewayError(Exception):
    """Base class for errors raised by the gateway core"""


class AuthError(GatewayError):
    """Missing or incorrect shared credential"""


class InvalidModelError(GatewayError):
    """Requested model string does not name a supported model"""

    def __init__(self, model: Any):
        self.model = model
        super().__init__(f"Unsupported model: {model!r}")


class UnsupportedModelError(LookupError):
    """Model mapping table has no entry for a (model, provider) pair.

    Only reachable when the model enumeration grows without the table following it.
    """

    def __init__(self, model: Any, provider: Any):
        self.model = model
        self.provider = provider
        super().__init__(f"No mapping for model {model} on provider {provider}")


class UpstreamError(GatewayError):
    """Transport failure, malformed payload or error frame from the backend"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class BackendContentError(GatewayError):
    """Backend answered with an error-shaped payload and a client error status"""

    def __init__(self, status_code: int, body: Any, message: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        self.message = message or _message_from_body(body) or f"HTTP {status_code}"
        super().__init__(self.message)

    @property
    def error_type(self) -> str:
        if isinstance(self.body, dict):
            error = self.body.get("error")
            if isinstance(error, dict) and error.get("type"):
                return error["type"]
        return "invalid_request_error"


class ReportError(GatewayError):
    """Usage reporter failed to record a usage report"""


def _message_from_body(body: Any) -> Optional[str]:
    """Handle both error formats: {"error": {"message": "..."}} and {"error": "..."}"""
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, str):
        return error
    if isinstance(error, dict):
        return error.get("message")
    return None

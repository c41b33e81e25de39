"""License heartbeat exception hierarchy."""

import json
from typing import Any, Optional


class HeartbeatClientError(Exception):
    """Base exception for all license heartbeat errors."""

    def __init__(self, message: str = "", code: str = "HEARTBEAT_CLIENT_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class GatewayError(HeartbeatClientError):
    """Raised when the licensing API returns an error envelope or cannot be reached."""

    def __init__(
        self,
        errors: Optional[list[dict[str, Any]]] = None,
        status_code: Optional[int] = None,
        message: str = "",
        code: str = "GATEWAY_ERROR",
    ):
        self.errors = errors or []
        self.status_code = status_code
        if not message:
            message = json.dumps(self.errors, indent=2) if self.errors else "Gateway request failed"
        super().__init__(message, code=code)

    @property
    def summary(self) -> str:
        """One-line 'title: detail' rendering of the error objects."""
        if not self.errors:
            return self.message
        return ", ".join(
            f"{e.get('title', 'Error')}: {e.get('detail', '')}" for e in self.errors
        )


class ActivationRejected(GatewayError):
    """Raised when the machine seat claim is refused by the licensing API."""

    def __init__(
        self,
        errors: Optional[list[dict[str, Any]]] = None,
        status_code: Optional[int] = None,
        message: str = "",
    ):
        super().__init__(errors, status_code, message, code="ACTIVATION_REJECTED")

    @classmethod
    def from_gateway_error(cls, exc: GatewayError) -> "ActivationRejected":
        return cls(exc.errors, exc.status_code, exc.message)


class LicenseInvalid(HeartbeatClientError):
    """Raised when validation reports a code that does not permit activation."""

    def __init__(self, detail: str, code: str):
        self.detail = detail
        super().__init__(f"license {detail} ({code})", code=code)

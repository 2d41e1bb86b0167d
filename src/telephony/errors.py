"""Domain-specific exceptions for call bridging.

Safe to import from API layers without pulling in network clients.
"""

from __future__ import annotations

RETRYABLE_STATUS_CODES = frozenset({404, 504})


class BridgeError(Exception):
    status_code: int = 500
    default_detail: str = "Call bridge error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class ConfigurationError(BridgeError):
    status_code = 500
    default_detail = "Call bridge is not configured."


class CallAcceptError(BridgeError):
    """Raised when the remote accept request fails.

    ``remote_status`` is the HTTP status returned by the realtime API, or None
    for network errors and timeouts.
    """

    status_code = 502
    default_detail = "Call accept failed."

    def __init__(self, call_id: str, detail: str | None = None, *, remote_status: int | None = None) -> None:
        super().__init__(detail)
        self.call_id = call_id
        self.remote_status = remote_status

    @property
    def retryable(self) -> bool:
        # 404 means the call record may not be routable yet.
        return self.remote_status in RETRYABLE_STATUS_CODES

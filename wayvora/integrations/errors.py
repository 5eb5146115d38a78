"""Typed upstream failures.

Transport-level failures (timeout, connection) are kept distinct from
upstream-reported error statuses. Rate-limit and gateway-timeout responses get
their own subtype because the warm job backs off on them.
"""

RATE_LIMIT_STATUSES = frozenset({429, 504})


class UpstreamError(Exception):
    """Base class for failures talking to Overpass, Nominatim or Ollama."""

    transient = False

    def __init__(self, service: str, message: str, status_code: int | None = None):
        super().__init__(f"{service}: {message}")
        self.service = service
        self.status_code = status_code


class UpstreamTimeoutError(UpstreamError):
    """The request exceeded its wall-clock timeout or was aborted."""

    transient = True


class UpstreamTransportError(UpstreamError):
    """Connection refused, DNS failure, reset, ..."""

    transient = True


class UpstreamStatusError(UpstreamError):
    """Upstream answered with a non-success status."""

    def __init__(self, service: str, status_code: int, detail: str = ""):
        message = f"HTTP {status_code}"
        if detail:
            message = f"{message}: {detail[:100]}"
        super().__init__(service, message, status_code)

    @property
    def transient(self) -> bool:
        return self.status_code is not None and self.status_code >= 500


class UpstreamRateLimitError(UpstreamStatusError):
    """HTTP 429 or 504: the upstream is shedding load."""

    transient = True


class UpstreamResponseError(UpstreamError):
    """Upstream answered with a body (or redirect chain) we cannot use."""


def status_error(service: str, status_code: int, detail: str = "") -> UpstreamStatusError:
    if status_code in RATE_LIMIT_STATUSES:
        return UpstreamRateLimitError(service, status_code, detail)
    return UpstreamStatusError(service, status_code, detail)

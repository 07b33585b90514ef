"""
Upstream client for the GraphQL gateway.

Provides a single outbound-call primitive used by every resolver to reach
the external REST/JSON API behind a field.

The client handles:
- Authentication (bearer token derived per call, never logged)
- Cache hints passed through to the transport
- Response parsing
- Error capture into typed failures

Example:
    client = UpstreamClient(service_name="pokeapi")
    result = await client.call(
        UpstreamCallDescriptor(
            url="https://pokeapi.co/api/v2/pokemon/1",
            cache=CachePolicy(ttl=50, cache_everything=True),
        )
    )
    if result.is_success:
        pokemon = result.data
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum, StrEnum
from typing import Any, Generic, TypeVar

import httpx

from gqlproxy.logging import get_upstream_logger, log_with_context, redact_headers

logger = get_upstream_logger()

T = TypeVar("T")


# =============================================================================
# Call Descriptor
# =============================================================================


@dataclass(frozen=True)
class CachePolicy:
    """Cache hint attached to an outbound call.

    Attributes:
        ttl: Seconds the transport may serve a cached response
        cache_everything: Cache regardless of content type or response headers
    """

    ttl: int
    cache_everything: bool = False

    def as_extension(self) -> dict[str, Any]:
        return {"ttl": self.ttl, "cache_everything": self.cache_everything}


@dataclass(frozen=True)
class UpstreamCallDescriptor:
    """Everything needed to make one outbound call.

    The bearer token is kept out of ``repr`` and out of ``headers``; the
    Authorization header is derived only when the request is built.

    Attributes:
        url: Absolute target URL
        method: HTTP method
        headers: Extra request headers
        body: JSON-serializable request body
        bearer_token: Credential sent as ``Authorization: Bearer <token>``
        cache: Optional cache hint for the transport
        expect_json: Parse the success body as JSON
    """

    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    bearer_token: str | None = field(default=None, repr=False)
    cache: CachePolicy | None = None
    expect_json: bool = True

    def request_headers(self) -> dict[str, str]:
        """Headers to send, including the derived auth header."""
        headers = {"Accept": "application/json", **self.headers}
        if self.bearer_token:
            headers["Authorization"] = f"Bearer {self.bearer_token}"
        return headers

    def extensions(self) -> dict[str, Any]:
        """Transport-level request extensions."""
        if self.cache is None:
            return {}
        return {"cache_policy": self.cache.as_extension()}


# =============================================================================
# Error Types
# =============================================================================


class FailureKind(StrEnum):
    """Closed set of failure kinds a field resolution can end in."""

    CONFIGURATION = "configuration"
    UPSTREAM_HTTP = "upstream_http"
    UPSTREAM_TRANSPORT = "upstream_transport"
    MALFORMED_RESPONSE = "malformed_response"


class GatewayError(Exception):
    """Base exception for field-level gateway failures.

    Every subclass declares its ``kind`` so the normalizer can dispatch
    on it exhaustively.
    """

    kind: FailureKind

    def __init__(
        self,
        message: str,
        *,
        service_name: str = "unknown",
        status_code: int | None = None,
        body: str | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(message)
        self.service_name = service_name
        self.status_code = status_code
        self.body = body
        self.reason = reason

    def __str__(self) -> str:
        parts = [self.args[0]]
        if self.status_code:
            parts.append(f"(status: {self.status_code})")
        if self.service_name != "unknown":
            parts.append(f"[{self.service_name}]")
        return " ".join(parts)


class ConfigurationError(GatewayError):
    """A secret or setting required by a field is not configured.

    Raised before any network call is made.
    """

    kind = FailureKind.CONFIGURATION

    def __init__(self, setting: str, *, service_name: str = "unknown") -> None:
        super().__init__(f"{setting} is not set", service_name=service_name)
        self.setting = setting


class UpstreamHttpError(GatewayError):
    """The upstream answered with a non-2xx status."""

    kind = FailureKind.UPSTREAM_HTTP


class UpstreamTransportError(GatewayError):
    """The upstream could not be reached (connection, DNS, timeout)."""

    kind = FailureKind.UPSTREAM_TRANSPORT


class MalformedResponseError(GatewayError):
    """The upstream answered 2xx with a body that is not valid JSON."""

    kind = FailureKind.MALFORMED_RESPONSE


# =============================================================================
# Result Type
# =============================================================================


@dataclass
class UpstreamResponse:
    """Metadata of a completed upstream exchange.

    Attributes:
        status_code: HTTP status code
        headers: Response headers
        latency_ms: Request latency in milliseconds
    """

    status_code: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    latency_ms: float = 0.0


class UpstreamResultStatus(Enum):
    """Status of an upstream call."""

    SUCCESS = "success"
    ERROR = "error"


@dataclass
class UpstreamResult(Generic[T]):
    """Result of an upstream call.

    Uses a Result pattern so the client never raises past its boundary;
    resolvers decide whether to unwrap (raise) or inspect.

    Example:
        result = await client.call(descriptor)
        if result.is_success:
            payload = result.data
        else:
            logger.error(f"Failed: {result.error}")
    """

    status: UpstreamResultStatus
    _data: T | None = None
    _error: GatewayError | None = None
    _response: UpstreamResponse | None = None

    @property
    def is_success(self) -> bool:
        return self.status == UpstreamResultStatus.SUCCESS

    @property
    def is_error(self) -> bool:
        return self.status == UpstreamResultStatus.ERROR

    @property
    def data(self) -> T | None:
        """Get the parsed payload. Raises if the call failed."""
        if self.is_error:
            raise ValueError("No data available - call failed")
        return self._data

    @property
    def error(self) -> GatewayError:
        """Get the failure. Raises if the call succeeded."""
        if self._error is None:
            raise ValueError("No error - call succeeded")
        return self._error

    @property
    def response(self) -> UpstreamResponse | None:
        return self._response

    @classmethod
    def success(cls, data: T | None, response: UpstreamResponse | None = None) -> UpstreamResult[T]:
        return cls(status=UpstreamResultStatus.SUCCESS, _data=data, _response=response)

    @classmethod
    def failure(cls, error: GatewayError, response: UpstreamResponse | None = None) -> UpstreamResult[T]:
        return cls(status=UpstreamResultStatus.ERROR, _error=error, _response=response)

    def unwrap(self) -> T | None:
        """Unwrap the result, raising the failure if the call failed."""
        if self.is_error:
            raise self.error
        return self._data



# =============================================================================
# Client
# =============================================================================


@dataclass(frozen=True)
class UpstreamClient:
    """Issues exactly one outbound HTTP request per call.

    Holds only immutable configuration, so a single instance is shared by
    all concurrent requests. No retries are attempted; callers that want
    them must loop themselves.

    Attributes:
        service_name: Name used in logs and errors when a call does not override it
        timeout: Per-call timeout in seconds (None disables it)
        transport: Optional httpx transport (mock transports in tests, caching
            transports in deployments that honor the ``cache_policy`` extension)
    """

    service_name: str = "upstream"
    timeout: float | None = 60.0
    transport: httpx.AsyncBaseTransport | None = None

    async def call(
        self, descriptor: UpstreamCallDescriptor, *, service_name: str | None = None
    ) -> UpstreamResult[Any]:
        """Make the call described by ``descriptor``.

        Args:
            descriptor: Outbound call description
            service_name: Service label for logs and errors

        Returns:
            UpstreamResult with the parsed JSON payload or a typed failure
        """
        svc = service_name or self.service_name
        method = descriptor.method.upper()
        headers = descriptor.request_headers()

        log_with_context(
            logger,
            logging.DEBUG,
            f"[{svc}] {method} {descriptor.url}",
            headers=redact_headers(headers),
            cache=descriptor.cache.as_extension() if descriptor.cache else None,
        )

        start_time = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                try:
                    request = client.build_request(
                        method,
                        descriptor.url,
                        headers=headers,
                        json=descriptor.body,
                        extensions=descriptor.extensions(),
                    )
                except UnicodeEncodeError as e:
                    return self._fail(
                        UpstreamTransportError(
                            "Invalid request",
                            service_name=svc,
                            reason="request headers contain non-ASCII characters",
                        ),
                        method,
                        descriptor.url,
                        e,
                    )
                except httpx.InvalidURL as e:
                    return self._fail(
                        UpstreamTransportError(
                            "Invalid request",
                            service_name=svc,
                            reason=f"invalid URL: {e}",
                        ),
                        method,
                        descriptor.url,
                        e,
                    )
                response = await client.send(request)
        except httpx.TimeoutException as e:
            return self._fail(
                UpstreamTransportError(
                    "Request timed out",
                    service_name=svc,
                    reason=f"timed out after {self.timeout}s",
                ),
                method,
                descriptor.url,
                e,
            )
        except httpx.RequestError as e:
            return self._fail(
                UpstreamTransportError(
                    "Request failed",
                    service_name=svc,
                    reason=str(e) or type(e).__name__,
                ),
                method,
                descriptor.url,
                e,
            )

        meta = UpstreamResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            latency_ms=(time.monotonic() - start_time) * 1000,
        )

        log_with_context(
            logger,
            logging.INFO,
            f"[{svc}] {method} {descriptor.url} -> {response.status_code} ({meta.latency_ms:.1f}ms)",
            status_code=response.status_code,
            latency_ms=round(meta.latency_ms, 1),
        )

        if not response.is_success:
            return self._fail(
                UpstreamHttpError(
                    f"API error: {response.status_code}",
                    service_name=svc,
                    status_code=response.status_code,
                    body=response.text,
                ),
                method,
                descriptor.url,
                response=meta,
            )

        if not descriptor.expect_json:
            return UpstreamResult.success(None, response=meta)

        try:
            data = response.json()
        except ValueError as e:
            return self._fail(
                MalformedResponseError(
                    "Malformed upstream response",
                    service_name=svc,
                    reason=f"invalid JSON in response body: {e}",
                ),
                method,
                descriptor.url,
                e,
                response=meta,
            )

        return UpstreamResult.success(data, response=meta)

    def _fail(
        self,
        error: GatewayError,
        method: str,
        url: str,
        cause: BaseException | None = None,
        *,
        response: UpstreamResponse | None = None,
    ) -> UpstreamResult[Any]:
        if cause is not None:
            error.__cause__ = cause
        log_with_context(
            logger,
            logging.ERROR,
            f"[{error.service_name}] {method} {url} failed: {error}",
            kind=error.kind.value,
            status_code=error.status_code,
            reason=error.reason,
        )
        return UpstreamResult.failure(error, response=response)


__all__ = [
    "CachePolicy",
    "ConfigurationError",
    "FailureKind",
    "GatewayError",
    "MalformedResponseError",
    "UpstreamCallDescriptor",
    "UpstreamClient",
    "UpstreamHttpError",
    "UpstreamResponse",
    "UpstreamResult",
    "UpstreamResultStatus",
    "UpstreamTransportError",
]

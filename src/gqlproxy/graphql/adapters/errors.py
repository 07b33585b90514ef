"""
Error normalization for upstream failures.

Converts the typed failures produced by the upstream client (and any
unexpected exception raised inside a resolver) into one consistent shape
that crosses the GraphQL boundary as a field error.

Guarantees:
- Messages never contain configured secret values
- Messages never contain stack traces or outbound request headers
- Every failure kind maps to exactly one message template

Example:
    try:
        payload = result.unwrap()
    except GatewayError as e:
        normalized = normalize_error(e, operation="DeepSeek API request")
        raise normalized.to_graphql_error()
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, assert_never

from graphql import GraphQLError

from gqlproxy.graphql.adapters.base import FailureKind, GatewayError
from gqlproxy.logging import redact


class ErrorKind(StrEnum):
    """Kinds that can appear on a normalized error.

    Mirrors ``FailureKind`` and adds ``INTERNAL`` for exceptions that are
    not gateway failures (bugs in a resolver).
    """

    CONFIGURATION = "configuration"
    UPSTREAM_HTTP = "upstream_http"
    UPSTREAM_TRANSPORT = "upstream_transport"
    MALFORMED_RESPONSE = "malformed_response"
    INTERNAL = "internal"


@dataclass
class NormalizedError:
    """Normalized error structure for the GraphQL layer.

    Attributes:
        code: Machine-readable error code (e.g., "DEEPSEEK_UPSTREAM_HTTP_ERROR")
        kind: Failure kind
        message: Client-facing message
        service_name: Name of the upstream service
        status_code: Upstream HTTP status if applicable
        timestamp: When the error was normalized
        request_id: Request ID for tracing
    """

    code: str
    kind: ErrorKind
    message: str
    service_name: str
    status_code: int | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    request_id: str | None = None

    def to_graphql_extensions(self) -> dict[str, Any]:
        """Convert to GraphQL error extensions."""
        extensions: dict[str, Any] = {
            "code": self.code,
            "kind": self.kind.value,
            "service": self.service_name,
        }

        if self.status_code:
            extensions["statusCode"] = self.status_code

        if self.request_id:
            extensions["requestId"] = self.request_id

        return extensions

    def to_graphql_error(self) -> GraphQLError:
        """Build the field error raised through the engine."""
        return GraphQLError(self.message, extensions=self.to_graphql_extensions())

    def to_log_dict(self) -> dict[str, Any]:
        """Convert to dict for structured logging."""
        return {
            "error_code": self.code,
            "kind": self.kind.value,
            "message": self.message,
            "service_name": self.service_name,
            "status_code": self.status_code,
            "timestamp": self.timestamp.isoformat(),
            "request_id": self.request_id,
        }


# =============================================================================
# Error Normalization Functions
# =============================================================================


def normalize_error(
    error: Exception,
    *,
    operation: str,
    service_name: str | None = None,
    request_id: str | None = None,
    secrets: Iterable[str] = (),
) -> NormalizedError:
    """Normalize any exception to a NormalizedError.

    Args:
        error: The exception to normalize
        operation: Human label of the failed operation (e.g., "PokeAPI request")
        service_name: Override service name
        request_id: Request ID for tracing
        secrets: Secret values that must not appear in the message

    Returns:
        NormalizedError with consistent structure
    """
    if not isinstance(error, GatewayError):
        normalized = _normalize_unknown_error(error, operation, service_name)
    else:
        svc = service_name or error.service_name
        match error.kind:
            case FailureKind.CONFIGURATION:
                normalized = _normalize_configuration_error(error, svc)
            case FailureKind.UPSTREAM_HTTP:
                normalized = _normalize_http_error(error, operation, svc)
            case FailureKind.UPSTREAM_TRANSPORT | FailureKind.MALFORMED_RESPONSE:
                normalized = _normalize_transport_error(error, operation, svc)
            case _:
                assert_never(error.kind)

    normalized.request_id = request_id
    normalized.message = redact(normalized.message, tuple(secrets))
    return normalized


def _code(service_name: str, suffix: str) -> str:
    return f"{service_name.upper().replace('-', '_')}_{suffix}"


def _normalize_configuration_error(error: GatewayError, service_name: str) -> NormalizedError:
    """Missing secret or setting; names the setting, nothing about the network."""
    setting = getattr(error, "setting", None) or "A required setting"
    return NormalizedError(
        code=_code(service_name, "CONFIGURATION_ERROR"),
        kind=ErrorKind.CONFIGURATION,
        message=f"{setting} environment variable is not set",
        service_name=service_name,
    )


def _normalize_http_error(error: GatewayError, operation: str, service_name: str) -> NormalizedError:
    """Non-2xx upstream answer; status and upstream body are passed through verbatim."""
    body = error.body if error.body is not None else ""
    return NormalizedError(
        code=_code(service_name, "UPSTREAM_HTTP_ERROR"),
        kind=ErrorKind.UPSTREAM_HTTP,
        message=f"{operation} failed: {error.status_code} - {body}",
        service_name=service_name,
        status_code=error.status_code,
    )


def _normalize_transport_error(
    error: GatewayError, operation: str, service_name: str
) -> NormalizedError:
    """No usable HTTP status: connection failure, timeout or malformed JSON."""
    kind = ErrorKind(error.kind.value)
    reason = error.reason or error.args[0]
    return NormalizedError(
        code=_code(service_name, f"{kind.value.upper()}_ERROR"),
        kind=kind,
        message=f"{operation} failed: {reason}",
        service_name=service_name,
    )


def _normalize_unknown_error(
    error: Exception, operation: str, service_name: str | None
) -> NormalizedError:
    """Unexpected resolver exception; its text stays in the server log."""
    svc = service_name or "gateway"
    return NormalizedError(
        code=_code(svc, "INTERNAL_ERROR"),
        kind=ErrorKind.INTERNAL,
        message=f"{operation} failed: an unexpected error occurred",
        service_name=svc,
    )


__all__ = [
    "ErrorKind",
    "NormalizedError",
    "normalize_error",
]

"""
Upstream adapters for the GraphQL gateway.

Provides the outbound-call client every resolver uses to reach its
external REST/JSON API, plus normalization of its failures.
"""

from gqlproxy.graphql.adapters.base import (
    CachePolicy,
    ConfigurationError,
    FailureKind,
    GatewayError,
    MalformedResponseError,
    UpstreamCallDescriptor,
    UpstreamClient,
    UpstreamHttpError,
    UpstreamResponse,
    UpstreamResult,
    UpstreamTransportError,
)
from gqlproxy.graphql.adapters.errors import (
    ErrorKind,
    NormalizedError,
    normalize_error,
)

__all__ = [
    # Client
    "UpstreamClient",
    "UpstreamCallDescriptor",
    "CachePolicy",
    # Result types
    "UpstreamResponse",
    "UpstreamResult",
    # Failure types
    "FailureKind",
    "GatewayError",
    "ConfigurationError",
    "UpstreamHttpError",
    "UpstreamTransportError",
    "MalformedResponseError",
    # Error normalization
    "ErrorKind",
    "NormalizedError",
    "normalize_error",
]

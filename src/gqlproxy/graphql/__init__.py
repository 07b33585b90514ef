"""
GraphQL gateway layer.

Maps GraphQL fields onto single outbound calls to external REST/JSON APIs.

Key components:
- context: Per-request context (bound environment, deferred-work handle)
- adapters: Upstream client and error normalization
- resolvers: Resolver error boundary and input conversion
- integration: FastAPI/Strawberry integration
"""

from gqlproxy.graphql.adapters import (
    CachePolicy,
    ConfigurationError,
    ErrorKind,
    FailureKind,
    GatewayError,
    MalformedResponseError,
    NormalizedError,
    UpstreamCallDescriptor,
    UpstreamClient,
    UpstreamHttpError,
    UpstreamResult,
    UpstreamTransportError,
    normalize_error,
)
from gqlproxy.graphql.context import MissingEnvironmentError, RequestContext, create_context
from gqlproxy.graphql.integration import create_app, mount_graphql, print_schema
from gqlproxy.graphql.resolvers import input_to_payload, resolver_boundary

__all__ = [
    # Core components
    "RequestContext",
    "create_context",
    "create_app",
    "mount_graphql",
    "print_schema",
    "resolver_boundary",
    "input_to_payload",
    # Upstream client
    "UpstreamClient",
    "UpstreamCallDescriptor",
    "CachePolicy",
    "UpstreamResult",
    # Failures
    "FailureKind",
    "GatewayError",
    "ConfigurationError",
    "UpstreamHttpError",
    "UpstreamTransportError",
    "MalformedResponseError",
    "MissingEnvironmentError",
    # Error normalization
    "ErrorKind",
    "NormalizedError",
    "normalize_error",
]

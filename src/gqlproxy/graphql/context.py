"""
GraphQL Context for per-request configuration.

The context is attached to every GraphQL operation and provides:
- The bound environment (settings and secrets)
- The host's background-task handle for work deferred past the response
- The shared upstream client
- A request ID for tracing
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from strawberry.fastapi import BaseContext

from gqlproxy.graphql.adapters.base import ConfigurationError
from gqlproxy.logging import get_gateway_logger, log_with_context

if TYPE_CHECKING:
    from fastapi import BackgroundTasks

    from gqlproxy.config import GatewaySettings
    from gqlproxy.graphql.adapters.base import UpstreamClient

logger = get_gateway_logger()


class MissingEnvironmentError(RuntimeError):
    """The hosting environment has no bound configuration at all.

    This is a deployment error, fatal for the whole request, and distinct
    from a single missing secret.
    """


class RequestContext(BaseContext):
    """
    GraphQL request context.

    Every resolver receives this context as ``info.context``. It is created
    once per inbound operation and never shared between operations.

    Attributes:
        env: Bound settings for this gateway instance
        upstream: Upstream client (immutable, shared)
        background_tasks: Host handle for deferred work
        request_id: Unique request identifier for tracing

    Example:
        async def resolve_chat(self, info: strawberry.Info) -> str:
            ctx: RequestContext = info.context
            api_key = ctx.require_secret("DEEPSEEK_API_KEY")
            ...
    """

    def __init__(
        self,
        env: GatewaySettings,
        *,
        upstream: UpstreamClient,
        background_tasks: BackgroundTasks | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__()
        self.env = env
        self.upstream = upstream
        self.background_tasks = background_tasks
        self.request_id = request_id or str(uuid.uuid4())

    def require_secret(self, name: str) -> str:
        """Get a secret's value or raise ConfigurationError if it is unset or empty."""
        secret = self.env.secrets().get(name)
        value = secret.get_secret_value() if secret is not None else ""
        if not value:
            raise ConfigurationError(name)
        return value

    def secret_info(self, name: str) -> tuple[bool, int]:
        """Report whether a secret is set and its length, never its value."""
        secret = self.env.secrets().get(name)
        value = secret.get_secret_value() if secret is not None else ""
        return bool(value), len(value)

    def secret_values(self) -> list[str]:
        """Configured secret values, for redaction of outgoing messages."""
        return self.env.secret_values()

    def defer(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """Run ``func`` after the response has been sent."""
        if self.background_tasks is None:
            log_with_context(
                logger,
                logging.DEBUG,
                f"No background task handle; dropping deferred {getattr(func, '__name__', func)}",
                request_id=self.request_id,
            )
            return
        self.background_tasks.add_task(func, *args, **kwargs)


def create_context(
    env: GatewaySettings | None,
    background_tasks: BackgroundTasks | None,
    *,
    upstream: UpstreamClient,
    request_id: str | None = None,
) -> RequestContext:
    """
    Create the per-operation context.

    Args:
        env: Bound settings; None means the host is misconfigured
        background_tasks: Host handle for deferred work
        upstream: Shared upstream client
        request_id: Incoming request ID (generated when absent)

    Returns:
        RequestContext for one operation

    Raises:
        MissingEnvironmentError: If no environment is bound
    """
    if env is None:
        raise MissingEnvironmentError("Environment bindings not found")

    return RequestContext(
        env,
        upstream=upstream,
        background_tasks=background_tasks,
        request_id=request_id,
    )

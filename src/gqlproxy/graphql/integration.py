"""
FastAPI/Strawberry integration for the GraphQL gateway.

Builds the ASGI application for a gateway instance: the GraphQL router with
its per-request context, CORS, request logging and the handler for host
failures that cannot be expressed as a GraphQL response.
"""

from __future__ import annotations

import json
import logging
import re
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import httpx
from fastapi import BackgroundTasks, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from strawberry.fastapi import GraphQLRouter

from gqlproxy.config import GatewaySettings, get_settings
from gqlproxy.graphql.adapters.base import UpstreamClient
from gqlproxy.graphql.context import MissingEnvironmentError, RequestContext, create_context
from gqlproxy.logging import get_gateway_logger, log_with_context, redact

if TYPE_CHECKING:
    from gqlproxy.instances import GatewayInstance

logger = get_gateway_logger()

_EXAMPLE_QUERY = re.compile(r"const EXAMPLE_QUERY = `.*?`;", re.DOTALL)


def create_app(
    instance: GatewayInstance | str,
    settings: GatewaySettings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    path: str = "/graphql",
    enable_graphiql: bool = True,
) -> FastAPI:
    """
    Create a FastAPI application serving one gateway instance.

    Args:
        instance: GatewayInstance or its registered name
        settings: Bound environment (loaded from the process environment if None)
        transport: httpx transport for upstream calls (default network transport)
        path: URL path for GraphQL endpoint (default: /graphql)
        enable_graphiql: Enable GraphiQL IDE (default: True)

    Returns:
        FastAPI application with GraphQL endpoint

    Example:
        app = create_app("chat")
        # Run with: uvicorn mymodule:app
    """
    if isinstance(instance, str):
        from gqlproxy.instances import get_instance

        instance = get_instance(instance)

    settings = settings if settings is not None else get_settings()

    app = FastAPI(
        title=f"{instance.title} GraphQL Gateway",
        description=f"GraphQL gateway proxying the {instance.title} API",
    )
    app.state.env = settings
    app.state.upstream = UpstreamClient(
        service_name=instance.name,
        timeout=settings.upstream_timeout,
        transport=transport,
    )

    _install_error_handlers(app)
    app.add_middleware(RequestLoggingMiddleware)

    if instance.cors is not None:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(instance.cors.allow_origins),
            allow_methods=list(instance.cors.allow_methods),
            allow_headers=list(instance.cors.allow_headers),
        )

    mount_graphql(app, instance, path=path, enable_graphiql=enable_graphiql)

    log_with_context(
        logger,
        logging.INFO,
        f"{instance.title} gateway ready at {path}",
        instance=instance.name,
        has_secrets=bool(settings.secret_values()),
    )
    return app


def mount_graphql(
    app: FastAPI,
    instance: GatewayInstance,
    *,
    path: str = "/graphql",
    enable_graphiql: bool = True,
) -> None:
    """
    Mount an instance's GraphQL endpoint on an existing FastAPI application.

    The application must carry ``state.env`` and ``state.upstream``
    (``create_app`` sets both).

    Args:
        app: Existing FastAPI application
        instance: Gateway instance to serve
        path: URL path for GraphQL endpoint (default: /graphql)
        enable_graphiql: Enable GraphiQL IDE (default: True)
    """
    schema = instance.create_schema()

    async def get_context(request: Request, background_tasks: BackgroundTasks) -> RequestContext:
        return create_context(
            getattr(request.app.state, "env", None),
            background_tasks,
            upstream=request.app.state.upstream,
            request_id=request.headers.get("X-Request-ID"),
        )

    graphql_router = GatewayGraphQLRouter(
        schema,
        context_getter=get_context,
        graphql_ide="graphiql" if enable_graphiql else None,
        default_query=instance.default_query,
    )

    app.include_router(graphql_router, prefix=path)


class GatewayGraphQLRouter(GraphQLRouter):
    """GraphQL router whose GraphiQL console opens on the instance's sample query."""

    def __init__(self, *args: Any, default_query: str = "", **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.default_query = default_query

    async def render_graphql_ide(self, request: Request) -> HTMLResponse:
        return HTMLResponse(with_default_query(self.graphql_ide_html, self.default_query))


def with_default_query(html: str, query: str) -> str:
    """Replace the IDE page's built-in example query with ``query``.

    Pages without the example-query constant are returned unchanged.
    """
    if not query:
        return html
    literal = json.dumps(query).replace("</", "<\\/")
    return _EXAMPLE_QUERY.sub(lambda _: f"const EXAMPLE_QUERY = {literal};", html, count=1)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(MissingEnvironmentError)
    async def missing_environment_handler(
        request: Request, exc: MissingEnvironmentError
    ) -> JSONResponse:
        """No bound configuration at all: fail the whole request with a plain 500."""
        log_with_context(
            logger,
            logging.ERROR,
            f"Gateway execution failed: {exc}",
            method=request.method,
            path=request.url.path,
        )
        return _host_failure(str(exc))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Any other host failure; the exception text stays in the server log."""
        env = getattr(request.app.state, "env", None)
        secrets = env.secret_values() if env is not None else []
        log_with_context(
            logger,
            logging.ERROR,
            f"Gateway execution failed: {type(exc).__name__}",
            method=request.method,
            path=request.url.path,
            exception=redact(str(exc), secrets),
        )
        return _host_failure("Internal server error")


def _host_failure(message: str) -> JSONResponse:
    # Served outside the CORS middleware, so the header is set here
    return JSONResponse(
        status_code=500,
        content={"error": "Gateway execution failed", "message": message},
        headers={"Access-Control-Allow-Origin": "*"},
    )


# Type alias for the call_next function
RequestResponseEndpoint = Callable[[Request], Awaitable[Response]]


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every inbound request with its status and latency."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID")
        log_with_context(
            logger,
            logging.DEBUG,
            f"{request.method} {request.url.path} started",
            request_id=request_id,
        )

        start_time = time.perf_counter()
        response = await call_next(request)
        latency_ms = (time.perf_counter() - start_time) * 1000

        log_with_context(
            logger,
            logging.INFO,
            f"{request.method} {request.url.path} -> {response.status_code} ({latency_ms:.1f}ms)",
            request_id=request_id,
            status_code=response.status_code,
        )
        return response


# =============================================================================
# Schema Inspection
# =============================================================================


def print_schema(instance: GatewayInstance | str) -> str:
    """
    Print the GraphQL schema SDL for a gateway instance.

    Args:
        instance: GatewayInstance or its registered name

    Returns:
        GraphQL SDL string
    """
    if isinstance(instance, str):
        from gqlproxy.instances import get_instance

        instance = get_instance(instance)

    return instance.create_schema().as_str()

"""
Resolver helpers shared by every gateway instance.

Provides the error boundary that turns failures into field-scoped GraphQL
errors, and conversion of strawberry input objects into upstream payloads.
"""

from __future__ import annotations

import dataclasses
import functools
import inspect
import logging
from collections.abc import Callable
from typing import Any, TypeVar

import strawberry
from graphql import GraphQLError

from gqlproxy.graphql.adapters.base import GatewayError
from gqlproxy.graphql.adapters.errors import normalize_error
from gqlproxy.graphql.context import RequestContext
from gqlproxy.logging import get_resolver_logger, log_with_context

logger = get_resolver_logger()

F = TypeVar("F", bound=Callable[..., Any])


def resolver_boundary(operation: str, *, service_name: str | None = None) -> Callable[[F], F]:
    """
    Convert every failure raised by a resolver into a normalized field error.

    Gateway failures and unexpected exceptions are normalized and re-raised
    as ``GraphQLError`` so only the decorated field fails; sibling fields of
    the same operation still resolve. ``GraphQLError`` passes through.

    Args:
        operation: Label used in error messages (e.g., "PokeAPI request")
        service_name: Service label when the failure does not carry one

    Example:
        @strawberry.field
        @resolver_boundary("PokeAPI request", service_name="pokeapi")
        async def pokemon(self, info: strawberry.Info, id: strawberry.ID) -> Pokemon | None:
            ...
    """

    def decorator(func: F) -> F:
        def convert(error: Exception, args: tuple[Any, ...], kwargs: dict[str, Any]) -> GraphQLError:
            info = kwargs.get("info") or next((a for a in args if hasattr(a, "context")), None)
            ctx = getattr(info, "context", None)
            request_id = ctx.request_id if isinstance(ctx, RequestContext) else None
            secrets = ctx.secret_values() if isinstance(ctx, RequestContext) else ()
            normalized = normalize_error(
                error,
                operation=operation,
                service_name=service_name,
                request_id=request_id,
                secrets=secrets,
            )
            level = logging.WARNING if isinstance(error, GatewayError) else logging.ERROR
            log_with_context(
                logger,
                level,
                f"{func.__name__} failed: {normalized.code}",
                normalized.to_log_dict(),
                exception=f"{type(error).__name__}: {error}",
            )
            return normalized.to_graphql_error()

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                try:
                    return await func(*args, **kwargs)
                except GraphQLError:
                    raise
                except Exception as e:
                    raise convert(e, args, kwargs) from e

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except GraphQLError:
                raise
            except Exception as e:
                raise convert(e, args, kwargs) from e

        return sync_wrapper  # type: ignore[return-value]

    return decorator


def input_to_payload(value: Any) -> Any:
    """Convert a strawberry input object into a JSON-serializable payload.

    Optional fields the client did not send (``UNSET``) are omitted;
    explicit values, including null, are kept. Field names are used as-is.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        payload: dict[str, Any] = {}
        for f in dataclasses.fields(value):
            item = getattr(value, f.name)
            if item is strawberry.UNSET:
                continue
            payload[f.name] = input_to_payload(item)
        return payload
    if isinstance(value, list | tuple):
        return [input_to_payload(item) for item in value]
    return value

"""Tests for the resolver error boundary and input conversion."""

from __future__ import annotations

from collections.abc import Callable
from types import SimpleNamespace

import pytest
import strawberry
from graphql import GraphQLError

from gqlproxy.config import GatewaySettings
from gqlproxy.graphql.adapters.base import ConfigurationError, UpstreamHttpError
from gqlproxy.graphql.context import RequestContext
from gqlproxy.graphql.resolvers import input_to_payload, resolver_boundary
from gqlproxy.instances.chat import ChatCompletionInput, ChatMessageInput

from ..fakes import TEST_API_KEY


class TestResolverBoundary:
    async def test_passes_result_through(self) -> None:
        @resolver_boundary("Test request")
        async def resolve() -> str:
            return "ok"

        assert await resolve() == "ok"

    async def test_gateway_error_becomes_graphql_error(
        self, make_context: Callable[..., RequestContext], settings: GatewaySettings
    ) -> None:
        ctx = make_context(settings, request_id="req-9")

        @resolver_boundary("Test request", service_name="svc")
        async def resolve(info: object) -> str:
            raise UpstreamHttpError("API error: 500", status_code=500, body=f"bad key {TEST_API_KEY}")

        with pytest.raises(GraphQLError) as exc_info:
            await resolve(info=SimpleNamespace(context=ctx))

        error = exc_info.value
        assert error.message == "Test request failed: 500 - bad key ***"
        assert error.extensions == {
            "code": "SVC_UPSTREAM_HTTP_ERROR",
            "kind": "upstream_http",
            "service": "svc",
            "statusCode": 500,
            "requestId": "req-9",
        }
        assert isinstance(error.__cause__, UpstreamHttpError)

    def test_sync_resolver(self) -> None:
        @resolver_boundary("Sync request", service_name="svc")
        def resolve() -> str:
            raise ConfigurationError("SOME_KEY")

        with pytest.raises(GraphQLError, match="SOME_KEY environment variable is not set"):
            resolve()

    def test_unexpected_error_is_generic(self) -> None:
        @resolver_boundary("Sync request", service_name="svc")
        def resolve() -> str:
            raise ZeroDivisionError("division by zero")

        with pytest.raises(GraphQLError) as exc_info:
            resolve()

        assert exc_info.value.message == "Sync request failed: an unexpected error occurred"
        assert exc_info.value.extensions["kind"] == "internal"
        assert exc_info.value.extensions["code"] == "SVC_INTERNAL_ERROR"

    async def test_graphql_error_is_not_rewrapped(self) -> None:
        original = GraphQLError("already shaped", extensions={"code": "X"})

        @resolver_boundary("Test request")
        async def resolve() -> str:
            raise original

        with pytest.raises(GraphQLError) as exc_info:
            await resolve()

        assert exc_info.value is original

    def test_preserves_signature_metadata(self) -> None:
        async def resolve(self: object, info: strawberry.Info, id: strawberry.ID) -> str:
            """Docstring."""
            return str(id)

        wrapped = resolver_boundary("Test request")(resolve)

        assert wrapped.__name__ == "resolve"
        assert wrapped.__doc__ == "Docstring."
        assert wrapped.__wrapped__ is resolve


class TestInputToPayload:
    def test_omits_unset_keeps_explicit_none(self) -> None:
        value = ChatCompletionInput(
            model="deepseek-chat",
            messages=[ChatMessageInput(role="user", content="Hi")],
            temperature=None,
            max_tokens=100,
        )

        assert input_to_payload(value) == {
            "model": "deepseek-chat",
            "messages": [{"role": "user", "content": "Hi"}],
            "temperature": None,
            "max_tokens": 100,
        }

    def test_scalars_pass_through(self) -> None:
        assert input_to_payload("text") == "text"
        assert input_to_payload(0.5) == 0.5
        assert input_to_payload(None) is None

    def test_class_is_not_converted(self) -> None:
        assert input_to_payload(ChatMessageInput) is ChatMessageInput

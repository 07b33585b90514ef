"""
Chat-completion gateway.

Proxies DeepSeek's chat-completion API behind GraphQL. The API key is read
from the bound environment at the moment a field needs it and is only ever
sent upstream; ``health`` and ``debug`` keep working when it is unset.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

import strawberry

from gqlproxy.graphql.adapters.base import MalformedResponseError, UpstreamCallDescriptor
from gqlproxy.graphql.context import RequestContext
from gqlproxy.graphql.resolvers import input_to_payload, resolver_boundary
from gqlproxy.logging import get_resolver_logger, log_with_context

logger = get_resolver_logger()

SERVICE_NAME = "deepseek"
API_KEY_SETTING = "DEEPSEEK_API_KEY"
COMPLETIONS_PATH = "/v1/chat/completions"

HEALTH_MESSAGE = "DeepSeek GraphQL API is running"

# Smallest request that proves the key and endpoint work
CONNECTION_TEST_BODY: dict[str, Any] = {
    "model": "deepseek-chat",
    "messages": [{"role": "user", "content": "Connection test"}],
    "max_tokens": 10,
}

DEFAULT_QUERY = """\
# 1. Check the gateway's view of its configuration
query GetDebugInfo {
  debug {
    hasApiKey
    apiKeyLength
    timestamp
    environment
  }
}

# 2. Check the upstream connection (uncomment to run)
# mutation TestConnection {
#   testApiConnection
# }

# 3. Full chat completion (uncomment to run)
# mutation SampleChatQuery {
#   createChatCompletion(
#     input: {
#       model: "deepseek-chat"
#       messages: [
#         { role: "user", content: "Hello, please introduce yourself briefly" }
#       ]
#       temperature: 0.7
#       max_tokens: 500
#     }
#   ) {
#     id
#     choices {
#       message {
#         role
#         content
#       }
#       finish_reason
#     }
#     usage {
#       prompt_tokens
#       completion_tokens
#       total_tokens
#     }
#   }
# }
"""


def completions_url(base_url: str) -> str:
    return f"{base_url.rstrip('/')}{COMPLETIONS_PATH}"


# =============================================================================
# Output Types
# =============================================================================


@strawberry.type
class ChatMessage:
    role: str
    content: str


@strawberry.type
class Choice:
    index: int | None = None
    message: ChatMessage | None = None
    finish_reason: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Choice:
        message = payload.get("message")
        return cls(
            index=payload.get("index"),
            message=(
                ChatMessage(role=message.get("role"), content=message.get("content"))
                if isinstance(message, dict)
                else None
            ),
            finish_reason=payload.get("finish_reason"),
        )


@strawberry.type
class Usage:
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Usage:
        return cls(
            prompt_tokens=payload.get("prompt_tokens"),
            completion_tokens=payload.get("completion_tokens"),
            total_tokens=payload.get("total_tokens"),
        )


@strawberry.type
class ChatCompletion:
    """Mirrors the upstream chat-completion response."""

    id: str | None = None
    object: str | None = None
    created: int | None = None
    model: str | None = None
    choices: list[Choice | None] | None = None
    usage: Usage | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ChatCompletion:
        """Shape an upstream response; missing fields become null."""
        choices = payload.get("choices")
        usage = payload.get("usage")
        return cls(
            id=payload.get("id"),
            object=payload.get("object"),
            created=payload.get("created"),
            model=payload.get("model"),
            choices=(
                [Choice.from_payload(c) if isinstance(c, dict) else None for c in choices]
                if isinstance(choices, list)
                else None
            ),
            usage=Usage.from_payload(usage) if isinstance(usage, dict) else None,
        )


@strawberry.type
class DebugInfo:
    has_api_key: bool = strawberry.field(name="hasApiKey")
    api_key_length: int | None = strawberry.field(name="apiKeyLength")
    timestamp: str
    environment: str


# =============================================================================
# Input Types
# =============================================================================


@strawberry.input
class ChatMessageInput:
    role: str
    content: str


@strawberry.input
class ChatCompletionInput:
    model: str
    messages: list[ChatMessageInput]
    temperature: float | None = strawberry.UNSET
    top_p: float | None = strawberry.UNSET
    max_tokens: int | None = strawberry.UNSET
    stream: bool | None = strawberry.UNSET


# =============================================================================
# Deferred Work
# =============================================================================


def record_usage(request_id: str, model: str | None, usage: dict[str, Any]) -> None:
    """Log token usage of a completed chat request (runs after the response)."""
    log_with_context(
        logger,
        logging.INFO,
        f"Chat completion usage: {usage.get('total_tokens')} tokens",
        request_id=request_id,
        model=model,
        usage=usage,
    )


# =============================================================================
# Resolvers
# =============================================================================


@strawberry.type
class Query:
    @strawberry.field(description="Liveness check; performs no I/O")
    def health(self) -> str:
        return HEALTH_MESSAGE

    @strawberry.field(description="Configuration status; never calls upstream")
    @resolver_boundary("Debug query")
    def debug(self, info: strawberry.Info) -> DebugInfo:
        ctx: RequestContext = info.context
        has_api_key, key_length = ctx.secret_info(API_KEY_SETTING)

        log_with_context(
            logger,
            logging.DEBUG,
            "Debug info requested",
            request_id=ctx.request_id,
            has_api_key=has_api_key,
        )

        return DebugInfo(
            has_api_key=has_api_key,
            api_key_length=key_length,
            timestamp=datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            environment=ctx.env.environment,
        )


@strawberry.type
class Mutation:
    @strawberry.mutation(name="testApiConnection", description="Check the upstream with a minimal request")
    @resolver_boundary("API connection test", service_name=SERVICE_NAME)
    async def test_api_connection(self, info: strawberry.Info) -> str:
        ctx: RequestContext = info.context
        api_key = ctx.require_secret(API_KEY_SETTING)

        descriptor = UpstreamCallDescriptor(
            url=completions_url(ctx.env.deepseek_base_url),
            method="POST",
            body=CONNECTION_TEST_BODY,
            bearer_token=api_key,
            expect_json=False,
        )
        result = await ctx.upstream.call(descriptor, service_name=SERVICE_NAME)
        result.unwrap()

        return f"API connection test succeeded! Status code: {result.response.status_code}"

    @strawberry.mutation(name="createChatCompletion", description="Create a chat completion")
    @resolver_boundary("DeepSeek API request", service_name=SERVICE_NAME)
    async def create_chat_completion(
        self, info: strawberry.Info, input: ChatCompletionInput
    ) -> ChatCompletion | None:
        ctx: RequestContext = info.context
        api_key = ctx.require_secret(API_KEY_SETTING)

        payload = input_to_payload(input)
        log_with_context(
            logger,
            logging.INFO,
            "Creating chat completion",
            request_id=ctx.request_id,
            model=payload.get("model"),
            message_count=len(payload.get("messages", [])),
        )

        descriptor = UpstreamCallDescriptor(
            url=completions_url(ctx.env.deepseek_base_url),
            method="POST",
            body=payload,
            bearer_token=api_key,
        )
        result = await ctx.upstream.call(descriptor, service_name=SERVICE_NAME)
        data = result.unwrap()
        if not isinstance(data, dict):
            raise MalformedResponseError(
                "Unexpected upstream payload",
                service_name=SERVICE_NAME,
                reason=f"expected a JSON object, got {type(data).__name__}",
            )

        if isinstance(data.get("usage"), dict):
            ctx.defer(record_usage, ctx.request_id, data.get("model"), data["usage"])

        return ChatCompletion.from_payload(data)

"""
Gateway instances.

Each instance binds a strawberry schema (its dispatch table) to the
boundary policy it is served with. Instances are immutable and built once
per process.

- pokemon: read-only PokeAPI proxy with edge-cache hints
- chat: DeepSeek chat-completion proxy with server-side credential injection
"""

from __future__ import annotations

from dataclasses import dataclass

import strawberry
from strawberry.schema.config import StrawberryConfig

from gqlproxy.instances import chat, pokemon


@dataclass(frozen=True)
class CorsPolicy:
    """CORS settings applied at the HTTP boundary."""

    allow_origins: tuple[str, ...] = ("*",)
    allow_methods: tuple[str, ...] = ("POST", "GET", "OPTIONS")
    allow_headers: tuple[str, ...] = ("Content-Type", "Authorization")


@dataclass(frozen=True)
class GatewayInstance:
    """A named gateway: schema root types plus boundary configuration.

    Attributes:
        name: Instance name used on the command line
        title: Human-readable title
        query: Strawberry Query root type
        mutation: Strawberry Mutation root type (None for read-only instances)
        default_query: Sample document for interactive exploration
        cors: CORS policy, or None to serve without CORS headers
    """

    name: str
    title: str
    query: type
    mutation: type | None = None
    default_query: str = ""
    cors: CorsPolicy | None = None

    def create_schema(self) -> strawberry.Schema:
        """Build the schema; field names are exposed exactly as declared."""
        return strawberry.Schema(
            query=self.query,
            mutation=self.mutation,
            config=StrawberryConfig(auto_camel_case=False),
        )


POKEMON = GatewayInstance(
    name="pokemon",
    title="PokeAPI",
    query=pokemon.Query,
    default_query=pokemon.DEFAULT_QUERY,
    cors=CorsPolicy(),
)

CHAT = GatewayInstance(
    name="chat",
    title="DeepSeek",
    query=chat.Query,
    mutation=chat.Mutation,
    default_query=chat.DEFAULT_QUERY,
    cors=CorsPolicy(),
)

INSTANCES: dict[str, GatewayInstance] = {instance.name: instance for instance in (POKEMON, CHAT)}


def get_instance(name: str) -> GatewayInstance:
    """Look up an instance by name."""
    try:
        return INSTANCES[name]
    except KeyError:
        raise KeyError(
            f"Unknown gateway instance '{name}'. Available: {', '.join(sorted(INSTANCES))}"
        ) from None


__all__ = [
    "CHAT",
    "INSTANCES",
    "POKEMON",
    "CorsPolicy",
    "GatewayInstance",
    "get_instance",
]

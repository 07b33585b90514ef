"""
Read-only Pokémon data gateway.

Exposes ``Query.pokemon(id: ID!)`` backed by PokeAPI. Every upstream call
carries an edge-cache hint so repeated lookups can be served by the cache
layer for up to 50 seconds.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import strawberry

from gqlproxy.graphql.adapters.base import (
    CachePolicy,
    MalformedResponseError,
    UpstreamCallDescriptor,
)
from gqlproxy.graphql.context import RequestContext
from gqlproxy.graphql.resolvers import resolver_boundary

SERVICE_NAME = "pokeapi"

# Cache regardless of content type, for at most 50s before revalidating
POKEMON_CACHE_POLICY = CachePolicy(ttl=50, cache_everything=True)

DEFAULT_QUERY = """\
query samplePokeAPIquery {
  pokemon: pokemon(id: 1) {
    id
    name
    height
    weight
    sprites {
      front_shiny
      back_shiny
    }
  }
}
"""


@strawberry.type
class PokemonSprites:
    front_default: str
    front_shiny: str
    front_female: str
    front_shiny_female: str
    back_default: str
    back_shiny: str
    back_female: str
    back_shiny_female: str

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> PokemonSprites:
        return cls(**{name: payload.get(name) for name in _SPRITE_FIELDS})


_SPRITE_FIELDS = (
    "front_default",
    "front_shiny",
    "front_female",
    "front_shiny_female",
    "back_default",
    "back_shiny",
    "back_female",
    "back_shiny_female",
)


@strawberry.type
class Pokemon:
    id: strawberry.ID
    name: str
    height: int
    weight: int
    sprites: PokemonSprites

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Pokemon:
        """Shape an upstream record; extra keys are ignored, missing ones become null."""
        sprites = payload.get("sprites")
        return cls(
            id=payload.get("id"),
            name=payload.get("name"),
            height=payload.get("height"),
            weight=payload.get("weight"),
            sprites=PokemonSprites.from_payload(sprites) if isinstance(sprites, dict) else None,
        )


def pokemon_url(base_url: str, pokemon_id: str) -> str:
    """Build the upstream URL for one Pokémon; the ID is a single path segment."""
    return f"{base_url.rstrip('/')}/api/v2/pokemon/{quote(str(pokemon_id), safe='')}"


@strawberry.type
class Query:
    @strawberry.field(description="Look up a Pokémon by numeric ID or name")
    @resolver_boundary("PokeAPI request", service_name=SERVICE_NAME)
    async def pokemon(self, info: strawberry.Info, id: strawberry.ID) -> Pokemon | None:
        ctx: RequestContext = info.context
        descriptor = UpstreamCallDescriptor(
            url=pokemon_url(ctx.env.pokeapi_base_url, id),
            cache=POKEMON_CACHE_POLICY,
        )
        result = await ctx.upstream.call(descriptor, service_name=SERVICE_NAME)
        payload = result.unwrap()
        if payload is None:
            return None
        if not isinstance(payload, dict):
            raise MalformedResponseError(
                "Unexpected upstream payload",
                service_name=SERVICE_NAME,
                reason=f"expected a JSON object, got {type(payload).__name__}",
            )
        return Pokemon.from_payload(payload)

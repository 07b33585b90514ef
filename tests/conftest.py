"""Shared pytest fixtures for gqlproxy tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from fastapi import BackgroundTasks

from gqlproxy.config import GatewaySettings, get_settings
from gqlproxy.graphql.adapters.base import UpstreamClient
from gqlproxy.graphql.context import RequestContext

from .fakes import TEST_API_KEY, UpstreamRecorder


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment out of the tests."""
    monkeypatch.delenv("DEEPSEEK_API_KEY", raising=False)
    monkeypatch.delenv("GQLPROXY_ENVIRONMENT", raising=False)
    monkeypatch.delenv("GQLPROXY_LOG_DIR", raising=False)
    monkeypatch.delenv("GQLPROXY_UPSTREAM_TIMEOUT", raising=False)
    get_settings.cache_clear()


@pytest.fixture
def make_settings() -> Callable[..., GatewaySettings]:
    def factory(api_key: str | None = None, **overrides: Any) -> GatewaySettings:
        return GatewaySettings(_env_file=None, DEEPSEEK_API_KEY=api_key, **overrides)

    return factory


@pytest.fixture
def settings(make_settings: Callable[..., GatewaySettings]) -> GatewaySettings:
    """Settings with the chat API key configured."""
    return make_settings(TEST_API_KEY)


@pytest.fixture
def upstream() -> UpstreamRecorder:
    return UpstreamRecorder()


@pytest.fixture
def make_context(upstream: UpstreamRecorder) -> Callable[..., RequestContext]:
    def factory(env: GatewaySettings, **kwargs: Any) -> RequestContext:
        return RequestContext(
            env,
            upstream=UpstreamClient(transport=upstream.transport),
            background_tasks=kwargs.pop("background_tasks", BackgroundTasks()),
            **kwargs,
        )

    return factory

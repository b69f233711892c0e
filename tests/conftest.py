"""Shared fixtures: a recording GraphQL client double and registries wired to it."""

from __future__ import annotations

from typing import Any

import pytest
from fastmcp import FastMCP

from store_registry import StoreConfig, StoreRegistry
from tools import register_tools


class FakeGraphQLClient:
    """Records requests and replays queued responses or errors."""

    def __init__(self, config: StoreConfig) -> None:
        self.config = config
        self.calls: list[tuple[str, dict[str, Any] | None]] = []
        self.responses: list[Any] = []

    def queue(self, response: Any) -> None:
        self.responses.append(response)

    async def request(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        self.calls.append((query, variables))
        if not self.responses:
            raise AssertionError("No queued response for request")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def registry() -> StoreRegistry:
    return StoreRegistry(client_factory=FakeGraphQLClient)


@pytest.fixture
def shop_registry(registry: StoreRegistry) -> StoreRegistry:
    registry.register("acme", StoreConfig(domain="acme.myshopify.com", access_token="shpat_acme"))
    registry.register("beta", StoreConfig(domain="beta.myshopify.com", access_token="shpat_beta"))
    registry.set_default("acme")
    return registry


@pytest.fixture
def tools(shop_registry: StoreRegistry) -> dict[str, Any]:
    return register_tools(FastMCP(name="test"), shop_registry)


@pytest.fixture
def acme_client(shop_registry: StoreRegistry) -> FakeGraphQLClient:
    return shop_registry.get_client("acme")

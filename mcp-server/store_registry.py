from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable

from errors import NoDefaultError, StoreNotFoundError, ValidationError
from graphql_client import GraphQLClient

DEFAULT_API_VERSION = "2024-01"

_LOGGER = logging.getLogger("shopify_mcp.registry")


@dataclass(frozen=True)
class StoreConfig:
    domain: str
    access_token: str
    api_version: str | None = None

    def __post_init__(self) -> None:
        if not self.domain:
            raise ValidationError("Store domain is required")
        if not self.access_token:
            raise ValidationError("Store access token is required")


@dataclass(frozen=True)
class StoreInfo:
    alias: str
    domain: str

    def as_dict(self) -> dict[str, str]:
        return {"alias": self.alias, "domain": self.domain}


ClientFactory = Callable[[StoreConfig], Any]


class StoreRegistry:
    """Maps case-insensitive store aliases to configs and cached API clients.

    Aliases are lowercased on the way in, so "ACME" and "acme" are the same
    store and lookups always report the lowercase form. Clients are created
    lazily by ``client_factory`` and dropped whenever their store is
    re-registered.
    """

    def __init__(self, client_factory: ClientFactory | None = None) -> None:
        self._client_factory: ClientFactory = client_factory or GraphQLClient.for_store
        self._stores: dict[str, StoreConfig] = {}
        self._clients: dict[str, Any] = {}
        self._default_alias: str | None = None

    def register(self, alias: str, config: StoreConfig) -> None:
        normalized = alias.lower()
        self._stores[normalized] = replace(config, api_version=config.api_version or DEFAULT_API_VERSION)
        self._clients.pop(normalized, None)
        _LOGGER.debug("Registered store %s (%s)", normalized, config.domain)

    def set_default(self, alias: str) -> None:
        normalized = alias.lower()
        if normalized not in self._stores:
            raise StoreNotFoundError(alias, self.list_aliases(), prefix="Cannot set default: ")
        self._default_alias = normalized

    def has_store(self, alias: str) -> bool:
        return alias.lower() in self._stores

    def __contains__(self, alias: object) -> bool:
        return isinstance(alias, str) and self.has_store(alias)

    def get_default_alias(self) -> str | None:
        if self._default_alias:
            return self._default_alias
        if len(self._stores) == 1:
            return next(iter(self._stores))
        return None

    def resolve_alias(self, alias: str | None = None) -> str:
        if alias:
            normalized = alias.lower()
            if normalized not in self._stores:
                raise StoreNotFoundError(alias, self.list_aliases())
            return normalized

        default_alias = self.get_default_alias()
        if default_alias is None:
            raise NoDefaultError(self.list_aliases())
        return default_alias

    def get_client(self, alias: str | None = None) -> Any:
        resolved = self.resolve_alias(alias)
        client = self._clients.get(resolved)
        if client is None:
            client = self._client_factory(self._stores[resolved])
            self._clients[resolved] = client
            _LOGGER.debug("Created API client for store %s", resolved)
        return client

    def get_store_info(self, alias: str | None = None) -> StoreInfo:
        resolved = self.resolve_alias(alias)
        return StoreInfo(alias=resolved, domain=self._stores[resolved].domain)

    def get_config(self, alias: str | None = None) -> StoreConfig:
        return self._stores[self.resolve_alias(alias)]

    def list_aliases(self) -> list[str]:
        return list(self._stores)

    def list_stores(self) -> list[StoreInfo]:
        return [StoreInfo(alias=alias, domain=config.domain) for alias, config in self._stores.items()]

    @property
    def size(self) -> int:
        return len(self._stores)

    def __len__(self) -> int:
        return len(self._stores)


__all__ = ["DEFAULT_API_VERSION", "StoreConfig", "StoreInfo", "StoreRegistry"]

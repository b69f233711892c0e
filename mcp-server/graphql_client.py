from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

import httpx

from errors import GraphQLRequestError

if TYPE_CHECKING:
    from store_registry import StoreConfig

DEFAULT_TIMEOUT_SEC = 30.0

_LOGGER = logging.getLogger("shopify_mcp.graphql")


def admin_api_endpoint(domain: str, api_version: str) -> str:
    return f"https://{domain}/admin/api/{api_version}/graphql.json"


class GraphQLClient:
    """Shopify Admin API GraphQL client bound to one store."""

    def __init__(
        self,
        endpoint: str,
        headers: Mapping[str, str],
        timeout: float = DEFAULT_TIMEOUT_SEC,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._headers = dict(headers)
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def for_store(
        cls,
        config: StoreConfig,
        timeout: float = DEFAULT_TIMEOUT_SEC,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> GraphQLClient:
        return cls(
            admin_api_endpoint(config.domain, config.api_version or ""),
            {
                "X-Shopify-Access-Token": config.access_token,
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def request(self, query: str, variables: Mapping[str, Any] | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = {key: value for key, value in variables.items() if value is not None}

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._endpoint, headers=self._headers, json=payload)
        except httpx.HTTPError as exc:
            raise GraphQLRequestError(f"Request to {self._endpoint} failed: {exc}") from exc

        if response.is_error:
            _LOGGER.warning("GraphQL request to %s returned HTTP %s", self._endpoint, response.status_code)
            raise GraphQLRequestError(
                f"HTTP {response.status_code} from {self._endpoint}: {response.text[:500]}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise GraphQLRequestError(
                f"Invalid JSON response from {self._endpoint}", status_code=response.status_code
            ) from exc

        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            errors = errors if isinstance(errors, list) else [{"message": str(errors)}]
            messages = "; ".join(str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in errors)
            raise GraphQLRequestError(
                f"GraphQL errors: {messages}", status_code=response.status_code, errors=errors
            )

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise GraphQLRequestError("GraphQL response did not include data", status_code=response.status_code)
        return data


__all__ = ["DEFAULT_TIMEOUT_SEC", "GraphQLClient", "admin_api_endpoint"]

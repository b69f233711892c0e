from __future__ import annotations

from typing import Any, Mapping

_ARRAY_KEY_HINTS = {
    "products",
    "customers",
    "orders",
    "variants",
    "images",
    "collections",
    "lineItems",
    "addresses",
    "tags",
    "metafields",
    "metafieldDefinitions",
    "validations",
    "customAttributes",
    "stores",
}


class _OmitType:
    pass


_OMIT = _OmitType()


def connection_nodes(connection: Any) -> list[Any]:
    """Flattens a Relay connection (``{"edges": [{"node": ...}]}``) to its nodes."""
    if not isinstance(connection, Mapping):
        return []
    if isinstance(connection.get("nodes"), list):
        return list(connection["nodes"])
    edges = connection.get("edges") or []
    return [edge["node"] for edge in edges if isinstance(edge, Mapping) and edge.get("node") is not None]


def shop_money(money_set: Any) -> Any:
    """Returns ``shopMoney`` from a ``MoneyBag`` or ``None``."""
    if not isinstance(money_set, Mapping):
        return None
    return money_set.get("shopMoney")


def _normalize(value: Any, key: str | None, array_keys: set[str]) -> Any:
    if value is None:
        if key and key in array_keys:
            return []
        return _OMIT

    if isinstance(value, Mapping):
        output: dict[str, Any] = {}
        for child_key, child_value in value.items():
            normalized = _normalize(child_value, str(child_key), array_keys)
            if normalized is _OMIT:
                continue
            output[str(child_key)] = normalized
        return output

    if isinstance(value, list):
        normalized_list = []
        for item in value:
            normalized_item = _normalize(item, None, array_keys)
            if normalized_item is _OMIT:
                continue
            normalized_list.append(normalized_item)
        return normalized_list

    return value


def format_payload(payload: Any, array_keys: set[str] | None = None) -> Any:
    """Normalizes decoded GraphQL data for MCP JSON responses.

    Invariants:
    - keys with None values are omitted
    - array-like keys are never null
    """

    merged_array_keys = set(_ARRAY_KEY_HINTS)
    if array_keys:
        merged_array_keys.update(array_keys)

    normalized = _normalize(payload, None, merged_array_keys)
    return {} if normalized is _OMIT else normalized


__all__ = ["connection_nodes", "format_payload", "shop_money"]

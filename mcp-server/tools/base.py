from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Mapping

from fastmcp.exceptions import ToolError
from pydantic import BaseModel

from store_registry import StoreInfo, StoreRegistry
from tools.context import get_store_alias

ToolInvoker = Callable[..., Awaitable[dict[str, Any]]]

MAX_PAGE_SIZE = 250

STORE_ALIAS_DESCRIPTION = (
    "Store alias to target. If omitted, uses the default store. Use list_stores to see available stores."
)

_LOGGER = logging.getLogger("shopify_mcp.tools")


class ToolExecutionError(ToolError):
    """A tool call failed; returned to the MCP client as an error result."""


class UserErrorsError(ToolExecutionError):
    """A mutation returned ``userErrors``."""

    def __init__(self, user_errors: list[Mapping[str, Any]]) -> None:
        self.user_errors = user_errors
        super().__init__(", ".join(f"{_error_field(err)}: {err.get('message')}" for err in user_errors))


def _error_field(error: Mapping[str, Any]) -> str:
    field = error.get("field")
    if isinstance(field, list):
        return ".".join(str(part) for part in field)
    return str(field)


def tool_failure(action: str, exc: Exception) -> ToolExecutionError:
    _LOGGER.warning("Failed to %s: %s", action, exc)
    return ToolExecutionError(f"Failed to {action}: {exc}")


def resolve_store(stores: StoreRegistry, store_alias: str | None) -> tuple[Any, StoreInfo]:
    alias = store_alias or get_store_alias()
    return stores.get_client(alias), stores.get_store_info(alias)


def bounded_limit(limit: int, maximum: int = MAX_PAGE_SIZE) -> int:
    return max(1, min(int(limit), maximum))


def to_gid(resource: str, value: str) -> str:
    value = str(value).strip()
    if value.startswith("gid://"):
        return value
    return f"gid://shopify/{resource}/{value}"


def require_numeric_id(value: str, label: str) -> str:
    value = str(value).strip()
    if not value.isdigit():
        raise ToolExecutionError(f"{label} must be numeric")
    return value


def as_input(value: Any) -> dict[str, Any]:
    """Converts a pydantic model or mapping argument to a GraphQL input dict."""
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, exclude_none=True)
    if isinstance(value, Mapping):
        return {str(key): item for key, item in value.items() if item is not None}
    raise TypeError(f"Expected an object, got {type(value).__name__}")


def raise_for_user_errors(payload: Mapping[str, Any] | None) -> None:
    user_errors = (payload or {}).get("userErrors") or []
    if user_errors:
        raise UserErrorsError(list(user_errors))


__all__ = [
    "MAX_PAGE_SIZE",
    "STORE_ALIAS_DESCRIPTION",
    "ToolExecutionError",
    "ToolInvoker",
    "UserErrorsError",
    "as_input",
    "bounded_limit",
    "raise_for_user_errors",
    "require_numeric_id",
    "resolve_store",
    "to_gid",
    "tool_failure",
]

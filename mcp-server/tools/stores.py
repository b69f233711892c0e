from __future__ import annotations

from typing import Any

from fastmcp import FastMCP

from store_registry import StoreRegistry
from tools.base import ToolInvoker


def register_store_tools(mcp: FastMCP, stores: StoreRegistry) -> dict[str, ToolInvoker]:
    async def _list_stores() -> dict[str, Any]:
        configured = stores.list_stores()
        default_alias = stores.get_default_alias()

        if not configured:
            return {"stores": [], "defaultStore": None, "message": "No stores configured."}

        suffix = f" Default: {default_alias}" if default_alias else " No default set."
        return {
            "stores": [
                {"alias": store.alias, "domain": store.domain, "isDefault": store.alias == default_alias}
                for store in configured
            ],
            "defaultStore": default_alias,
            "message": f"{len(configured)} store(s) configured.{suffix}",
        }

    mcp.tool(
        name="list_stores",
        description=(
            "List all configured Shopify stores with their aliases and domains. "
            "Use this to discover available stores before making queries."
        ),
    )(_list_stores)

    return {"list_stores": _list_stores}


__all__ = ["register_store_tools"]

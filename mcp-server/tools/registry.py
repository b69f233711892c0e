from __future__ import annotations

import logging

from fastmcp import FastMCP

from store_registry import StoreRegistry
from tools.base import ToolInvoker
from tools.customers import register_customer_tools
from tools.metafields import register_metafield_tools
from tools.orders import register_order_tools
from tools.products import register_product_tools
from tools.stores import register_store_tools

_LOGGER = logging.getLogger("shopify_mcp.tools")

_REGISTRARS = (
    register_store_tools,
    register_product_tools,
    register_customer_tools,
    register_order_tools,
    register_metafield_tools,
)


def register_tools(mcp: FastMCP, stores: StoreRegistry) -> dict[str, ToolInvoker]:
    """Registers every tool with ``mcp`` and returns the name -> handler table."""
    tool_map: dict[str, ToolInvoker] = {}
    for registrar in _REGISTRARS:
        tool_map.update(registrar(mcp, stores))
    _LOGGER.debug("Registered %d tools: %s", len(tool_map), ", ".join(sorted(tool_map)))
    return tool_map


__all__ = ["register_tools", "ToolInvoker"]

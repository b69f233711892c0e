from __future__ import annotations

from typing import Annotated, Any, Literal

from fastmcp import FastMCP
from pydantic import Field

from formatters import connection_nodes, format_payload, shop_money
from store_registry import StoreRegistry
from tools.base import (
    STORE_ALIAS_DESCRIPTION,
    ToolInvoker,
    as_input,
    bounded_limit,
    raise_for_user_errors,
    resolve_store,
    to_gid,
    tool_failure,
)
from tools.inputs import CustomAttribute, MailingAddressInput, MetafieldInput

ORDER_SUMMARY_FIELDS = """
        id
        name
        createdAt
        displayFinancialStatus
        displayFulfillmentStatus
        totalPriceSet { shopMoney { amount currencyCode } }
        subtotalPriceSet { shopMoney { amount currencyCode } }
        totalShippingPriceSet { shopMoney { amount currencyCode } }
        totalTaxSet { shopMoney { amount currencyCode } }
        customer { id firstName lastName email }
        tags
        note
"""

_ADDRESS_FIELDS = "address1 address2 city provinceCode zip country phone"

_GET_ORDERS_QUERY = (
    """
query GetOrders($first: Int!, $query: String) {
  orders(first: $first, query: $query) {
    edges {
      node {
"""
    + ORDER_SUMMARY_FIELDS
    + f"""
        shippingAddress {{ {_ADDRESS_FIELDS} }}
        lineItems(first: 10) {{
          edges {{
            node {{
              id
              title
              quantity
              originalTotalSet {{ shopMoney {{ amount currencyCode }} }}
              variant {{ id title sku }}
            }}
          }}
        }}
      }}
    }}
  }}
}}
"""
)

_GET_ORDER_BY_ID_QUERY = (
    """
query GetOrderById($id: ID!) {
  order(id: $id) {
"""
    + ORDER_SUMMARY_FIELDS
    + f"""
    email
    phone
    shippingAddress {{ {_ADDRESS_FIELDS} }}
    billingAddress {{ {_ADDRESS_FIELDS} }}
    customAttributes {{ key value }}
    lineItems(first: 50) {{
      edges {{
        node {{
          id
          title
          quantity
          originalTotalSet {{ shopMoney {{ amount currencyCode }} }}
          variant {{ id title sku }}
        }}
      }}
    }}
    metafields(first: 20) {{
      edges {{ node {{ id namespace key value type }} }}
    }}
  }}
}}
"""
)

_UPDATE_ORDER_MUTATION = """
mutation orderUpdate($input: OrderInput!) {
  orderUpdate(input: $input) {
    order {
      id
      name
      email
      note
      tags
      customAttributes { key value }
      shippingAddress {
        address1 address2 city company country firstName lastName phone province zip
      }
      metafields(first: 10) {
        edges { node { id namespace key value type } }
      }
    }
    userErrors { field message }
  }
}
"""


def _line_item(line_item: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": line_item.get("id"),
        "title": line_item.get("title"),
        "quantity": line_item.get("quantity"),
        "originalTotal": shop_money(line_item.get("originalTotalSet")),
        "variant": line_item.get("variant"),
    }


def order_summary(order: dict[str, Any]) -> dict[str, Any]:
    """Reshapes an order node into the flat form returned by order tools."""
    summary = {
        "id": order.get("id"),
        "name": order.get("name"),
        "createdAt": order.get("createdAt"),
        "financialStatus": order.get("displayFinancialStatus"),
        "fulfillmentStatus": order.get("displayFulfillmentStatus"),
        "totalPrice": shop_money(order.get("totalPriceSet")),
        "subtotalPrice": shop_money(order.get("subtotalPriceSet")),
        "totalShippingPrice": shop_money(order.get("totalShippingPriceSet")),
        "totalTax": shop_money(order.get("totalTaxSet")),
        "customer": order.get("customer"),
        "lineItems": [_line_item(item) for item in connection_nodes(order.get("lineItems"))],
        "tags": order.get("tags"),
        "note": order.get("note"),
    }
    for key in ("email", "phone", "shippingAddress", "billingAddress", "customAttributes"):
        if key in order:
            summary[key] = order[key]
    if "metafields" in order:
        summary["metafields"] = connection_nodes(order["metafields"])
    return summary


def register_order_tools(mcp: FastMCP, stores: StoreRegistry) -> dict[str, ToolInvoker]:
    async def _get_orders(
        store_alias: Annotated[str | None, Field(description=STORE_ALIAS_DESCRIPTION)] = None,
        status: Literal["any", "open", "closed", "cancelled"] = "any",
        limit: int = 10,
    ) -> dict[str, Any]:
        try:
            client, store = resolve_store(stores, store_alias)
            data = await client.request(
                _GET_ORDERS_QUERY,
                {
                    "first": bounded_limit(limit),
                    "query": f"status:{status}" if status != "any" else None,
                },
            )
            orders = [order_summary(order) for order in connection_nodes(data["orders"])]
        except Exception as exc:
            raise tool_failure("fetch orders", exc) from exc

        return format_payload({"orders": orders, "store": store.as_dict()})

    async def _get_order_by_id(
        order_id: Annotated[str, Field(min_length=1, description="Order ID, numeric or GID")],
        store_alias: Annotated[str | None, Field(description=STORE_ALIAS_DESCRIPTION)] = None,
    ) -> dict[str, Any]:
        try:
            client, store = resolve_store(stores, store_alias)
            data = await client.request(_GET_ORDER_BY_ID_QUERY, {"id": to_gid("Order", order_id)})
            order = data.get("order")
            if not order:
                raise LookupError(f"Order with ID {order_id} not found")
            order = order_summary(order)
        except Exception as exc:
            raise tool_failure("fetch order", exc) from exc

        return format_payload({"order": order, "store": store.as_dict()})

    async def _update_order(
        id: Annotated[str, Field(min_length=1, description="Order ID, numeric or GID")],
        store_alias: Annotated[str | None, Field(description=STORE_ALIAS_DESCRIPTION)] = None,
        tags: list[str] | None = None,
        email: str | None = None,
        note: str | None = None,
        custom_attributes: list[CustomAttribute] | None = None,
        metafields: list[MetafieldInput] | None = None,
        shipping_address: MailingAddressInput | None = None,
    ) -> dict[str, Any]:
        try:
            order_input = {
                "id": to_gid("Order", id),
                "tags": tags,
                "email": email,
                "note": note,
                "customAttributes": [as_input(attr) for attr in custom_attributes] if custom_attributes else None,
                "metafields": [as_input(metafield) for metafield in metafields] if metafields else None,
                "shippingAddress": as_input(shipping_address) if shipping_address else None,
            }
            client, store = resolve_store(stores, store_alias)
            data = await client.request(
                _UPDATE_ORDER_MUTATION,
                {"input": {key: value for key, value in order_input.items() if value is not None}},
            )
            result = data["orderUpdate"]
            raise_for_user_errors(result)
            order = dict(result.get("order") or {})
            order["metafields"] = connection_nodes(order.get("metafields"))
        except Exception as exc:
            raise tool_failure("update order", exc) from exc

        return format_payload({"order": order, "store": store.as_dict()})

    mcp.tool(name="get_orders", description="Get orders with optional filtering by status.")(_get_orders)
    mcp.tool(
        name="get_order_by_id",
        description="Get a single order with line items, addresses and metafields by ID.",
    )(_get_order_by_id)
    mcp.tool(
        name="update_order",
        description="Update an order's tags, email, note, custom attributes, metafields or shipping address.",
    )(_update_order)

    return {
        "get_orders": _get_orders,
        "get_order_by_id": _get_order_by_id,
        "update_order": _update_order,
    }


__all__ = ["ORDER_SUMMARY_FIELDS", "order_summary", "register_order_tools"]

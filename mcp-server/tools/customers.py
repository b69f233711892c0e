from __future__ import annotations

from typing import Annotated, Any

from fastmcp import FastMCP
from pydantic import Field

from formatters import connection_nodes, format_payload
from store_registry import StoreRegistry
from tools.base import (
    STORE_ALIAS_DESCRIPTION,
    ToolInvoker,
    as_input,
    bounded_limit,
    raise_for_user_errors,
    require_numeric_id,
    resolve_store,
    to_gid,
    tool_failure,
)
from tools.inputs import MetafieldInput
from tools.orders import ORDER_SUMMARY_FIELDS, order_summary

_GET_CUSTOMERS_QUERY = """
query GetCustomers($first: Int!, $query: String) {
  customers(first: $first, query: $query) {
    edges {
      node {
        id
        firstName
        lastName
        email
        phone
        createdAt
        updatedAt
        tags
        defaultAddress { address1 address2 city provinceCode zip country phone }
        addresses { address1 address2 city provinceCode zip country phone }
        amountSpent { amount currencyCode }
        numberOfOrders
      }
    }
  }
}
"""

_UPDATE_CUSTOMER_MUTATION = """
mutation customerUpdate($input: CustomerInput!) {
  customerUpdate(input: $input) {
    customer {
      id
      firstName
      lastName
      email
      phone
      tags
      note
      taxExempt
      metafields(first: 10) {
        edges { node { id namespace key value type } }
      }
    }
    userErrors { field message }
  }
}
"""

_GET_CUSTOMER_ORDERS_QUERY = (
    """
query GetCustomerOrders($query: String!, $first: Int!) {
  orders(query: $query, first: $first) {
    edges {
      node {
"""
    + ORDER_SUMMARY_FIELDS
    + """
        lineItems(first: 5) {
          edges {
            node {
              id
              title
              quantity
              originalTotalSet { shopMoney { amount currencyCode } }
              variant { id title sku }
            }
          }
        }
      }
    }
  }
}
"""
)

_CUSTOMER_ID_DESCRIPTION = "Shopify customer ID, numeric excluding gid prefix"


def register_customer_tools(mcp: FastMCP, stores: StoreRegistry) -> dict[str, ToolInvoker]:
    async def _get_customers(
        store_alias: Annotated[str | None, Field(description=STORE_ALIAS_DESCRIPTION)] = None,
        search_query: str | None = None,
        limit: int = 10,
    ) -> dict[str, Any]:
        try:
            client, store = resolve_store(stores, store_alias)
            data = await client.request(
                _GET_CUSTOMERS_QUERY,
                {"first": bounded_limit(limit), "query": search_query},
            )
            customers = connection_nodes(data["customers"])
        except Exception as exc:
            raise tool_failure("fetch customers", exc) from exc

        return format_payload({"customers": customers, "store": store.as_dict()})

    async def _update_customer(
        id: Annotated[str, Field(pattern=r"^\d+$", description=_CUSTOMER_ID_DESCRIPTION)],
        store_alias: Annotated[str | None, Field(description=STORE_ALIAS_DESCRIPTION)] = None,
        first_name: str | None = None,
        last_name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
        tags: list[str] | None = None,
        note: str | None = None,
        tax_exempt: bool | None = None,
        metafields: list[MetafieldInput] | None = None,
    ) -> dict[str, Any]:
        try:
            customer_id = require_numeric_id(id, "Customer ID")
            customer_input = {
                "id": to_gid("Customer", customer_id),
                "firstName": first_name,
                "lastName": last_name,
                "email": email,
                "phone": phone,
                "tags": tags,
                "note": note,
                "taxExempt": tax_exempt,
                "metafields": [as_input(metafield) for metafield in metafields] if metafields else None,
            }
            client, store = resolve_store(stores, store_alias)
            data = await client.request(
                _UPDATE_CUSTOMER_MUTATION,
                {"input": {key: value for key, value in customer_input.items() if value is not None}},
            )
            result = data["customerUpdate"]
            raise_for_user_errors(result)
            customer = dict(result.get("customer") or {})
            customer["metafields"] = connection_nodes(customer.get("metafields"))
        except Exception as exc:
            raise tool_failure("update customer", exc) from exc

        return format_payload({"customer": customer, "store": store.as_dict()})

    async def _get_customer_orders(
        customer_id: Annotated[str, Field(pattern=r"^\d+$", description=_CUSTOMER_ID_DESCRIPTION)],
        store_alias: Annotated[str | None, Field(description=STORE_ALIAS_DESCRIPTION)] = None,
        limit: int = 10,
    ) -> dict[str, Any]:
        try:
            numeric_id = require_numeric_id(customer_id, "Customer ID")
            client, store = resolve_store(stores, store_alias)
            data = await client.request(
                _GET_CUSTOMER_ORDERS_QUERY,
                {"query": f"customer_id:{numeric_id}", "first": bounded_limit(limit)},
            )
            orders = [order_summary(order) for order in connection_nodes(data["orders"])]
        except Exception as exc:
            raise tool_failure("fetch customer orders", exc) from exc

        return format_payload({"orders": orders, "store": store.as_dict()})

    mcp.tool(name="get_customers", description="Get customers or search by name/email.")(_get_customers)
    mcp.tool(name="update_customer", description="Update a customer's details, tags, note and metafields.")(
        _update_customer
    )
    mcp.tool(name="get_customer_orders", description="Get orders for a specific customer.")(_get_customer_orders)

    return {
        "get_customers": _get_customers,
        "update_customer": _update_customer,
        "get_customer_orders": _get_customer_orders,
    }


__all__ = ["register_customer_tools"]

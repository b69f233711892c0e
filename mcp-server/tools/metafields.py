from __future__ import annotations

from typing import Annotated, Any, Literal

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
    resolve_store,
    to_gid,
    tool_failure,
)
from tools.inputs import MetafieldSetInput, MetafieldValidation

OwnerType = Literal[
    "PRODUCT",
    "PRODUCT_VARIANT",
    "CUSTOMER",
    "ORDER",
    "COLLECTION",
    "ARTICLE",
    "BLOG",
    "PAGE",
    "SHOP",
]

_METAFIELD_FIELDS = "id namespace key value type createdAt updatedAt"

_GET_DEFINITIONS_QUERY = """
query GetMetafieldDefinitions($first: Int!, $ownerType: MetafieldOwnerType!, $namespace: String) {
  metafieldDefinitions(first: $first, ownerType: $ownerType, namespace: $namespace) {
    edges {
      node {
        id
        name
        namespace
        key
        description
        type { name }
        ownerType
        validations { name value }
        pinnedPosition
      }
    }
  }
}
"""

_CREATE_DEFINITION_MUTATION = """
mutation CreateMetafieldDefinition($definition: MetafieldDefinitionInput!) {
  metafieldDefinitionCreate(definition: $definition) {
    createdDefinition {
      id
      name
      namespace
      key
      description
      type { name }
      ownerType
      validations { name value }
      pinnedPosition
    }
    userErrors { field message code }
  }
}
"""

_SET_METAFIELDS_MUTATION = f"""
mutation SetMetafields($metafields: [MetafieldsSetInput!]!) {{
  metafieldsSet(metafields: $metafields) {{
    metafields {{
      {_METAFIELD_FIELDS}
      owner {{
        ... on Product {{ id title }}
        ... on ProductVariant {{ id title }}
        ... on Customer {{ id email }}
        ... on Order {{ id name }}
        ... on Collection {{ id title }}
      }}
    }}
    userErrors {{ field message }}
  }}
}}
"""

_SET_PRODUCT_METAFIELDS_MUTATION = f"""
mutation SetProductMetafields($metafields: [MetafieldsSetInput!]!) {{
  metafieldsSet(metafields: $metafields) {{
    metafields {{ {_METAFIELD_FIELDS} }}
    userErrors {{ field message }}
  }}
}}
"""

_DELETE_METAFIELD_MUTATION = """
mutation DeleteMetafield($input: MetafieldDeleteInput!) {
  metafieldDelete(input: $input) {
    deletedId
    userErrors { field message }
  }
}
"""


def _metafields_set_input(owner_id: str, metafields: list[Any]) -> list[dict[str, Any]]:
    return [{"ownerId": owner_id, **as_input(metafield)} for metafield in metafields]


def register_metafield_tools(mcp: FastMCP, stores: StoreRegistry) -> dict[str, ToolInvoker]:
    async def _get_metafield_definitions(
        owner_type: OwnerType = "PRODUCT",
        store_alias: Annotated[str | None, Field(description=STORE_ALIAS_DESCRIPTION)] = None,
        namespace: str | None = None,
        first: int = 50,
    ) -> dict[str, Any]:
        try:
            client, store = resolve_store(stores, store_alias)
            data = await client.request(
                _GET_DEFINITIONS_QUERY,
                {"first": bounded_limit(first), "ownerType": owner_type, "namespace": namespace},
            )
            definitions = connection_nodes(data["metafieldDefinitions"])
        except Exception as exc:
            raise tool_failure("fetch metafield definitions", exc) from exc

        return format_payload(
            {"metafieldDefinitions": definitions, "count": len(definitions), "store": store.as_dict()}
        )

    async def _create_metafield_definition(
        name: Annotated[str, Field(min_length=1)],
        namespace: Annotated[str, Field(min_length=1)],
        key: Annotated[str, Field(min_length=1)],
        type: Annotated[str, Field(min_length=1, description="Metafield type, e.g. 'single_line_text_field'")],
        owner_type: OwnerType,
        store_alias: Annotated[str | None, Field(description=STORE_ALIAS_DESCRIPTION)] = None,
        description: str | None = None,
        validations: list[MetafieldValidation] | None = None,
        pin: bool = False,
    ) -> dict[str, Any]:
        definition = {
            "name": name,
            "namespace": namespace,
            "key": key,
            "type": type,
            "ownerType": owner_type,
            "description": description,
            "validations": [as_input(rule) for rule in validations] if validations else None,
            "pin": pin,
        }
        try:
            client, store = resolve_store(stores, store_alias)
            data = await client.request(
                _CREATE_DEFINITION_MUTATION,
                {"definition": {field: value for field, value in definition.items() if value is not None}},
            )
            result = data["metafieldDefinitionCreate"]
            raise_for_user_errors(result)
        except Exception as exc:
            raise tool_failure("create metafield definition", exc) from exc

        return format_payload({"metafieldDefinition": result.get("createdDefinition"), "store": store.as_dict()})

    async def _set_metafields(
        owner_id: Annotated[
            str,
            Field(min_length=1, description="Resource GID, e.g. 'gid://shopify/Product/123'"),
        ],
        metafields: Annotated[list[MetafieldSetInput], Field(min_length=1)],
        store_alias: Annotated[str | None, Field(description=STORE_ALIAS_DESCRIPTION)] = None,
    ) -> dict[str, Any]:
        try:
            client, store = resolve_store(stores, store_alias)
            data = await client.request(
                _SET_METAFIELDS_MUTATION,
                {"metafields": _metafields_set_input(owner_id, metafields)},
            )
            result = data["metafieldsSet"]
            raise_for_user_errors(result)
        except Exception as exc:
            raise tool_failure("set metafields", exc) from exc

        return format_payload({"metafields": result.get("metafields"), "ownerId": owner_id, "store": store.as_dict()})

    async def _update_product_metafields(
        product_id: Annotated[str, Field(min_length=1, description="Product ID, numeric or GID")],
        metafields: Annotated[list[MetafieldSetInput], Field(min_length=1)],
        store_alias: Annotated[str | None, Field(description=STORE_ALIAS_DESCRIPTION)] = None,
    ) -> dict[str, Any]:
        product_gid = to_gid("Product", product_id)
        try:
            client, store = resolve_store(stores, store_alias)
            data = await client.request(
                _SET_PRODUCT_METAFIELDS_MUTATION,
                {"metafields": _metafields_set_input(product_gid, metafields)},
            )
            result = data["metafieldsSet"]
            raise_for_user_errors(result)
        except Exception as exc:
            raise tool_failure("update product metafields", exc) from exc

        return format_payload(
            {"metafields": result.get("metafields"), "productId": product_gid, "store": store.as_dict()}
        )

    async def _delete_metafield(
        metafield_id: Annotated[
            str,
            Field(min_length=1, description="Metafield GID, e.g. 'gid://shopify/Metafield/123456'"),
        ],
        store_alias: Annotated[str | None, Field(description=STORE_ALIAS_DESCRIPTION)] = None,
    ) -> dict[str, Any]:
        try:
            client, store = resolve_store(stores, store_alias)
            data = await client.request(_DELETE_METAFIELD_MUTATION, {"input": {"id": metafield_id}})
            result = data["metafieldDelete"]
            raise_for_user_errors(result)
        except Exception as exc:
            raise tool_failure("delete metafield", exc) from exc

        return format_payload({"deletedId": result.get("deletedId"), "success": True, "store": store.as_dict()})

    mcp.tool(
        name="get_metafield_definitions",
        description="Get metafield definitions for a resource type, optionally filtered by namespace.",
    )(_get_metafield_definitions)
    mcp.tool(
        name="create_metafield_definition",
        description="Create a metafield definition for a resource type.",
    )(_create_metafield_definition)
    mcp.tool(
        name="set_metafields",
        description="Create or update metafields on any resource (Product, Variant, Customer, Order, Collection).",
    )(_set_metafields)
    mcp.tool(
        name="update_product_metafields",
        description="Create or update metafields on a product.",
    )(_update_product_metafields)
    mcp.tool(name="delete_metafield", description="Delete a metafield by GID.")(_delete_metafield)

    return {
        "get_metafield_definitions": _get_metafield_definitions,
        "create_metafield_definition": _create_metafield_definition,
        "set_metafields": _set_metafields,
        "update_product_metafields": _update_product_metafields,
        "delete_metafield": _delete_metafield,
    }


__all__ = ["register_metafield_tools"]

from __future__ import annotations

from typing import Annotated, Any, Literal

from fastmcp import FastMCP
from pydantic import Field

from formatters import connection_nodes, format_payload
from store_registry import StoreRegistry
from tools.base import (
    STORE_ALIAS_DESCRIPTION,
    ToolInvoker,
    bounded_limit,
    raise_for_user_errors,
    resolve_store,
    to_gid,
    tool_failure,
)

_GET_PRODUCTS_QUERY = """
query GetProducts($first: Int!, $query: String) {
  products(first: $first, query: $query) {
    edges {
      node {
        id
        title
        description
        handle
        status
        createdAt
        updatedAt
        totalInventory
        priceRangeV2 {
          minVariantPrice { amount currencyCode }
          maxVariantPrice { amount currencyCode }
        }
        images(first: 1) {
          edges { node { url altText } }
        }
        variants(first: 5) {
          edges { node { id title price inventoryQuantity sku } }
        }
      }
    }
  }
}
"""

_GET_PRODUCT_BY_ID_QUERY = """
query GetProductById($id: ID!) {
  product(id: $id) {
    id
    title
    description
    descriptionHtml
    handle
    status
    vendor
    productType
    tags
    createdAt
    updatedAt
    totalInventory
    priceRangeV2 {
      minVariantPrice { amount currencyCode }
      maxVariantPrice { amount currencyCode }
    }
    images(first: 10) {
      edges { node { id url altText width height } }
    }
    variants(first: 50) {
      edges {
        node {
          id
          title
          price
          sku
          inventoryQuantity
          selectedOptions { name value }
        }
      }
    }
    collections(first: 10) {
      edges { node { id title handle } }
    }
  }
}
"""

_CREATE_PRODUCT_MUTATION = """
mutation productCreate($input: ProductInput!) {
  productCreate(input: $input) {
    product {
      id
      title
      descriptionHtml
      vendor
      productType
      status
      tags
    }
    userErrors { field message }
  }
}
"""


def _price_range(product: dict[str, Any]) -> dict[str, Any] | None:
    price_range = product.get("priceRangeV2")
    if not price_range:
        return None
    return {
        "minPrice": price_range.get("minVariantPrice"),
        "maxPrice": price_range.get("maxVariantPrice"),
    }


def _product_summary(product: dict[str, Any]) -> dict[str, Any]:
    images = connection_nodes(product.get("images"))
    return {
        "id": product.get("id"),
        "title": product.get("title"),
        "description": product.get("description"),
        "handle": product.get("handle"),
        "status": product.get("status"),
        "createdAt": product.get("createdAt"),
        "updatedAt": product.get("updatedAt"),
        "totalInventory": product.get("totalInventory"),
        "priceRange": _price_range(product),
        "imageUrl": images[0].get("url") if images else None,
        "variants": [
            {
                "id": variant.get("id"),
                "title": variant.get("title"),
                "price": variant.get("price"),
                "inventoryQuantity": variant.get("inventoryQuantity"),
                "sku": variant.get("sku"),
            }
            for variant in connection_nodes(product.get("variants"))
        ],
    }


def register_product_tools(mcp: FastMCP, stores: StoreRegistry) -> dict[str, ToolInvoker]:
    async def _get_products(
        store_alias: Annotated[str | None, Field(description=STORE_ALIAS_DESCRIPTION)] = None,
        search_title: str | None = None,
        limit: int = 10,
    ) -> dict[str, Any]:
        try:
            client, store = resolve_store(stores, store_alias)
            data = await client.request(
                _GET_PRODUCTS_QUERY,
                {
                    "first": bounded_limit(limit),
                    "query": f"title:*{search_title}*" if search_title else None,
                },
            )
            products = [_product_summary(product) for product in connection_nodes(data["products"])]
        except Exception as exc:
            raise tool_failure("fetch products", exc) from exc

        return format_payload({"products": products, "store": store.as_dict()})

    async def _get_product_by_id(
        product_id: Annotated[str, Field(min_length=1, description="Product ID, numeric or GID")],
        store_alias: Annotated[str | None, Field(description=STORE_ALIAS_DESCRIPTION)] = None,
    ) -> dict[str, Any]:
        try:
            client, store = resolve_store(stores, store_alias)
            data = await client.request(_GET_PRODUCT_BY_ID_QUERY, {"id": to_gid("Product", product_id)})
            product = data.get("product")
            if not product:
                raise LookupError(f"Product with ID {product_id} not found")
            product = dict(product)
            product["priceRange"] = _price_range(product)
            product.pop("priceRangeV2", None)
            product["images"] = connection_nodes(product.get("images"))
            product["variants"] = connection_nodes(product.get("variants"))
            product["collections"] = connection_nodes(product.get("collections"))
        except Exception as exc:
            raise tool_failure("fetch product", exc) from exc

        return format_payload({"product": product, "store": store.as_dict()})

    async def _create_product(
        title: Annotated[str, Field(min_length=1)],
        store_alias: Annotated[str | None, Field(description=STORE_ALIAS_DESCRIPTION)] = None,
        description_html: str | None = None,
        vendor: str | None = None,
        product_type: str | None = None,
        tags: list[str] | None = None,
        status: Literal["ACTIVE", "DRAFT", "ARCHIVED"] = "DRAFT",
    ) -> dict[str, Any]:
        product_input = {
            "title": title,
            "descriptionHtml": description_html,
            "vendor": vendor,
            "productType": product_type,
            "tags": tags,
            "status": status,
        }
        try:
            client, store = resolve_store(stores, store_alias)
            data = await client.request(
                _CREATE_PRODUCT_MUTATION,
                {"input": {key: value for key, value in product_input.items() if value is not None}},
            )
            result = data["productCreate"]
            raise_for_user_errors(result)
        except Exception as exc:
            raise tool_failure("create product", exc) from exc

        return format_payload({"product": result.get("product"), "store": store.as_dict()})

    mcp.tool(name="get_products", description="Get all products or search by title.")(_get_products)
    mcp.tool(
        name="get_product_by_id",
        description="Get a product with its variants, images and collections by ID.",
    )(_get_product_by_id)
    mcp.tool(name="create_product", description="Create a new product. Status defaults to DRAFT.")(
        _create_product
    )

    return {
        "get_products": _get_products,
        "get_product_by_id": _get_product_by_id,
        "create_product": _create_product,
    }


__all__ = ["register_product_tools"]

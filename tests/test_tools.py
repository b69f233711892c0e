"""Tests for tool handlers using a recording GraphQL client double."""

from __future__ import annotations

import pytest
from fastmcp import FastMCP

from errors import GraphQLRequestError
from store_registry import StoreConfig, StoreRegistry
from tools import register_tools
from tools.base import ToolExecutionError, bounded_limit, to_gid
from tools.context import reset_store_alias, set_store_alias
from tools.inputs import MetafieldSetInput

ACME_STORE = {"alias": "acme", "domain": "acme.myshopify.com"}

EXPECTED_TOOLS = {
    "list_stores",
    "get_products",
    "get_product_by_id",
    "create_product",
    "get_customers",
    "update_customer",
    "get_customer_orders",
    "get_orders",
    "get_order_by_id",
    "update_order",
    "get_metafield_definitions",
    "create_metafield_definition",
    "set_metafields",
    "update_product_metafields",
    "delete_metafield",
}


def _money(amount: str) -> dict:
    return {"shopMoney": {"amount": amount, "currencyCode": "USD"}}


def _order_node(order_id: str = "gid://shopify/Order/1") -> dict:
    return {
        "id": order_id,
        "name": "#1001",
        "createdAt": "2024-03-01T10:00:00Z",
        "displayFinancialStatus": "PAID",
        "displayFulfillmentStatus": "UNFULFILLED",
        "totalPriceSet": _money("30.00"),
        "subtotalPriceSet": _money("25.00"),
        "totalShippingPriceSet": _money("5.00"),
        "totalTaxSet": _money("0.00"),
        "customer": None,
        "lineItems": {
            "edges": [
                {
                    "node": {
                        "id": "gid://shopify/LineItem/9",
                        "title": "Mug",
                        "quantity": 2,
                        "originalTotalSet": _money("25.00"),
                        "variant": {"id": "gid://shopify/ProductVariant/3", "title": "Blue", "sku": "MUG-B"},
                    }
                }
            ]
        },
        "tags": ["vip"],
        "note": None,
    }


class TestRegistration:
    def test_registers_every_tool(self, tools):
        assert set(tools) == EXPECTED_TOOLS

    def test_helpers(self):
        assert to_gid("Product", "123") == "gid://shopify/Product/123"
        assert to_gid("Product", "gid://shopify/Product/123") == "gid://shopify/Product/123"
        assert bounded_limit(0) == 1
        assert bounded_limit(1000) == 250


class TestListStores:
    @pytest.mark.asyncio
    async def test_lists_with_default(self, tools):
        result = await tools["list_stores"]()
        assert result["defaultStore"] == "acme"
        assert {"alias": "acme", "domain": "acme.myshopify.com", "isDefault": True} in result["stores"]
        assert {"alias": "beta", "domain": "beta.myshopify.com", "isDefault": False} in result["stores"]
        assert result["message"] == "2 store(s) configured. Default: acme"

    @pytest.mark.asyncio
    async def test_no_stores(self):
        tools = register_tools(FastMCP(name="test"), StoreRegistry())
        result = await tools["list_stores"]()
        assert result == {"stores": [], "defaultStore": None, "message": "No stores configured."}


class TestGetProducts:
    @pytest.mark.asyncio
    async def test_uses_default_store_and_reshapes(self, tools, acme_client):
        acme_client.queue(
            {
                "products": {
                    "edges": [
                        {
                            "node": {
                                "id": "gid://shopify/Product/1",
                                "title": "Mug",
                                "description": "A mug",
                                "handle": "mug",
                                "status": "ACTIVE",
                                "createdAt": "2024-01-01T00:00:00Z",
                                "updatedAt": "2024-01-02T00:00:00Z",
                                "totalInventory": 7,
                                "priceRangeV2": {
                                    "minVariantPrice": {"amount": "10.0", "currencyCode": "USD"},
                                    "maxVariantPrice": {"amount": "12.0", "currencyCode": "USD"},
                                },
                                "images": {"edges": [{"node": {"url": "https://cdn/mug.png", "altText": None}}]},
                                "variants": {
                                    "edges": [
                                        {
                                            "node": {
                                                "id": "gid://shopify/ProductVariant/3",
                                                "title": "Blue",
                                                "price": "10.0",
                                                "inventoryQuantity": 7,
                                                "sku": "MUG-B",
                                            }
                                        }
                                    ]
                                },
                            }
                        }
                    ]
                }
            }
        )

        result = await tools["get_products"](search_title="mug", limit=5)

        _query, variables = acme_client.calls[0]
        assert variables == {"first": 5, "query": "title:*mug*"}
        assert result["store"] == ACME_STORE
        product = result["products"][0]
        assert product["imageUrl"] == "https://cdn/mug.png"
        assert product["priceRange"]["minPrice"] == {"amount": "10.0", "currencyCode": "USD"}
        assert product["variants"] == [
            {
                "id": "gid://shopify/ProductVariant/3",
                "title": "Blue",
                "price": "10.0",
                "inventoryQuantity": 7,
                "sku": "MUG-B",
            }
        ]

    @pytest.mark.asyncio
    async def test_targets_requested_store(self, tools, shop_registry):
        beta_client = shop_registry.get_client("BETA")
        beta_client.queue({"products": {"edges": []}})

        result = await tools["get_products"](store_alias="BETA")

        assert result == {"products": [], "store": {"alias": "beta", "domain": "beta.myshopify.com"}}
        assert beta_client.calls[0][1] == {"first": 10, "query": None}

    @pytest.mark.asyncio
    async def test_unknown_store_is_wrapped(self, tools):
        with pytest.raises(ToolExecutionError) as excinfo:
            await tools["get_products"](store_alias="gamma")
        message = str(excinfo.value)
        assert message.startswith("Failed to fetch products:")
        assert 'Store "gamma" not found' in message

    @pytest.mark.asyncio
    async def test_no_default_is_wrapped(self):
        registry = StoreRegistry(client_factory=lambda config: None)
        registry.register("acme", StoreConfig(domain="acme.myshopify.com", access_token="a"))
        registry.register("beta", StoreConfig(domain="beta.myshopify.com", access_token="b"))
        tools = register_tools(FastMCP(name="test"), registry)
        with pytest.raises(ToolExecutionError, match="No store specified and no default store set"):
            await tools["get_products"]()

    @pytest.mark.asyncio
    async def test_request_error_is_wrapped(self, tools, acme_client):
        acme_client.queue(GraphQLRequestError("HTTP 503 from upstream", status_code=503))
        with pytest.raises(ToolExecutionError, match="Failed to fetch products: HTTP 503"):
            await tools["get_products"]()

    @pytest.mark.asyncio
    async def test_route_context_alias(self, tools, shop_registry):
        beta_client = shop_registry.get_client("beta")
        beta_client.queue({"products": {"edges": []}})
        token = set_store_alias("beta")
        try:
            result = await tools["get_products"]()
        finally:
            reset_store_alias(token)
        assert result["store"]["alias"] == "beta"


class TestProductById:
    @pytest.mark.asyncio
    async def test_numeric_id_becomes_gid(self, tools, acme_client):
        acme_client.queue(
            {
                "product": {
                    "id": "gid://shopify/Product/42",
                    "title": "Mug",
                    "priceRangeV2": None,
                    "images": {"edges": []},
                    "variants": {"edges": [{"node": {"id": "v1", "title": "Default", "selectedOptions": []}}]},
                    "collections": {"edges": [{"node": {"id": "c1", "title": "Kitchen", "handle": "kitchen"}}]},
                }
            }
        )

        result = await tools["get_product_by_id"](product_id="42")

        assert acme_client.calls[0][1] == {"id": "gid://shopify/Product/42"}
        assert result["product"]["variants"][0]["id"] == "v1"
        assert result["product"]["collections"] == [{"id": "c1", "title": "Kitchen", "handle": "kitchen"}]
        assert "priceRangeV2" not in result["product"]

    @pytest.mark.asyncio
    async def test_missing_product(self, tools, acme_client):
        acme_client.queue({"product": None})
        with pytest.raises(ToolExecutionError, match="Product with ID 42 not found"):
            await tools["get_product_by_id"](product_id="42")


class TestCreateProduct:
    @pytest.mark.asyncio
    async def test_sends_input_and_returns_product(self, tools, acme_client):
        acme_client.queue(
            {"productCreate": {"product": {"id": "gid://shopify/Product/5", "title": "Mug"}, "userErrors": []}}
        )

        result = await tools["create_product"](title="Mug", tags=["kitchen"])

        assert acme_client.calls[0][1] == {"input": {"title": "Mug", "tags": ["kitchen"], "status": "DRAFT"}}
        assert result == {"product": {"id": "gid://shopify/Product/5", "title": "Mug"}, "store": ACME_STORE}

    @pytest.mark.asyncio
    async def test_user_errors_fail(self, tools, acme_client):
        acme_client.queue(
            {"productCreate": {"product": None, "userErrors": [{"field": ["title"], "message": "can't be blank"}]}}
        )
        with pytest.raises(ToolExecutionError, match="Failed to create product: title: can't be blank"):
            await tools["create_product"](title="x")


class TestCustomers:
    @pytest.mark.asyncio
    async def test_get_customers(self, tools, acme_client):
        acme_client.queue({"customers": {"edges": [{"node": {"id": "c1", "email": "a@example.com", "tags": None}}]}})
        result = await tools["get_customers"](search_query="email:a@example.com", limit=3)
        assert acme_client.calls[0][1] == {"first": 3, "query": "email:a@example.com"}
        assert result["customers"] == [{"id": "c1", "email": "a@example.com", "tags": []}]

    @pytest.mark.asyncio
    async def test_update_customer_rejects_non_numeric_id(self, tools, acme_client):
        with pytest.raises(ToolExecutionError, match="Customer ID must be numeric"):
            await tools["update_customer"](id="gid://shopify/Customer/1")
        assert acme_client.calls == []

    @pytest.mark.asyncio
    async def test_update_customer(self, tools, acme_client):
        acme_client.queue(
            {
                "customerUpdate": {
                    "customer": {"id": "gid://shopify/Customer/7", "note": "hi", "metafields": {"edges": []}},
                    "userErrors": [],
                }
            }
        )

        result = await tools["update_customer"](
            id="7",
            note="hi",
            tax_exempt=False,
            metafields=[{"namespace": "custom", "key": "tier", "value": "gold", "type": "single_line_text_field"}],
        )

        assert acme_client.calls[0][1] == {
            "input": {
                "id": "gid://shopify/Customer/7",
                "note": "hi",
                "taxExempt": False,
                "metafields": [
                    {"namespace": "custom", "key": "tier", "value": "gold", "type": "single_line_text_field"}
                ],
            }
        }
        assert result["customer"] == {"id": "gid://shopify/Customer/7", "note": "hi", "metafields": []}

    @pytest.mark.asyncio
    async def test_customer_orders(self, tools, acme_client):
        acme_client.queue({"orders": {"edges": [{"node": _order_node()}]}})
        result = await tools["get_customer_orders"](customer_id="77")
        assert acme_client.calls[0][1] == {"query": "customer_id:77", "first": 10}
        order = result["orders"][0]
        assert order["financialStatus"] == "PAID"
        assert order["totalPrice"] == {"amount": "30.00", "currencyCode": "USD"}
        assert order["lineItems"][0]["originalTotal"] == {"amount": "25.00", "currencyCode": "USD"}
        assert "customer" not in order


class TestOrders:
    @pytest.mark.asyncio
    async def test_any_status_sends_no_filter(self, tools, acme_client):
        acme_client.queue({"orders": {"edges": []}})
        await tools["get_orders"]()
        assert acme_client.calls[0][1] == {"first": 10, "query": None}

    @pytest.mark.asyncio
    async def test_status_filter(self, tools, acme_client):
        acme_client.queue({"orders": {"edges": [{"node": _order_node()}]}})
        result = await tools["get_orders"](status="open", limit=2)
        assert acme_client.calls[0][1] == {"first": 2, "query": "status:open"}
        assert result["orders"][0]["name"] == "#1001"

    @pytest.mark.asyncio
    async def test_order_by_id(self, tools, acme_client):
        node = _order_node("gid://shopify/Order/5")
        node["metafields"] = {"edges": [{"node": {"id": "m1", "key": "k", "value": "v"}}]}
        node["email"] = "buyer@example.com"
        acme_client.queue({"order": node})

        result = await tools["get_order_by_id"](order_id="5")

        assert acme_client.calls[0][1] == {"id": "gid://shopify/Order/5"}
        assert result["order"]["email"] == "buyer@example.com"
        assert result["order"]["metafields"] == [{"id": "m1", "key": "k", "value": "v"}]

    @pytest.mark.asyncio
    async def test_update_order(self, tools, acme_client):
        acme_client.queue(
            {"orderUpdate": {"order": {"id": "gid://shopify/Order/5", "tags": ["rush"]}, "userErrors": []}}
        )

        result = await tools["update_order"](
            id="gid://shopify/Order/5",
            tags=["rush"],
            custom_attributes=[{"key": "gift", "value": "yes"}],
            shipping_address={"city": "Toronto", "zip": None},
        )

        assert acme_client.calls[0][1] == {
            "input": {
                "id": "gid://shopify/Order/5",
                "tags": ["rush"],
                "customAttributes": [{"key": "gift", "value": "yes"}],
                "shippingAddress": {"city": "Toronto"},
            }
        }
        assert result["order"] == {"id": "gid://shopify/Order/5", "tags": ["rush"], "metafields": []}


class TestMetafields:
    @pytest.mark.asyncio
    async def test_definitions(self, tools, acme_client):
        acme_client.queue({"metafieldDefinitions": {"edges": [{"node": {"id": "d1", "key": "color"}}]}})
        result = await tools["get_metafield_definitions"](owner_type="PRODUCT", namespace="custom")
        assert acme_client.calls[0][1] == {"first": 50, "ownerType": "PRODUCT", "namespace": "custom"}
        assert result["count"] == 1
        assert result["metafieldDefinitions"] == [{"id": "d1", "key": "color"}]

    @pytest.mark.asyncio
    async def test_create_definition(self, tools, acme_client):
        acme_client.queue(
            {"metafieldDefinitionCreate": {"createdDefinition": {"id": "d2", "key": "color"}, "userErrors": []}}
        )
        result = await tools["create_metafield_definition"](
            name="Color",
            namespace="custom",
            key="color",
            type="single_line_text_field",
            owner_type="PRODUCT",
        )
        definition = acme_client.calls[0][1]["definition"]
        assert definition["ownerType"] == "PRODUCT"
        assert definition["pin"] is False
        assert "description" not in definition
        assert result["metafieldDefinition"] == {"id": "d2", "key": "color"}

    @pytest.mark.asyncio
    async def test_set_metafields(self, tools, acme_client):
        acme_client.queue({"metafieldsSet": {"metafields": [{"id": "m1"}], "userErrors": []}})
        metafield = MetafieldSetInput(namespace="custom", key="color", value="blue", type="single_line_text_field")

        result = await tools["set_metafields"](owner_id="gid://shopify/Customer/1", metafields=[metafield])

        assert acme_client.calls[0][1] == {
            "metafields": [
                {
                    "ownerId": "gid://shopify/Customer/1",
                    "namespace": "custom",
                    "key": "color",
                    "value": "blue",
                    "type": "single_line_text_field",
                }
            ]
        }
        assert result["ownerId"] == "gid://shopify/Customer/1"
        assert result["metafields"] == [{"id": "m1"}]

    @pytest.mark.asyncio
    async def test_update_product_metafields_uses_product_gid(self, tools, acme_client):
        acme_client.queue({"metafieldsSet": {"metafields": [], "userErrors": []}})
        result = await tools["update_product_metafields"](
            product_id="99",
            metafields=[{"namespace": "custom", "key": "k", "value": "v", "type": "single_line_text_field"}],
        )
        assert acme_client.calls[0][1]["metafields"][0]["ownerId"] == "gid://shopify/Product/99"
        assert result["productId"] == "gid://shopify/Product/99"

    @pytest.mark.asyncio
    async def test_delete_metafield(self, tools, acme_client):
        acme_client.queue({"metafieldDelete": {"deletedId": "gid://shopify/Metafield/1", "userErrors": []}})
        result = await tools["delete_metafield"](metafield_id="gid://shopify/Metafield/1")
        assert acme_client.calls[0][1] == {"input": {"id": "gid://shopify/Metafield/1"}}
        assert result == {"deletedId": "gid://shopify/Metafield/1", "success": True, "store": ACME_STORE}

    @pytest.mark.asyncio
    async def test_delete_user_errors(self, tools, acme_client):
        acme_client.queue(
            {"metafieldDelete": {"deletedId": None, "userErrors": [{"field": "id", "message": "not found"}]}}
        )
        with pytest.raises(ToolExecutionError, match="Failed to delete metafield: id: not found"):
            await tools["delete_metafield"](metafield_id="gid://shopify/Metafield/1")

"""Structured tool arguments mirroring Shopify Admin API input objects.

Field names follow the GraphQL input names so a dumped model can be sent as
a mutation variable as-is.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class MetafieldInput(BaseModel):
    """Metafield attached to an order or customer update."""

    id: str | None = None
    namespace: str | None = None
    key: str | None = None
    value: str
    type: str | None = None


class MetafieldSetInput(BaseModel):
    namespace: str = Field(description="Namespace for the metafield")
    key: str = Field(description="Key for the metafield")
    value: str = Field(description="Value for the metafield (as string, even for JSON)")
    type: str = Field(description="Metafield type, e.g. 'single_line_text_field', 'json', 'number_integer'")


class CustomAttribute(BaseModel):
    key: str
    value: str


class MailingAddressInput(BaseModel):
    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    company: str | None = None
    country: str | None = None
    firstName: str | None = None
    lastName: str | None = None
    phone: str | None = None
    province: str | None = None
    zip: str | None = None


class MetafieldValidation(BaseModel):
    name: str
    value: str


__all__ = [
    "CustomAttribute",
    "MailingAddressInput",
    "MetafieldInput",
    "MetafieldSetInput",
    "MetafieldValidation",
]

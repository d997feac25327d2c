# app/schemas/product.py
from pydantic import BaseModel, ConfigDict


class ProductImage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    src: str
    alt: str | None = None


class ProductVariant(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    title: str | None = None
    price: str | None = None
    sku: str | None = None
    inventory_quantity: int | None = None


class Product(BaseModel):
    """
    Shopify product, as returned by the Admin REST API.

    Read-only and never persisted; unknown fields from Shopify are dropped.
    `tags` is Shopify's comma-separated string.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    title: str
    product_type: str | None = None
    vendor: str | None = None
    tags: str | None = None
    image: ProductImage | None = None
    variants: list[ProductVariant] = []

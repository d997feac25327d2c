# app/routers/products.py
from typing import Iterator

from fastapi import APIRouter, Depends

from app.core.auth import require_auth
from app.core.config import Settings, get_settings
from app.schemas.product import Product
from app.services.catalog_service import CatalogReader, search_products

router = APIRouter(
    prefix="/products",
    tags=["Products"],
    dependencies=[Depends(require_auth)],
)


def get_catalog(settings: Settings = Depends(get_settings)) -> Iterator[CatalogReader]:
    """Per-request Shopify reader; raises ConfigurationError without credentials."""
    catalog = CatalogReader(settings)
    try:
        yield catalog
    finally:
        catalog.close()


@router.get("", response_model=list[Product])
def list_products(
    q: str | None = None,
    catalog: CatalogReader = Depends(get_catalog),
):
    """
    List products from Shopify.

    - `q` filters by title, vendor, product type or tags (case-insensitive).
    """
    return search_products(catalog.list_products(), q)


@router.get("/{product_id}", response_model=Product)
def get_product(
    product_id: int,
    catalog: CatalogReader = Depends(get_catalog),
):
    """Get a single Shopify product by id."""
    return catalog.get_product(product_id)

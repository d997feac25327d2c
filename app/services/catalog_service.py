# app/services/catalog_service.py
import logging

import httpx

from app.core.config import Settings
from app.core.errors import NotFoundError, UpstreamError
from app.schemas.product import Product

logger = logging.getLogger(__name__)


def search_products(products: list[Product], term: str | None) -> list[Product]:
    """
    Case-insensitive filter over title, vendor, product type and tags.

    An empty term returns the list unchanged.
    """
    term = (term or "").strip().lower()
    if not term:
        return products

    def matches(p: Product) -> bool:
        fields = (p.title, p.vendor, p.product_type, p.tags)
        return any(term in (f or "").lower() for f in fields)

    return [p for p in products if matches(p)]


class CatalogReader:
    """
    Read-only client for the Shopify Admin REST API.

    Results are not cached or persisted; every call goes to Shopify.
    """

    def __init__(self, settings: Settings, client: httpx.Client | None = None):
        settings.require("SHOPIFY_STORE_URL", "SHOPIFY_ACCESS_TOKEN")
        store = settings.SHOPIFY_STORE_URL.strip().removeprefix("https://").rstrip("/")
        self.base_url = f"https://{store}/admin/api/{settings.SHOPIFY_API_VERSION}"
        self._http = client or httpx.Client(timeout=30.0)
        self._headers = {
            "X-Shopify-Access-Token": settings.SHOPIFY_ACCESS_TOKEN,
            "Content-Type": "application/json",
        }

    def _get(self, path: str) -> dict:
        try:
            resp = self._http.get(f"{self.base_url}{path}", headers=self._headers)
        except httpx.HTTPError as e:
            logger.error("Shopify request %s failed: %s", path, e)
            raise UpstreamError(f"Shopify API error: {e}") from e

        if resp.status_code == 404:
            raise NotFoundError("Product not found")

        if resp.is_error:
            detail = resp.reason_phrase
            try:
                detail = resp.json().get("errors") or detail
            except ValueError:
                pass
            logger.error("Shopify request %s returned %s: %s", path, resp.status_code, detail)
            raise UpstreamError(f"Shopify API error: {detail}")

        return resp.json()

    def list_products(self) -> list[Product]:
        data = self._get("/products.json")
        return [Product.model_validate(p) for p in data.get("products", [])]

    def get_product(self, product_id: int) -> Product:
        data = self._get(f"/products/{product_id}.json")
        product = data.get("product")
        if product is None:
            raise NotFoundError("Product not found")
        return Product.model_validate(product)

    def close(self) -> None:
        self._http.close()

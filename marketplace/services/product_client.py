# marketplace/services/product_client.py
import requests

from marketplace.utils.retry import http_retry
from marketplace.utils.settings import PRODUCT_SERVICE_URL
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class ProductClient:
    """Klient product-service - jedyna operacja potrzebna tutaj to korekta stanu magazynu."""

    def __init__(self, base_url: str | None = None, timeout: int = 2):
        self.base_url = (base_url or PRODUCT_SERVICE_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def adjust_stock(self, product_id: int, delta: int) -> dict:
        url = f"{self.base_url}/products/{product_id}/stock"
        logger.info(f"ProductClient POST {url} delta={delta}")

        resp = requests.post(url, json={"delta": delta}, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

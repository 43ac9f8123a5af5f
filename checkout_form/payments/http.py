"""HTTP payment handler: price lookup and charge submission against the checkout API."""
import logging
import os
from typing import Optional
from urllib.parse import quote

import httpx

from ..output_sanitizer import sanitize_error_detail
from .base import (
    PaymentRequest,
    PaymentResult,
    PaymentService,
    PriceLookupService,
    ServiceDetails,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


def get_payment_handler(
    base_url: str | None = None,
    api_key: str | None = None,
    timeout: float | None = None,
) -> "HttpPaymentHandler":
    """Factory function to create a handler from arguments or the environment."""
    url = base_url or os.environ.get("CHECKOUT_API_BASE_URL", "")
    if not url:
        raise ValueError("CHECKOUT_API_BASE_URL not set")
    key = api_key or os.environ.get("CHECKOUT_API_KEY") or None
    if timeout is None:
        timeout = float(os.environ.get("CHECKOUT_HTTP_TIMEOUT", DEFAULT_TIMEOUT_SECONDS))
    return HttpPaymentHandler(base_url=url, api_key=key, timeout=timeout)


class HttpPaymentHandler(PriceLookupService, PaymentService):
    """Both external services behind one ``httpx.AsyncClient``.

    Endpoints:
        GET  /services/{service_id} -> {"price": 19.99, ...}
        POST /payments              -> {"success": true} or {"success": false, "error": {...}}
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "HttpPaymentHandler":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_service_details(self, service_id: str) -> ServiceDetails:
        response = await self._client.get(f"/services/{quote(service_id, safe='')}")
        response.raise_for_status()
        return ServiceDetails.model_validate(response.json())

    async def submit_payment(self, request: PaymentRequest) -> PaymentResult:
        response = await self._client.post("/payments", json=request.model_dump(mode="json"))

        # Processor declines come back as 4xx with an error body
        if response.is_client_error:
            body = _json_or_none(response)
            if isinstance(body, dict) and "error" in body:
                logger.info("Payment rejected with HTTP %s", response.status_code)
                return PaymentResult(success=False, error=body["error"])

        if response.is_error:
            logger.warning(
                "Payment endpoint returned HTTP %s: %s",
                response.status_code,
                sanitize_error_detail(response.text),
            )
        response.raise_for_status()
        return PaymentResult.model_validate(response.json())


def _json_or_none(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return None

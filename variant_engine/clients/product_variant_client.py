import logging
from typing import Any, List, Optional

import httpx
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from variant_engine.core.config import settings
from variant_engine.core.exceptions import GatewayError
from variant_engine.schemas.variant import Variant, VariantPayload

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class ProductVariantClient:
    """REST client for the product service's variant endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.PRODUCT_SERVICE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.GATEWAY_TIMEOUT_SECONDS
        self.transport = transport

    def _variants_url(self, product_id: str, persisted_id: Optional[str] = None) -> str:
        url = f"{self.base_url}/api/products/{product_id}/variants"
        if persisted_id is not None:
            url = f"{url}/{persisted_id}"
        return url

    async def _request(self, method: str, url: str, json: Any = None) -> Any:
        with tracer.start_as_current_span(f"ProductVariantClient.{method.lower()}") as span:
            span.set_attribute("http.request.method", method)
            span.set_attribute("url.full", url)
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                try:
                    response = await client.request(method, url, json=json)
                    span.set_attribute("http.response.status_code", response.status_code)
                    response.raise_for_status()
                except httpx.RequestError as e:
                    logger.error("Product service unavailable", extra={"method": method, "url": url, "error": str(e)})
                    span.record_exception(e)
                    span.set_status(Status(StatusCode.ERROR, "Product service unavailable"))
                    raise GatewayError("Product service unavailable", status_code=503) from e
                except httpx.HTTPStatusError as e:
                    detail = _error_detail(e.response)
                    logger.error("Product service returned an error", extra={
                        "method": method,
                        "url": url,
                        "status_code": e.response.status_code,
                        "detail": detail,
                    })
                    span.set_status(Status(StatusCode.ERROR, detail))
                    raise GatewayError(detail, status_code=e.response.status_code) from e

                if not response.content:
                    return None
                return response.json()

    async def create_variant(self, product_id: str, payload: VariantPayload) -> Variant:
        """상품에 variant 추가"""
        body = await self._request("POST", self._variants_url(product_id), json=_dump(payload))
        return _unwrap_variant(body, product_id)

    async def update_variant(self, product_id: str, persisted_id: str, payload: VariantPayload) -> Variant:
        """SKU 기준 variant 수정"""
        body = await self._request("PUT", self._variants_url(product_id, persisted_id), json=_dump(payload))
        return _unwrap_variant(body, product_id)

    async def delete_variant(self, product_id: str, persisted_id: str) -> None:
        await self._request("DELETE", self._variants_url(product_id, persisted_id))

    async def list_variants(self, product_id: str) -> List[Variant]:
        """상품의 variant 목록 조회"""
        body = await self._request("GET", self._variants_url(product_id))
        raw = _unwrap(body, "variants")
        if not isinstance(raw, list):
            raise GatewayError(f"Unexpected variant list for product {product_id}")
        return [Variant.from_service(item) for item in raw]


def _dump(payload: VariantPayload) -> dict:
    return payload.model_dump(by_alias=True, exclude_none=True)


def _unwrap(body: Any, key: str) -> Any:
    """Responses come as {data: {key: ...}}, {key: ...}, {data: ...} or the bare value."""
    if isinstance(body, dict):
        data = body.get("data")
        if isinstance(data, dict) and key in data:
            return data[key]
        if key in body:
            return body[key]
        if data is not None:
            return data
    return body


def _unwrap_variant(body: Any, product_id: str) -> Variant:
    raw = _unwrap(body, "variant")
    # create may answer with the whole product; the new variant is the last one
    if isinstance(raw, dict) and isinstance(raw.get("variants"), list) and raw["variants"]:
        raw = raw["variants"][-1]
    if not isinstance(raw, dict):
        raise GatewayError(f"Unexpected variant response for product {product_id}")
    return Variant.from_service(raw)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("detail", "message", "error"):
            if body.get(key):
                return str(body[key])
    return str(body)

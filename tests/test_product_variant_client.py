"""
ProductVariantClient against a mocked product service (httpx.MockTransport).

Covers:
  - routes and camelCase payloads for create / update / delete / list
  - response unwrapping: {data: {variant}}, {variant}, bare, whole product
  - error mapping: HTTP errors keep their status, connection errors -> 503
"""

import json

import httpx
import pytest

from conftest import make_variant
from variant_engine.clients.product_variant_client import ProductVariantClient
from variant_engine.core.exceptions import GatewayError

BASE_URL = "http://products.test"

SERVICE_VARIANT = {
    "sku": "SKU-9",
    "name": "Green M",
    "price": 12.5,
    "costPrice": 5,
    "images": [],
    "attributeGroups": [{"name": "Physical Properties", "attributes": [
        {"label": "Color", "value": "Green", "isDifferentiator": True},
    ]}],
}


def _client(handler) -> ProductVariantClient:
    return ProductVariantClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))


class TestRequests:

    @pytest.mark.asyncio
    async def test_create_posts_camel_case_payload(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"data": {"variant": SERVICE_VARIANT}})

        payload = make_variant({"Color": "Green"}, name="Green M", price=12.5, costPrice=5).to_payload()
        variant = await _client(handler).create_variant("P1", payload)

        assert seen["method"] == "POST"
        assert seen["path"] == "/api/products/P1/variants"
        assert seen["body"]["costPrice"] == 5
        assert seen["body"]["attributeGroups"][0]["attributes"][0]["isDifferentiator"] is True
        assert variant.persisted_id == "SKU-9"
        assert variant.id == "SKU-9"

    @pytest.mark.asyncio
    async def test_update_uses_persisted_id(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            return httpx.Response(200, json={"variant": SERVICE_VARIANT})

        variant = await _client(handler).update_variant("P1", "SKU-9", make_variant({"Color": "Green"}).to_payload())
        assert seen == {"method": "PUT", "path": "/api/products/P1/variants/SKU-9"}
        assert variant.name == "Green M"

    @pytest.mark.asyncio
    async def test_delete_with_empty_response(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "DELETE"
            assert request.url.path == "/api/products/P1/variants/SKU-9"
            return httpx.Response(204)

        assert await _client(handler).delete_variant("P1", "SKU-9") is None

    @pytest.mark.asyncio
    async def test_list_variants(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            return httpx.Response(200, json={"data": {"variants": [SERVICE_VARIANT, {**SERVICE_VARIANT, "sku": "SKU-10"}]}})

        variants = await _client(handler).list_variants("P1")
        assert [v.persisted_id for v in variants] == ["SKU-9", "SKU-10"]


class TestUnwrapping:

    @pytest.mark.asyncio
    async def test_bare_variant(self):
        variant = await _client(lambda request: httpx.Response(200, json=SERVICE_VARIANT)).update_variant(
            "P1", "SKU-9", make_variant({"Color": "Green"}).to_payload()
        )
        assert variant.sku == "SKU-9"

    @pytest.mark.asyncio
    async def test_whole_product_returns_last_variant(self):
        product = {"_id": "P1", "name": "Shirt", "variants": [{**SERVICE_VARIANT, "sku": "SKU-1"}, SERVICE_VARIANT]}
        variant = await _client(lambda request: httpx.Response(201, json={"data": product})).create_variant(
            "P1", make_variant({"Color": "Green"}).to_payload()
        )
        assert variant.persisted_id == "SKU-9"

    @pytest.mark.asyncio
    async def test_bare_list(self):
        variants = await _client(lambda request: httpx.Response(200, json=[SERVICE_VARIANT])).list_variants("P1")
        assert len(variants) == 1

    @pytest.mark.asyncio
    async def test_unexpected_list_shape(self):
        with pytest.raises(GatewayError):
            await _client(lambda request: httpx.Response(200, json={"data": {"count": 0}})).list_variants("P1")


class TestErrors:

    @pytest.mark.asyncio
    async def test_http_error_keeps_status_and_detail(self):
        client = _client(lambda request: httpx.Response(404, json={"message": "Product not found"}))
        with pytest.raises(GatewayError) as exc_info:
            await client.list_variants("P404")
        assert exc_info.value.status_code == 404
        assert exc_info.value.http_status == 404
        assert exc_info.value.message == "Product not found"

    @pytest.mark.asyncio
    async def test_plain_text_error(self):
        client = _client(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(GatewayError) as exc_info:
            await client.delete_variant("P1", "SKU-1")
        assert exc_info.value.message == "boom"

    @pytest.mark.asyncio
    async def test_connection_error_is_503(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(GatewayError) as exc_info:
            await _client(handler).list_variants("P1")
        assert exc_info.value.status_code == 503
        assert exc_info.value.message == "Product service unavailable"

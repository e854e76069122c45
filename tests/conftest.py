"""
Shared fixtures: an in-memory product service standing in for the REST
gateway, and small builders for variants with differentiator attributes.
"""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

import pytest

from variant_engine.core.exceptions import GatewayError
from variant_engine.schemas.variant import Variant, VariantPayload


def make_variant(
    differentiators: Optional[Dict[str, object]] = None,
    persisted_id: Optional[str] = None,
    name: str = "",
    extra: Optional[Dict[str, object]] = None,
    group_name: str = "Physical Properties",
    **kwargs,
) -> Variant:
    """Variant with one attribute group; ``differentiators`` are flagged, ``extra`` are not."""
    attributes = [
        {"label": label, "value": value, "isDifferentiator": True}
        for label, value in (differentiators or {}).items()
    ]
    attributes += [
        {"label": label, "value": value, "isDifferentiator": False}
        for label, value in (extra or {}).items()
    ]
    groups = [{"name": group_name, "attributes": attributes}] if attributes else []
    data = {
        "id": kwargs.pop("id", persisted_id),
        "persistedId": persisted_id,
        "sku": persisted_id,
        "name": name,
        "attributeGroups": groups,
    }
    data.update(kwargs)
    return Variant.model_validate(data)


class FakeVariantGateway:
    """In-memory product service. ``fail_*`` flags make the next call raise GatewayError."""

    def __init__(self, variants: Optional[List[Variant]] = None):
        self.variants: List[Variant] = [v.model_copy(deep=True) for v in (variants or [])]
        self.calls: List[tuple] = []
        self.fail_create = False
        self.fail_update = False
        self.fail_delete = False
        self.fail_list = False
        self.gate: Optional[asyncio.Event] = None
        # one event per call, consumed in call order; takes precedence over ``gate``
        self.gates: List[asyncio.Event] = []
        self._next_id = 100

    async def _wait(self):
        if self.gates:
            await self.gates.pop(0).wait()
        elif self.gate is not None:
            await self.gate.wait()

    async def create_variant(self, product_id: str, payload: VariantPayload) -> Variant:
        self.calls.append(("create", product_id))
        await self._wait()
        if self.fail_create:
            raise GatewayError("Failed to save variant", status_code=500)
        self._next_id += 1
        sku = f"SKU-{self._next_id}"
        variant = Variant.model_validate({**payload.model_dump(by_alias=True), "id": sku, "persistedId": sku, "sku": sku})
        self.variants.append(variant)
        return variant

    async def update_variant(self, product_id: str, persisted_id: str, payload: VariantPayload) -> Variant:
        self.calls.append(("update", product_id, persisted_id))
        await self._wait()
        if self.fail_update:
            raise GatewayError("Failed to save variant", status_code=500)
        variant = Variant.model_validate({
            **payload.model_dump(by_alias=True),
            "id": persisted_id,
            "persistedId": persisted_id,
            "sku": persisted_id,
        })
        self.variants = [variant if v.persisted_id == persisted_id else v for v in self.variants]
        return variant

    async def delete_variant(self, product_id: str, persisted_id: str) -> None:
        self.calls.append(("delete", product_id, persisted_id))
        await self._wait()
        if self.fail_delete:
            raise GatewayError("Failed to delete variant", status_code=500)
        self.variants = [v for v in self.variants if v.persisted_id != persisted_id]

    async def list_variants(self, product_id: str) -> List[Variant]:
        self.calls.append(("list", product_id))
        if self.fail_list:
            raise GatewayError("Product service unavailable", status_code=503)
        return [v.model_copy(deep=True) for v in self.variants]

    def mutating_calls(self) -> List[tuple]:
        return [call for call in self.calls if call[0] != "list"]


@pytest.fixture
def red_m() -> Variant:
    return make_variant({"Color": "Red", "Size": "M"}, persisted_id="SKU-1", name="Red M")


@pytest.fixture
def blue_m() -> Variant:
    return make_variant({"Color": "Blue", "Size": "M"}, persisted_id="SKU-2", name="Blue M")


@pytest.fixture
def gateway(red_m, blue_m) -> FakeVariantGateway:
    return FakeVariantGateway([red_m, blue_m])

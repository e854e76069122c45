from typing import List, Protocol

from variant_engine.schemas.variant import Variant, VariantPayload


class VariantPersistenceGateway(Protocol):
    """
    Source of truth for a product's variants.

    Every method raises GatewayError on failure.
    """

    async def create_variant(self, product_id: str, payload: VariantPayload) -> Variant:
        ...

    async def update_variant(self, product_id: str, persisted_id: str, payload: VariantPayload) -> Variant:
        ...

    async def delete_variant(self, product_id: str, persisted_id: str) -> None:
        ...

    async def list_variants(self, product_id: str) -> List[Variant]:
        ...

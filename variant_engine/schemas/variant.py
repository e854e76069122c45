from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from variant_engine.schemas.attribute import AttributeGroup, CamelModel


class VariantPayload(CamelModel):
    """Body sent to the product service on create/update."""
    name: str = ""
    price: float = Field(default=0, ge=0)
    cost_price: float = Field(default=0, ge=0)
    images: List[str] = []
    attribute_groups: List[AttributeGroup] = []


class Variant(CamelModel):
    id: Optional[str] = None  # client-local id, temp_<timestamp> until persisted
    persisted_id: Optional[str] = None
    sku: Optional[str] = None
    name: str = ""
    price: float = 0
    cost_price: float = 0
    description: Optional[str] = None
    images: List[str] = []
    attribute_groups: List[AttributeGroup] = []

    @property
    def is_unsaved(self) -> bool:
        return self.persisted_id is None

    def matches(self, variant_id: str) -> bool:
        return variant_id is not None and variant_id in (self.id, self.persisted_id, self.sku)

    def to_payload(self) -> VariantPayload:
        return VariantPayload(
            name=self.name,
            price=self.price,
            cost_price=self.cost_price,
            images=list(self.images),
            attribute_groups=[group.model_copy(deep=True) for group in self.attribute_groups],
        )

    @classmethod
    def from_service(cls, data: Dict[str, Any]) -> "Variant":
        """
        Build a Variant from a product service document.

        The service identifies variants by SKU; that SKU is the persisted id
        unless an explicit persistedId is present.
        """
        variant = cls.model_validate(data)
        if variant.persisted_id is None:
            variant.persisted_id = variant.sku or data.get("_id")
        if variant.id is None:
            variant.id = variant.persisted_id
        return variant


class VariantOperationResult(CamelModel):
    ok: bool
    level: Literal["success", "warning", "error"] = "success"
    code: Optional[str] = None
    message: str = ""
    missing_attributes: List[str] = []
    variant_index: Optional[int] = None
    variant: Optional[Variant] = None
    http_status: Optional[int] = Field(default=None, exclude=True)


class ConsistencyReport(CamelModel):
    is_valid: bool
    missing_attributes: List[str] = []


class VariantConsistencyRow(CamelModel):
    index: int
    variant_id: Optional[str] = None
    name: str = ""
    is_valid: bool
    missing_attributes: List[str] = []


class DifferentiatorSummary(CamelModel):
    differentiator_attributes: List[str] = []
    varying_attributes: List[str] = []
    variants: List[VariantConsistencyRow] = []


class VariantSessionState(CamelModel):
    product_id: Optional[str] = None
    variants: List[Variant] = []
    processing_index: Optional[int] = None
    expanded_index: Optional[int] = None
    has_unsaved_variant: bool = False

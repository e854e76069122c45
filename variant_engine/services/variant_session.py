from dataclasses import dataclass, field
from typing import List, Optional

from variant_engine.schemas.variant import Variant, VariantSessionState


@dataclass
class VariantEditingSession:
    """
    Everything the controller mutates while one product is being edited.

    ``processing_index`` is the logical mutex: None means idle, otherwise the
    index of the variant whose save/delete is in flight.
    ``in_flight`` counts the gateway calls still running for that index; a
    re-submitted save of the same variant holds the mutex until every one of
    them has settled.
    ``expanded_index`` is the single variant open in the editor.
    """
    product_id: Optional[str] = None
    variants: List[Variant] = field(default_factory=list)
    processing_index: Optional[int] = None
    expanded_index: Optional[int] = None
    in_flight: int = 0

    @property
    def is_idle(self) -> bool:
        return self.processing_index is None

    def acquire(self, index: int) -> None:
        self.processing_index = index
        self.in_flight += 1

    def release(self, index: int) -> None:
        if self.processing_index != index:
            return
        self.in_flight -= 1
        if self.in_flight <= 0:
            self.in_flight = 0
            self.processing_index = None

    def shift_expanded_after_removal(self, index: int) -> None:
        """Keep ``expanded_index`` on the same variant after ``index`` is removed."""
        if self.expanded_index == index:
            self.expanded_index = None
        elif self.expanded_index is not None and self.expanded_index > index:
            self.expanded_index -= 1

    @property
    def has_unsaved_variant(self) -> bool:
        return any(variant.is_unsaved for variant in self.variants)

    def index_of(self, variant_id: str) -> Optional[int]:
        for index, variant in enumerate(self.variants):
            if variant.matches(variant_id):
                return index
        return None

    def snapshot(self) -> VariantSessionState:
        return VariantSessionState(
            product_id=self.product_id,
            variants=[variant.model_copy(deep=True) for variant in self.variants],
            processing_index=self.processing_index,
            expanded_index=self.expanded_index,
            has_unsaved_variant=self.has_unsaved_variant,
        )

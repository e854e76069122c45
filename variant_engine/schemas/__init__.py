from .attribute import (
    Attribute,
    AttributeGroup,
    AttributeValue,
    DifferentiatorEntry,
)
from .variant import (
    ConsistencyReport,
    DifferentiatorSummary,
    Variant,
    VariantConsistencyRow,
    VariantOperationResult,
    VariantPayload,
    VariantSessionState,
)

__all__ = [
    'Attribute',
    'AttributeGroup',
    'AttributeValue',
    'DifferentiatorEntry',
    'ConsistencyReport',
    'DifferentiatorSummary',
    'Variant',
    'VariantConsistencyRow',
    'VariantOperationResult',
    'VariantPayload',
    'VariantSessionState',
]

from .gateway import VariantPersistenceGateway
from .product_variant_client import ProductVariantClient

__all__ = ['VariantPersistenceGateway', 'ProductVariantClient']

from .item_normalizer import FORMAT, ITEM_KEY, ITEM_RESOURCE_CLASS_KEY, ItemNormalizer

__all__ = ['FORMAT', 'ITEM_KEY', 'ITEM_RESOURCE_CLASS_KEY', 'ItemNormalizer']

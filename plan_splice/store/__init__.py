from plan_splice.store.cache import CacheStats, FragmentCache

__all__ = ["CacheStats", "FragmentCache"]

"""mortarQL change tracking: TTL snapshot cache and diff-based updates."""
from mortarql.tracking.cache import TTLCache
from mortarql.tracking.tracker import ChangeTracker, RowCacheEntry

__all__ = ["TTLCache", "ChangeTracker", "RowCacheEntry"]

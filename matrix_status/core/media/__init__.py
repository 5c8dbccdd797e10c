from .avatar import AvatarResolver, fallback_icon_name, thumbnail_candidates
from .cache_store import CacheStore

__all__ = ["AvatarResolver", "CacheStore", "fallback_icon_name", "thumbnail_candidates"]

"""Handle <-> DID resolution with a bounded bidirectional cache."""

from .cache import CacheEntry, HandleCache
from .resolver import IdentityResolver

__all__ = [
    "CacheEntry",
    "HandleCache",
    "IdentityResolver",
]

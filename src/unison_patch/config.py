"""
Configuration for the patch engine, read from the environment with explicit
constructor overrides.
"""

import os
from typing import Optional


class PatchConfig:
    """Configuration for decision caching and patch instrumentation"""

    def __init__(
        self,
        cache_prefix: Optional[str] = None,
        cache_ttl_seconds: Optional[int] = None,
        max_cache_entries: Optional[int] = None,
        tracing_enabled: Optional[bool] = None,
    ):
        self.cache_prefix = cache_prefix or os.getenv("UNISON_PATCH_CACHE_PREFIX", "unison:patch:")
        self.cache_ttl_seconds = int(
            cache_ttl_seconds if cache_ttl_seconds is not None else os.getenv("UNISON_PATCH_CACHE_TTL", "0")
        )
        self.max_cache_entries = int(
            max_cache_entries if max_cache_entries is not None else os.getenv("UNISON_PATCH_MAX_CACHE_ENTRIES", "10000")
        )
        self.tracing_enabled = (
            tracing_enabled
            if tracing_enabled is not None
            else os.getenv("UNISON_PATCH_TRACING", "true").lower() == "true"
        )

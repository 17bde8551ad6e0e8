"""
Blob store over the TTL cache.

Two namespaces share the cache with their own TTL policy:
- upload:{owner_id}:{timestamp_ms} holds raw PDF bytes between the detect
  and analyze requests.
- analysis-cache:{analysis_id} holds a serialized analysis document for
  fast repeat reads.
"""
import json
import logging
import time
from typing import Any, Dict, Optional

from analyzer.cache import TTLCache, blob_cache

logger = logging.getLogger(__name__)

UPLOAD_PREFIX = "upload"
ANALYSIS_CACHE_PREFIX = "analysis-cache"

# Must exceed the think-time between the detect and analyze requests
UPLOAD_TTL = 3600
ANALYSIS_CACHE_TTL = 3600


class BlobStore:
    """Namespaced access to short-lived blobs."""

    def __init__(self, cache: Optional[TTLCache] = None, clock=time.time):
        self._cache = cache if cache is not None else blob_cache
        self._clock = clock

    # --- uploads -----------------------------------------------------------

    def put_upload(self, owner_id: str, data: bytes) -> str:
        """
        Store uploaded file bytes for `owner_id`.

        Returns:
            The blob key, unique per owner and upload timestamp.
        """
        timestamp = int(self._clock() * 1000)
        while True:
            key = f"{UPLOAD_PREFIX}:{owner_id}:{timestamp}"
            if self._cache.add(key, data, ttl=UPLOAD_TTL):
                break
            timestamp += 1

        logger.info(f"Stored upload blob {key} ({len(data)} bytes, ttl={UPLOAD_TTL}s)")
        return key

    def owns_upload(self, owner_id: str, key: str) -> bool:
        return isinstance(key, str) and key.startswith(f"{UPLOAD_PREFIX}:{owner_id}:")

    def get_upload(self, owner_id: str, key: str) -> Optional[Any]:
        """
        Fetch an upload blob owned by `owner_id`.

        Returns:
            The stored value, or None when the key is foreign, unknown or expired.
        """
        if not self.owns_upload(owner_id, key):
            logger.warning(f"Rejected upload key outside owner namespace: {key}")
            return None
        return self._cache.get(key)

    def drop_upload(self, key: str) -> None:
        self._cache.delete(key)

    # --- analysis read cache -----------------------------------------------

    @staticmethod
    def analysis_key(analysis_id: str) -> str:
        return f"{ANALYSIS_CACHE_PREFIX}:{analysis_id}"

    def cache_analysis(self, record: Dict[str, Any]) -> None:
        """Serialize and cache an analysis document under its id."""
        self._cache.set(
            self.analysis_key(record["id"]),
            json.dumps(record),
            ttl=ANALYSIS_CACHE_TTL,
        )

    def get_cached_analysis(self, analysis_id: str) -> Optional[Dict[str, Any]]:
        payload = self._cache.get(self.analysis_key(analysis_id))
        if payload is None:
            return None
        return json.loads(payload)

    def invalidate_analysis(self, analysis_id: str) -> None:
        self._cache.delete(self.analysis_key(analysis_id))


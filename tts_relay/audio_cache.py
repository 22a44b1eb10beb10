"""
TTS Relay Audio Cache

In-memory cache of synthesized audio keyed by request signature.

    - Key: "{voice_id}|{stability}|{similarity_boost}|{text}"
    - Value: raw audio bytes as returned by the provider
    - Lifetime: the process; no eviction, no size bound
    - Statistics: hits, misses, hit_rate

The cache has no lock. Two identical requests racing on a miss both go
upstream and the later store wins.
"""

import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


class AudioCache:
    """
    Process-scoped map from request signature to audio bytes.

    Created once per application lifespan and shared by every request.
    """

    def __init__(self):
        self._entries: Dict[str, bytes] = {}

        # Statistics
        self.hits = 0
        self.misses = 0

        logger.info("Audio cache initialized (in-memory, no eviction)")

    @staticmethod
    def get_cache_key(
        text: str,
        voice_id: str,
        stability: float,
        similarity_boost: float
    ) -> str:
        """
        Build the request signature.

        Every parameter that changes the produced audio is part of the key.
        ``text`` must already be truncated.

        Example:
            >>> AudioCache.get_cache_key("Hello", "EXAVITQu4vr4xnSDxMaL", 0.5, 0.75)
            'EXAVITQu4vr4xnSDxMaL|0.5|0.75|Hello'
        """
        return f"{voice_id}|{stability}|{similarity_boost}|{text}"

    def get(self, cache_key: str) -> Optional[bytes]:
        """Return cached audio for ``cache_key`` or None, updating hit/miss counters."""
        audio = self._entries.get(cache_key)
        if audio is None:
            self.misses += 1
            logger.debug(f"Cache MISS: {cache_key[:80]}")
            return None

        self.hits += 1
        logger.debug(f"Cache HIT: {cache_key[:80]} ({len(audio)} bytes)")
        return audio

    def put(self, cache_key: str, audio: bytes):
        self._entries[cache_key] = audio
        logger.debug(f"Cached audio: {cache_key[:80]} - {len(audio)} bytes")

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with:
                - size: Number of cached entries
                - bytes: Total cached audio size
                - hits: Number of cache hits
                - misses: Number of cache misses
                - hit_rate: Ratio of hits to total lookups (0.0-1.0)
                - total_requests: Total lookups (hits + misses)
        """
        total_requests = self.hits + self.misses
        hit_rate = self.hits / total_requests if total_requests > 0 else 0.0

        return {
            'size': len(self._entries),
            'bytes': sum(len(audio) for audio in self._entries.values()),
            'hits': self.hits,
            'misses': self.misses,
            'hit_rate': hit_rate,
            'total_requests': total_requests
        }

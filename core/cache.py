"""Analysis result caching (in-memory, optionally mirrored to Redis)"""

import json
import hashlib
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import redis

from config.settings import settings
from core.logging import logger, log_structured


# Global Redis client
redis_client: Optional[redis.Redis] = None


def init_redis() -> bool:
    """
    Initialize Redis connection

    Returns:
        bool: True if successful, False otherwise
    """
    global redis_client

    if not settings.REDIS_URL:
        logger.info("ℹ️ REDIS_URL 미설정 - 메모리 결과 캐시만 사용합니다.")
        return False

    try:
        redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
        redis_client.ping()
        logger.info(f"✅ Redis 연결 성공: {settings.REDIS_URL}")
        return True

    except Exception as e:
        logger.error(f"❌ Redis 연결 실패: {str(e)}")
        redis_client = None
        return False


def calculate_image_hash(image_data: Union[str, bytes]) -> str:
    """
    Calculate SHA256 hash of the photo payload (used as caching key)

    Args:
        image_data: Encoded photo text or image binary data

    Returns:
        SHA256 hash string
    """
    if isinstance(image_data, str):
        image_data = image_data.encode("utf-8")
    return hashlib.sha256(image_data).hexdigest()


class ResultCache:
    """
    Time-bounded analysis result cache keyed by photo hash

    Memory tier keeps at most max_entries results (oldest evicted first).
    All memory-tier access is serialized by one lock (request threads and
    background tasks share the cache).
    When Redis is connected, entries are mirrored with the same TTL and
    read back on a memory miss.
    """

    KEY_PREFIX = "analysis:"

    def __init__(
        self,
        ttl: float = 3600,
        max_entries: int = 100,
        clock: Callable[[], float] = time.time
    ):
        self.ttl = ttl
        self.max_entries = max_entries
        self.clock = clock
        self._entries: "OrderedDict[str, Tuple[float, Dict[str, Any]]]" = OrderedDict()
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _purge_expired(self) -> None:
        now = self.clock()
        expired = [key for key, (stored_at, _) in self._entries.items() if now - stored_at >= self.ttl]
        for key in expired:
            self._entries.pop(key, None)

    def _remember(self, key: str, result: Dict[str, Any], stored_at: float) -> None:
        with self._lock:
            self._entries[key] = (stored_at, result)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            self._purge_expired()
            entry = self._entries.get(key)

        if entry is not None:
            log_structured("cache_hit", {"image_hash": key[:16], "tier": "memory"})
            return entry[1]

        if redis_client is None:
            return None

        try:
            cached = redis_client.get(f"{self.KEY_PREFIX}{key}")
            if cached:
                result = json.loads(cached)
                self._remember(key, result, self.clock())
                log_structured("cache_hit", {"image_hash": key[:16], "tier": "redis"})
                return result
        except Exception as e:
            logger.error(f"Redis 조회 중 오류: {str(e)}")
        return None

    def set(self, key: str, result: Dict[str, Any]) -> None:
        self._remember(key, result, self.clock())

        if redis_client is None:
            return

        try:
            redis_client.setex(
                f"{self.KEY_PREFIX}{key}",
                int(self.ttl),
                json.dumps(result, ensure_ascii=False)
            )
        except Exception as e:
            logger.error(f"Redis 저장 중 오류: {str(e)}")

    def items(self) -> List[Tuple[str, Dict[str, Any]]]:
        """Live (key, result) pairs in the memory tier"""
        with self._lock:
            self._purge_expired()
            return [(key, result) for key, (_, result) in self._entries.items()]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

"""Tests for caching functionality"""

import json
import threading
from unittest.mock import patch

from conftest import FakeClock
from core.cache import ResultCache, calculate_image_hash


class TestImageHashing:
    """Test image hash calculation"""

    def test_calculate_image_hash(self, sample_data_url):
        """Same payload should produce same hash"""
        hash1 = calculate_image_hash(sample_data_url)
        hash2 = calculate_image_hash(sample_data_url)

        assert hash1 == hash2
        assert len(hash1) == 64

    def test_str_and_bytes_agree(self):
        assert calculate_image_hash("abc") == calculate_image_hash(b"abc")
        assert calculate_image_hash("abc").startswith("ba7816bf")

    def test_different_images_different_hashes(self):
        assert calculate_image_hash(b"image_data_1") != calculate_image_hash(b"image_data_2")


class TestResultCache:
    """Test memory tier TTL + eviction"""

    def test_set_and_get(self):
        cache = ResultCache()
        cache.set("hash1", {"celebrity": {"name": "胡歌"}})

        assert cache.get("hash1") == {"celebrity": {"name": "胡歌"}}
        assert cache.get("missing") is None

    def test_entry_expires(self):
        clock = FakeClock()
        cache = ResultCache(ttl=3600, clock=clock)
        cache.set("hash1", {"n": 1})

        clock.advance(3599)
        assert cache.get("hash1") is not None

        clock.advance(1)
        assert cache.get("hash1") is None
        assert len(cache) == 0

    def test_oldest_evicted(self):
        cache = ResultCache(max_entries=2)
        cache.set("a", {"n": 1})
        cache.set("b", {"n": 2})
        cache.set("c", {"n": 3})

        assert cache.get("a") is None
        assert [key for key, _ in cache.items()] == ["b", "c"]

    def test_items_skip_expired(self):
        clock = FakeClock()
        cache = ResultCache(ttl=10, clock=clock)
        cache.set("old", {"n": 1})
        clock.advance(5)
        cache.set("new", {"n": 2})
        clock.advance(6)

        assert [key for key, _ in cache.items()] == ["new"]

    def test_clear(self):
        cache = ResultCache()
        cache.set("a", {"n": 1})
        cache.clear()
        assert len(cache) == 0

    def test_concurrent_access(self):
        cache = ResultCache(ttl=0.01, max_entries=16)
        errors = []

        def worker(worker_id):
            try:
                for i in range(500):
                    key = f"{worker_id}-{i % 40}"
                    cache.set(key, {"n": i})
                    cache.get(key)
                    cache.get(f"{(worker_id + 1) % 8}-{i % 40}")
                    cache.items()
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(cache) <= 16


class TestRedisMirror:
    """Test Redis caching functionality"""

    @patch('core.cache.redis_client')
    def test_set_mirrors_to_redis(self, mock_redis):
        cache = ResultCache(ttl=3600)
        cache.set("hash1", {"celebrity": {"name": "胡歌"}})

        key, ttl, payload = mock_redis.setex.call_args[0]
        assert key == "analysis:hash1"
        assert ttl == 3600
        assert json.loads(payload)["celebrity"]["name"] == "胡歌"

    @patch('core.cache.redis_client')
    def test_memory_miss_reads_redis(self, mock_redis):
        mock_redis.get.return_value = json.dumps({"celebrity": {"name": "彭于晏"}})
        cache = ResultCache()

        assert cache.get("hash1")["celebrity"]["name"] == "彭于晏"
        mock_redis.get.assert_called_once_with("analysis:hash1")

        # 두 번째 조회는 메모리에서
        cache.get("hash1")
        assert mock_redis.get.call_count == 1

    @patch('core.cache.redis_client')
    def test_redis_miss(self, mock_redis):
        mock_redis.get.return_value = None
        assert ResultCache().get("hash1") is None

    @patch('core.cache.redis_client')
    def test_redis_errors_are_ignored(self, mock_redis):
        mock_redis.get.side_effect = Exception("Redis connection error")
        mock_redis.setex.side_effect = Exception("Redis connection error")
        cache = ResultCache()

        assert cache.get("hash1") is None
        cache.set("hash1", {"n": 1})
        assert cache.get("hash1") == {"n": 1}


class TestInitRedis:
    """Test Redis initialization"""

    @patch('core.cache.settings')
    def test_init_without_url(self, mock_settings):
        from core.cache import init_redis

        mock_settings.REDIS_URL = None
        assert init_redis() is False

    @patch('core.cache.redis.from_url')
    @patch('core.cache.settings')
    def test_init_connection_failure(self, mock_settings, mock_from_url):
        import core.cache
        from core.cache import init_redis

        mock_settings.REDIS_URL = "redis://localhost:6379/0"
        mock_from_url.return_value.ping.side_effect = Exception("refused")

        assert init_redis() is False
        assert core.cache.redis_client is None

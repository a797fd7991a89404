"""
Remote celebrity photo fetch with a time-bounded on-disk cache

Flow per request:
1. Cache check (md5(name).jpg, valid while younger than the expiry window)
2. Baidu → Bing → Sogou image search, first success wins
3. Normalize (center-cropped square JPEG) and store atomically

Every backend is best-effort: errors are logged and the next backend is tried.
A None result means "use the local pool photo".
"""

import hashlib
import json
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union
from urllib.parse import quote

import requests
from pybreaker import CircuitBreaker, CircuitBreakerError

from core.exceptions import InvalidImageException
from core.logging import logger, log_structured
from models.celebrity import PhotoCacheEntry
from utils.image_utils import cleanup_old_files, fit_square, write_atomic

Clock = Callable[[], float]

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


@dataclass(frozen=True)
class FetchedImage:
    """Downloaded image bytes plus where they came from"""
    backend: str
    source_url: str
    content: bytes


class ImageSearchBackend:
    """Base class: find one image URL for a query, then download it"""

    name = "base"
    referer: Optional[str] = None

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        search_timeout: float = 10,
        download_timeout: float = 15
    ):
        self.session = session or requests.Session()
        self.search_timeout = search_timeout
        self.download_timeout = download_timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"User-Agent": BROWSER_USER_AGENT}
        if self.referer:
            headers["Referer"] = self.referer
        return headers

    def build_query(self, celebrity_name: str) -> str:
        return f"{celebrity_name} 明星"

    def find_image_url(self, query: str) -> Optional[str]:
        raise NotImplementedError

    def download(self, image_url: str) -> Optional[bytes]:
        response = self.session.get(
            image_url,
            headers=self._headers(),
            timeout=self.download_timeout
        )
        response.raise_for_status()
        return response.content or None

    def fetch(self, celebrity_name: str) -> Optional[FetchedImage]:
        """
        Search and download one photo

        Returns None when the search has no usable result.
        Network and parse errors propagate so the caller can log and count them.
        """
        image_url = self.find_image_url(self.build_query(celebrity_name))
        if not image_url:
            return None

        content = self.download(image_url)
        if not content:
            return None
        return FetchedImage(backend=self.name, source_url=image_url, content=content)


class BaiduImageBackend(ImageSearchBackend):
    """Baidu image search JSON endpoint"""

    name = "baidu"
    referer = "https://image.baidu.com/"
    SEARCH_URL = "https://image.baidu.com/search/acjson?tn=resultjson_com&word={query}&pn=0&rn=1"

    def find_image_url(self, query: str) -> Optional[str]:
        response = self.session.get(
            self.SEARCH_URL.format(query=quote(query)),
            headers=self._headers(),
            timeout=self.search_timeout
        )
        response.raise_for_status()

        # Baidu occasionally escapes single quotes, which is not valid JSON
        payload = json.loads(response.text.replace("\\'", "'"))
        for item in payload.get("data") or []:
            if not isinstance(item, dict):
                continue
            url = item.get("middleURL") or item.get("thumbURL")
            if url:
                return url
        return None


class BingImageBackend(ImageSearchBackend):
    """Bing image search result page (murl attributes)"""

    name = "bing"
    SEARCH_URL = "https://www.bing.com/images/search?q={query}&first=1&count=1&qft=+filterui:imagesize-large"
    MURL_PATTERN = re.compile(r'"murl":"([^"]+)"')
    MURL_ESCAPED_PATTERN = re.compile(r"murl&quot;:&quot;(.*?)&quot;")

    def find_image_url(self, query: str) -> Optional[str]:
        response = self.session.get(
            self.SEARCH_URL.format(query=quote(query)),
            headers=self._headers(),
            timeout=self.search_timeout
        )
        response.raise_for_status()

        match = self.MURL_PATTERN.search(response.text) or self.MURL_ESCAPED_PATTERN.search(response.text)
        return match.group(1) if match else None


class SogouImageBackend(ImageSearchBackend):
    """Sogou picture search (inline imageList script)"""

    name = "sogou"
    SEARCH_URL = "https://pic.sogou.com/pics?query={query}&start=0&reqFrom=result"
    IMAGE_LIST_PATTERN = re.compile(r"window\.sogou\.ivk\.imageList\s*=\s*(\[[\s\S]*?\]);")

    def find_image_url(self, query: str) -> Optional[str]:
        response = self.session.get(
            self.SEARCH_URL.format(query=quote(query)),
            headers=self._headers(),
            timeout=self.search_timeout
        )
        response.raise_for_status()

        match = self.IMAGE_LIST_PATTERN.search(response.text)
        if not match:
            return None

        image_list = json.loads(match.group(1))
        if image_list and isinstance(image_list[0], dict):
            return image_list[0].get("picUrl") or None
        return None


class PhotoCache:
    """On-disk photo cache keyed by md5(name); entries expire by file age"""

    def __init__(
        self,
        cache_dir: Union[str, Path],
        url_prefix: str = "/cache/celebrity-photos",
        expiry_seconds: float = 7 * 24 * 60 * 60,
        clock: Clock = time.time
    ):
        self.cache_dir = Path(cache_dir)
        self.url_prefix = url_prefix.rstrip("/")
        self.expiry_seconds = expiry_seconds
        self.clock = clock

    @staticmethod
    def cache_key(celebrity_name: str) -> str:
        return hashlib.md5(celebrity_name.encode("utf-8")).hexdigest()

    def path_for(self, cache_key: str) -> Path:
        return self.cache_dir / f"{cache_key}.jpg"

    def url_for(self, entry: PhotoCacheEntry) -> str:
        return f"{self.url_prefix}/{entry.cache_key}.jpg"

    def lookup(self, celebrity_name: str) -> Optional[PhotoCacheEntry]:
        """Fresh cache entry or None (missing, expired, or unreadable)"""
        key = self.cache_key(celebrity_name)
        path = self.path_for(key)
        try:
            created_at = path.stat().st_mtime
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"⚠️ 사진 캐시 조회 실패 ({celebrity_name}): {str(e)}")
            return None

        if self.clock() - created_at >= self.expiry_seconds:
            return None
        return PhotoCacheEntry(cache_key=key, file_path=str(path), created_at=created_at)

    def store(self, celebrity_name: str, image_data: bytes) -> PhotoCacheEntry:
        """
        Write normalized image bytes (atomic per entry, last writer wins)

        Raises:
            OSError: if the cache directory is not writable
        """
        key = self.cache_key(celebrity_name)
        path = write_atomic(self.path_for(key), image_data)
        return PhotoCacheEntry(cache_key=key, file_path=str(path), created_at=self.clock())

    def clean_expired(self) -> int:
        """Remove expired cache files (external sweep; never called by the fetcher)"""
        return cleanup_old_files(self.cache_dir, self.expiry_seconds, clock=self.clock)


class RemotePhotoFetcher:
    """Cache-first photo lookup across image-search backends"""

    def __init__(
        self,
        cache: PhotoCache,
        backends: Sequence[ImageSearchBackend],
        breakers: Optional[Dict[str, CircuitBreaker]] = None,
        photo_size: int = 500,
        photo_quality: int = 85
    ):
        self.cache = cache
        self.backends: List[ImageSearchBackend] = list(backends)
        self.breakers = breakers or {}
        self.photo_size = photo_size
        self.photo_quality = photo_quality

    def _try_backend(self, backend: ImageSearchBackend, celebrity_name: str) -> Optional[FetchedImage]:
        breaker = self.breakers.get(backend.name)
        try:
            if breaker is not None:
                return breaker.call(backend.fetch, celebrity_name)
            return backend.fetch(celebrity_name)
        except CircuitBreakerError:
            logger.info(f"[CIRCUIT OPEN] {backend.name} 사진 검색 건너뜀")
        except Exception as e:
            logger.warning(f"⚠️ {backend.name}에서 사진 가져오기 실패 ({celebrity_name}): {str(e)}")
        return None

    def get_photo(self, celebrity_name: str) -> Optional[str]:
        """
        Photo URL for a celebrity, or None

        Never raises: callers fall back to the pool photo on None.
        """
        if not celebrity_name:
            return None

        cached = self.cache.lookup(celebrity_name)
        if cached is not None:
            log_structured("photo_cache_hit", {"celebrity": celebrity_name, "cache_key": cached.cache_key})
            return self.cache.url_for(cached)

        logger.info(f"🔍 유명인 사진 검색 시작: {celebrity_name}")

        fetched: Optional[FetchedImage] = None
        for backend in self.backends:
            fetched = self._try_backend(backend, celebrity_name)
            if fetched is not None:
                break

        if fetched is None:
            log_structured("photo_fetch", {"celebrity": celebrity_name, "success": False})
            return None

        try:
            normalized = fit_square(fetched.content, size=self.photo_size, quality=self.photo_quality)
        except InvalidImageException:
            log_structured("photo_fetch", {
                "celebrity": celebrity_name,
                "backend": fetched.backend,
                "success": False,
                "reason": "normalize_failed"
            })
            return None

        try:
            entry = self.cache.store(celebrity_name, normalized)
        except OSError as e:
            logger.error(f"❌ 사진 캐시 저장 실패 ({celebrity_name}): {str(e)}")
            return fetched.source_url

        log_structured("photo_fetch", {
            "celebrity": celebrity_name,
            "backend": fetched.backend,
            "success": True,
            "cache_key": entry.cache_key
        })
        return self.cache.url_for(entry)


def create_default_backends(
    search_timeout: float = 10,
    download_timeout: float = 15
) -> List[ImageSearchBackend]:
    """Baidu → Bing → Sogou sharing one HTTP session"""
    session = requests.Session()
    return [
        BaiduImageBackend(session, search_timeout, download_timeout),
        BingImageBackend(session, search_timeout, download_timeout),
        SogouImageBackend(session, search_timeout, download_timeout),
    ]

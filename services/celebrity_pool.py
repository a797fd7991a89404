"""
유명인 사진 풀 관리 서비스

두 개의 디렉토리에서 유명인 목록을 구성합니다.
- 번들 풀: 배포 시 함께 제공되는 버전 관리 이미지 (성별 별칭 디렉토리, 숫자 파일명)
- 커스텀 풀: 관리자 API로 추가되는 이미지 (celebrities/male, celebrities/female)

스캔 결과는 PoolCache에 통째로 저장되며, 새로고침 주기마다 원자적으로 교체됩니다.
"""

import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union
from urllib.parse import quote

from core.exceptions import CelebrityNotFoundException, CelebrityValidationException
from core.logging import log_structured
from models.celebrity import CelebrityEntry, SourceTag
from models.signals import GenderCategory, normalize_gender
from utils.image_utils import ALLOWED_EXTENSIONS, fit_square, save_image

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

# 번들 풀에서 성별별로 인정하는 디렉토리 이름
BUNDLED_ALIAS_DIRS: Dict[GenderCategory, Tuple[str, ...]] = {
    GenderCategory.MALE: ("male", "男", "men", "man", "boy"),
    GenderCategory.FEMALE: ("female", "女", "women", "woman", "girl"),
}

# 번들 풀의 숫자 파일명 → 표시 이름
BUNDLED_NAME_TABLE: Dict[GenderCategory, Dict[str, str]] = {
    GenderCategory.MALE: {
        "1": "周杰伦",
        "2": "胡歌",
        "3": "彭于晏",
        "4": "吴彦祖",
        "5": "刘德华",
        "6": "王一博",
        "7": "肖战",
        "8": "易烊千玺",
        "9": "黄晓明",
        "10": "梁朝伟",
    },
    GenderCategory.FEMALE: {
        "1": "杨幂",
        "2": "赵丽颖",
        "3": "刘亦菲",
        "4": "迪丽热巴",
        "5": "杨紫",
        "6": "刘诗诗",
        "7": "倪妮",
        "8": "周冬雨",
        "9": "章子怡",
        "10": "高圆圆",
    },
}

DEFAULT_DESCRIPTIONS: Dict[GenderCategory, str] = {
    GenderCategory.MALE: "著名男明星",
    GenderCategory.FEMALE: "著名女明星",
}

_INVALID_NAME_PATTERN = re.compile(r"[\\/:*?\"<>|\-]")


def _sort_key(path: Path) -> Tuple[int, int, str]:
    """숫자 파일명 먼저 (숫자 순), 나머지는 사전 순"""
    stem = path.stem
    if stem.isdigit():
        return (0, int(stem), path.name)
    return (1, 0, path.name)


def parse_entry_name(stem: str, gender: GenderCategory) -> Tuple[str, str]:
    """
    파일명에서 (표시 이름, 설명) 추출

    "周杰伦-华语天王" → ("周杰伦", "华语天王")
    설명이 없으면 성별 기본 설명을 사용합니다.
    """
    name, _, description = stem.partition("-")
    name = name.strip() or stem
    description = description.strip() or DEFAULT_DESCRIPTIONS[gender]
    return name, description


@dataclass(frozen=True)
class PoolSnapshot:
    entries: Tuple[CelebrityEntry, ...]
    loaded_at: float


class PoolCache:
    """
    프로세스 단위 풀 캐시 (주기적 새로고침, 락 없음)

    동시 새로고침이 겹쳐도 스캔은 멱등이고 쓰기는 스냅샷 교체이므로 같은 상태로 수렴합니다.
    """

    def __init__(self, refresh_interval: float = 300, clock: Clock = time.time):
        self.refresh_interval = refresh_interval
        self.clock = clock
        self._snapshot: Optional[PoolSnapshot] = None

    @property
    def last_updated(self) -> Optional[float]:
        return self._snapshot.loaded_at if self._snapshot else None

    def get(self) -> Optional[Tuple[CelebrityEntry, ...]]:
        """Fresh entries, or None when the cache is empty or stale"""
        snapshot = self._snapshot
        if snapshot is None:
            return None
        if self.clock() - snapshot.loaded_at >= self.refresh_interval:
            return None
        return snapshot.entries

    def replace(self, entries: Sequence[CelebrityEntry]) -> Tuple[CelebrityEntry, ...]:
        snapshot = PoolSnapshot(entries=tuple(entries), loaded_at=self.clock())
        self._snapshot = snapshot
        return snapshot.entries

    def invalidate(self) -> None:
        self._snapshot = None


class CelebrityPool:
    """유명인 풀 조회 + 관리"""

    def __init__(
        self,
        bundled_dir: Union[str, Path],
        custom_dir: Union[str, Path],
        cache: Optional[PoolCache] = None,
        bundled_url_prefix: str = "/assets/celebrities",
        custom_url_prefix: str = "/celebrities",
        merge_custom: bool = False,
        photo_size: int = 500,
        photo_quality: int = 85
    ):
        """
        Args:
            bundled_dir: 번들 이미지 루트 (성별 별칭 하위 디렉토리 포함)
            custom_dir: 커스텀 이미지 루트 (male/female 하위 디렉토리)
            cache: 풀 캐시 (테스트에서 시계 주입용)
            merge_custom: True면 번들이 있어도 커스텀 항목을 뒤에 합침
        """
        self.bundled_dir = Path(bundled_dir)
        self.custom_dir = Path(custom_dir)
        self.cache = cache or PoolCache()
        self.bundled_url_prefix = bundled_url_prefix.rstrip("/")
        self.custom_url_prefix = custom_url_prefix.rstrip("/")
        self.merge_custom = merge_custom
        self.photo_size = photo_size
        self.photo_quality = photo_quality

    # ========== 스캔 ==========
    def _list_images(self, directory: Path) -> List[Path]:
        return [
            path for path in directory.iterdir()
            if path.is_file() and path.suffix.lower() in ALLOWED_EXTENSIONS
        ]

    def scan_bundled(self) -> List[CelebrityEntry]:
        """번들 풀 스캔 (읽을 수 없는 디렉토리는 건너뜀)"""
        entries: List[CelebrityEntry] = []
        for gender, aliases in BUNDLED_ALIAS_DIRS.items():
            files: List[Tuple[str, Path]] = []
            for alias in aliases:
                alias_dir = self.bundled_dir / alias
                try:
                    if alias_dir.is_dir():
                        files.extend((alias, path) for path in self._list_images(alias_dir))
                except OSError as e:
                    logger.error(f"❌ 번들 풀 스캔 실패 ({alias}): {str(e)}")

            files.sort(key=lambda item: _sort_key(item[1]))
            name_table = BUNDLED_NAME_TABLE[gender]
            for alias, path in files:
                name, description = parse_entry_name(path.stem, gender)
                entries.append(CelebrityEntry(
                    display_name=name_table.get(path.stem, name),
                    source_tag=SourceTag.BUNDLED,
                    gender_category=gender,
                    photo_reference=f"{self.bundled_url_prefix}/{quote(alias)}/{quote(path.name)}",
                    description=description,
                    filename=path.name,
                    file_path=str(path),
                ))
        return entries

    def scan_custom(self) -> List[CelebrityEntry]:
        """커스텀 풀 스캔 (디렉토리는 필요 시 생성, 오류 시 빈 목록)"""
        entries: List[CelebrityEntry] = []
        try:
            for gender in GenderCategory:
                gender_dir = self.custom_dir / gender.value
                gender_dir.mkdir(parents=True, exist_ok=True)

                for path in sorted(self._list_images(gender_dir), key=_sort_key):
                    name, description = parse_entry_name(path.stem, gender)
                    entries.append(CelebrityEntry(
                        display_name=name,
                        source_tag=SourceTag.CUSTOM,
                        gender_category=gender,
                        photo_reference=f"{self.custom_url_prefix}/{gender.value}/{quote(path.name)}",
                        description=description,
                        filename=path.name,
                        file_path=str(path),
                    ))
        except OSError as e:
            logger.error(f"❌ 커스텀 풀 스캔 실패: {str(e)}")
            return []
        return entries

    def refresh(self) -> Tuple[CelebrityEntry, ...]:
        """두 풀을 다시 스캔하고 캐시를 교체 (번들 먼저)"""
        bundled = self.scan_bundled()
        custom = self.scan_custom()
        entries = self.cache.replace(bundled + custom)

        log_structured("pool_refresh", {
            "bundled_count": len(bundled),
            "custom_count": len(custom),
        })
        return entries

    def all_entries(self) -> Tuple[CelebrityEntry, ...]:
        entries = self.cache.get()
        if entries is None:
            entries = self.refresh()
        return entries

    # ========== 조회 ==========
    def _select_for_gender(
        self,
        entries: Sequence[CelebrityEntry],
        gender: GenderCategory
    ) -> List[CelebrityEntry]:
        bundled = [e for e in entries if e.gender_category == gender and e.source_tag == SourceTag.BUNDLED]
        custom = [e for e in entries if e.gender_category == gender and e.source_tag == SourceTag.CUSTOM]

        if self.merge_custom:
            return bundled + custom
        # 번들 항목이 있으면 커스텀 항목은 사용하지 않음
        return bundled if bundled else custom

    def resolve(self, gender: Optional[GenderCategory] = None) -> List[CelebrityEntry]:
        """
        성별에 맞는 유명인 목록 (순서 보장)

        gender가 None이면 남성 → 여성 순서로 전체를 반환합니다.
        필터 결과가 비어 있으면 호출자가 gender=None으로 다시 조회해야 합니다.
        """
        entries = self.all_entries()
        genders = [gender] if gender is not None else list(GenderCategory)

        result: List[CelebrityEntry] = []
        for category in genders:
            result.extend(self._select_for_gender(entries, category))
        return result

    # ========== 관리 ==========
    def _require_gender(self, gender: Union[str, GenderCategory, None]) -> GenderCategory:
        category = normalize_gender(gender)
        if category is None:
            raise CelebrityValidationException()
        return category

    def add_celebrity(
        self,
        name: str,
        gender: Union[str, GenderCategory],
        image_data: bytes,
        description: str = ""
    ) -> CelebrityEntry:
        """
        커스텀 풀에 유명인 추가

        Raises:
            CelebrityValidationException: 성별/이름이 올바르지 않을 때
            InvalidImageException: 이미지 디코딩 실패
        """
        category = self._require_gender(gender)

        name = (name or "").strip()
        if not name or name.startswith(".") or _INVALID_NAME_PATTERN.search(name):
            raise CelebrityValidationException("名人姓名无效 (不能为空，且不能包含 - / \\ 等字符)")

        description = (description or "").strip()
        if re.search(r"[\\/:*?\"<>|]", description):
            raise CelebrityValidationException("描述不能包含 / \\ 等字符")
        description = description or DEFAULT_DESCRIPTIONS[category]

        filename = f"{name}-{description}.jpg"
        normalized = fit_square(image_data, size=self.photo_size, quality=self.photo_quality)
        file_path = save_image(normalized, filename, self.custom_dir / category.value)

        self.cache.invalidate()
        logger.info(f"✅ 커스텀 유명인 추가: {name} ({category.value})")

        return CelebrityEntry(
            display_name=name,
            source_tag=SourceTag.CUSTOM,
            gender_category=category,
            photo_reference=f"{self.custom_url_prefix}/{category.value}/{quote(filename)}",
            description=description,
            filename=filename,
            file_path=str(file_path),
        )

    def remove_celebrity(self, gender: Union[str, GenderCategory], filename: str) -> None:
        """
        커스텀 풀에서 유명인 삭제 (번들 항목은 읽기 전용)

        Raises:
            CelebrityValidationException: 성별이 올바르지 않을 때
            CelebrityNotFoundException: 파일이 없거나 경로가 올바르지 않을 때
        """
        category = self._require_gender(gender)

        if not filename or Path(filename).name != filename or filename.startswith("."):
            raise CelebrityNotFoundException(filename)

        path = self.custom_dir / category.value / filename
        try:
            path.unlink()
        except FileNotFoundError:
            raise CelebrityNotFoundException(filename)
        except OSError as e:
            logger.error(f"❌ 유명인 삭제 실패 {filename}: {str(e)}")
            raise CelebrityNotFoundException(filename)

        self.cache.invalidate()
        logger.info(f"🗑️ 커스텀 유명인 삭제: {filename} ({category.value})")

    def get_statistics(self) -> Dict[str, object]:
        male = self.resolve(GenderCategory.MALE)
        female = self.resolve(GenderCategory.FEMALE)
        entries = self.all_entries()
        last_updated = self.cache.last_updated

        return {
            "total": len(male) + len(female),
            "male": len(male),
            "female": len(female),
            "bundled": sum(1 for e in entries if e.source_tag == SourceTag.BUNDLED),
            "custom": sum(1 for e in entries if e.source_tag == SourceTag.CUSTOM),
            "lastUpdated": (
                datetime.fromtimestamp(last_updated, tz=timezone.utc).isoformat()
                if last_updated is not None else None
            ),
        }

import fnmatch
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

# 읽기 캐시 키
CONFERENCES_ALL = "conferences.all"
ADMIN_PAGES_ALL = "admin.pages.all"
ADMIN_PAGES_COUNTS = "admin.pages.counts"

# 변경 이벤트 토픽
TOPIC_CONFERENCE = "conference"
TOPIC_PAGE = "page"
TOPIC_ASSIGNMENT = "assignment"


def conference_key(id_or_slug) -> str:
    return f"conferences.{id_or_slug}"


class TTLCache:
    """
    만료 시각을 함께 저장하는 프로세스 내 read-through 캐시입니다.
    만료된 항목은 조회 시점에 제거됩니다.
    """

    def __init__(self, ttl_seconds: int = 600, clock: Callable[[], datetime] = datetime.now):
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._entries: Dict[str, Dict[str, Any]] = {}

    def get(self, key: str, default=None):
        entry = self._entries.get(key)
        if not entry:
            return default
        if self._clock() > entry['expires_at']:
            del self._entries[key]
            return default
        return entry['value']

    def put(self, key: str, value: Any) -> None:
        self._entries[key] = {'value': value, 'expires_at': self._clock() + self.ttl}

    def has(self, key: str) -> bool:
        sentinel = object()
        return self.get(key, sentinel) is not sentinel

    def remember(self, key: str, loader: Callable[[], Any]):
        """캐시에 값이 있으면 반환하고, 없으면 loader()로 채운 뒤 반환합니다."""
        sentinel = object()
        value = self.get(key, sentinel)
        if value is sentinel:
            value = loader()
            self.put(key, value)
        return value

    def forget(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def forget_matching(self, pattern: str) -> List[str]:
        removed = [key for key in self._entries if fnmatch.fnmatchcase(key, pattern)]
        for key in removed:
            del self._entries[key]
        return removed

    def keys(self) -> List[str]:
        return list(self._entries)


class InvalidationRegistry:
    """
    변경 토픽과 무효화할 캐시 키 패턴을 연결합니다.
    새 변경 엔드포인트는 forget()을 나열하지 않고 토픽만 발행합니다.
    """

    def __init__(self, cache: TTLCache):
        self.cache = cache
        self._subscriptions: Dict[str, List[str]] = {}

    def subscribe(self, topic: str, patterns: Iterable[str]) -> None:
        self._subscriptions.setdefault(topic, []).extend(patterns)

    def patterns_for(self, topic: str) -> List[str]:
        return list(self._subscriptions.get(topic, []))

    def publish(self, topic: str, keys: Optional[Iterable[str]] = None) -> List[str]:
        """
        토픽에 구독된 패턴과 추가로 지정된 키를 모두 무효화합니다.

        Returns:
            실제로 제거된 캐시 키 목록.
        """
        removed = []
        for pattern in self.patterns_for(topic):
            removed.extend(self.cache.forget_matching(pattern))
        for key in keys or ():
            if self.cache.forget(key):
                removed.append(key)
        if removed:
            logger.debug("Topic '%s' invalidated cache keys: %s", topic, removed)
        return removed


def build_default_registry(cache: TTLCache) -> InvalidationRegistry:
    registry = InvalidationRegistry(cache)
    registry.subscribe(TOPIC_CONFERENCE, ["conferences.*", ADMIN_PAGES_ALL, ADMIN_PAGES_COUNTS])
    registry.subscribe(TOPIC_PAGE, [ADMIN_PAGES_ALL, ADMIN_PAGES_COUNTS])
    registry.subscribe(TOPIC_ASSIGNMENT, [CONFERENCES_ALL, ADMIN_PAGES_ALL, ADMIN_PAGES_COUNTS])
    return registry


def cached(ctx, key: str, loader: Callable[[], Any]):
    """ctx.cache(InvalidationRegistry)가 있으면 read-through, 없으면 바로 로드합니다."""
    if ctx is None or ctx.cache is None:
        return loader()
    return ctx.cache.cache.remember(key, loader)


def publish(ctx, topic: str, keys: Optional[Iterable[str]] = None) -> List[str]:
    if ctx is None or ctx.cache is None:
        return []
    return ctx.cache.publish(topic, keys)

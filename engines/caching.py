"""Process-local caches for assessments, recommendations and concept mastery."""

from threading import Lock
from typing import Any, Dict, List, Optional, Tuple


class AssessmentCache:
    """Thread-safe per-user cache for generative skill assessments."""

    def __init__(self):
        self._cache: Dict[str, Dict[str, Any]] = {}
        self._lock = Lock()

    def add(self, user_id: str, assessment: Dict[str, Any]) -> None:
        with self._lock:
            self._cache[user_id] = dict(assessment)

    def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            cached = self._cache.get(user_id)
            return dict(cached) if cached is not None else None

    def invalidate(self, user_id: str) -> None:
        with self._lock:
            self._cache.pop(user_id, None)


class RecommendationCache:
    """Concept recommendation lists keyed by user and requested count."""

    def __init__(self):
        self._cache: Dict[Tuple[str, int], List[str]] = {}
        self._lock = Lock()

    def add(self, user_id: str, count: int, concepts: List[str]) -> None:
        with self._lock:
            self._cache[(user_id, count)] = list(concepts)

    def get(self, user_id: str, count: int) -> Optional[List[str]]:
        with self._lock:
            cached = self._cache.get((user_id, count))
            return list(cached) if cached is not None else None

    def invalidate(self, user_id: str) -> None:
        with self._lock:
            for key in [key for key in self._cache if key[0] == user_id]:
                self._cache.pop(key, None)


class MasteryCache:
    """Latest mastery record per (user, concept)."""

    def __init__(self, max_size: int = 10000):
        self._cache: Dict[Tuple[str, str], Any] = {}
        self._access_order: List[Tuple[str, str]] = []
        self._max_size = max_size
        self._lock = Lock()

    def add(self, user_id: str, concept_id: str, mastery: Any) -> None:
        key = (user_id, concept_id)
        with self._lock:
            if key in self._cache:
                self._access_order.remove(key)
            elif len(self._cache) >= self._max_size:
                # Evict least recently used
                lru_key = self._access_order.pop(0)
                self._cache.pop(lru_key, None)
            self._cache[key] = mastery
            self._access_order.append(key)

    def get(self, user_id: str, concept_id: str) -> Optional[Any]:
        key = (user_id, concept_id)
        with self._lock:
            mastery = self._cache.get(key)
            if mastery is not None:
                self._access_order.remove(key)
                self._access_order.append(key)
            return mastery

    def invalidate(self, user_id: str) -> None:
        with self._lock:
            stale = [key for key in self._cache if key[0] == user_id]
            for key in stale:
                self._cache.pop(key, None)
                self._access_order.remove(key)


class EngineCaches:
    """Bundle of the engine caches, invalidated together per user."""

    def __init__(self):
        self.assessments = AssessmentCache()
        self.recommendations = RecommendationCache()
        self.mastery = MasteryCache()

    def invalidate_user(self, user_id: str) -> None:
        self.assessments.invalidate(user_id)
        self.recommendations.invalidate(user_id)
        self.mastery.invalidate(user_id)

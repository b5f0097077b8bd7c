from __future__ import annotations

import logging
import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Tuple

try:
    from redis import Redis
except Exception:  # pragma: no cover - optional dependency at runtime
    Redis = None

from .graph import AnalysisGraph, configuration_fingerprint
from .schemas import (
    AnalysisOutcome,
    AnalysisReport,
    BottleneckResult,
    CompatibilityResult,
    PCConfiguration,
    ROIAnalysis,
    UpgradeRecommendation,
)

logger = logging.getLogger(__name__)

CacheStore = Literal["memory", "redis", "none"]


@dataclass
class SessionState:
    issued_seq: int = 0
    applied_seq: int = 0
    report: Optional[AnalysisReport] = None


class AnalysisService:
    """
    分析服务 - Analysis Service

    Caches reports by configuration fingerprint and applies results to
    per-session state in sequence order: a result whose sequence number is
    not newer than the last applied one is returned but never stored.
    """

    def __init__(
        self,
        graph: AnalysisGraph,
        cache_store: CacheStore = "memory",
        cache_redis_url: str | None = None,
        cache_ttl_seconds: int | None = 300,
        session_ttl_seconds: int | None = 3600,
        session_cleanup_interval_seconds: int = 600,
        cache_cleanup_interval_seconds: int = 60,
    ):
        self.graph = graph
        self.cache_store = cache_store
        self.cache_ttl_seconds = max(0, int(cache_ttl_seconds or 0))
        self.session_ttl_seconds = max(0, int(session_ttl_seconds or 0))
        self.session_cleanup_interval_seconds = max(1, int(session_cleanup_interval_seconds))
        self.cache_cleanup_interval_seconds = max(1, int(cache_cleanup_interval_seconds))

        self.sessions: Dict[str, SessionState] = {}
        self._sessions_lock = threading.Lock()
        self._session_locks: Dict[str, threading.Lock] = {}
        self._session_last_seen: Dict[str, float] = {}

        self._cache: Dict[str, Tuple[float, AnalysisReport]] = {}
        self._cache_lock = threading.Lock()
        self._key_locks: Dict[str, threading.Lock] = {}
        self._cleanup_lock = threading.Lock()
        self._last_cleanup_monotonic = 0.0
        self._last_cache_cleanup_monotonic = 0.0
        self._redis_client: Optional[Redis] = None

        if self.cache_store not in ("memory", "redis", "none"):
            raise ValueError(f"unknown cache_store: {self.cache_store}")
        if self.cache_store == "redis":
            if Redis is None:
                raise RuntimeError("cache_store=redis requires 'redis' package installed.")
            if not cache_redis_url:
                raise ValueError("cache_store=redis requires cache_redis_url.")
            self._redis_client = Redis.from_url(cache_redis_url, decode_responses=True)
            # startup connectivity check for fail-fast behavior
            self._redis_client.ping()

    @staticmethod
    def coerce_configuration(configuration: Any) -> PCConfiguration:
        if isinstance(configuration, PCConfiguration):
            return configuration
        if isinstance(configuration, Mapping):
            return PCConfiguration.model_validate(dict(configuration))
        raise TypeError(f"expected PCConfiguration or mapping, got {type(configuration).__name__}")

    def analyze(self, configuration: Any, timeframe_months: int | None = None) -> AnalysisReport:
        report, _ = self._analyze(self.coerce_configuration(configuration), timeframe_months)
        return report

    def submit(self, session_id: str, configuration: Any, timeframe_months: int | None = None) -> AnalysisOutcome:
        config = self.coerce_configuration(configuration)
        sequence = self.begin(session_id)
        report, cached = self._analyze(config, timeframe_months)
        applied = self.apply(session_id, sequence, report)
        self._cleanup_expired_sessions()
        return AnalysisOutcome(
            session_id=session_id,
            sequence=sequence,
            applied=applied,
            cached=cached,
            report=report,
        )

    def begin(self, session_id: str) -> int:
        with self._get_session_lock(session_id):
            session = self.sessions.setdefault(session_id, SessionState())
            session.issued_seq += 1
            self._session_last_seen[session_id] = time.monotonic()
            return session.issued_seq

    def apply(self, session_id: str, sequence: int, report: AnalysisReport) -> bool:
        with self._get_session_lock(session_id):
            session = self.sessions.setdefault(session_id, SessionState())
            self._session_last_seen[session_id] = time.monotonic()
            if sequence <= session.applied_seq:
                logger.info(
                    "[analysis] dropping stale result session=%s seq=%d applied=%d",
                    session_id,
                    sequence,
                    session.applied_seq,
                )
                return False
            session.applied_seq = sequence
            session.report = report.model_copy(deep=True)
            return True

    def current(self, session_id: str) -> AnalysisReport | None:
        with self._get_session_lock(session_id):
            session = self.sessions.get(session_id)
            if session is None or session.report is None:
                return None
            return session.report.model_copy(deep=True)

    def check_compatibility(self, configuration: Any) -> CompatibilityResult:
        return self.graph.compatibility.check(self.coerce_configuration(configuration))

    def detect_bottlenecks(self, configuration: Any) -> List[BottleneckResult]:
        config = self.coerce_configuration(configuration)
        return self.graph.detector.detect(config, self.graph.scorer.analyze_configuration(config))

    def generate_recommendations(self, configuration: Any) -> List[UpgradeRecommendation]:
        return self.analyze(configuration).recommendations

    def calculate_roi(self, plan: UpgradeRecommendation, timeframe_months: int | None = None) -> ROIAnalysis:
        return self.graph.roi.calculate(plan, timeframe_months)

    def _analyze(self, configuration: PCConfiguration, timeframe_months: int | None) -> Tuple[AnalysisReport, bool]:
        if self.cache_store == "none":
            return self.graph.invoke(configuration, timeframe_months), False

        fingerprint = configuration_fingerprint(configuration, self.graph.catalog.version)
        key = f"{fingerprint}:{timeframe_months or 'default'}"
        with self._get_key_lock(key):
            cached = self._cache_get(key)
            if cached is not None:
                logger.debug("[cache] hit %s", key[:16])
                return cached, True
            logger.debug("[cache] miss %s", key[:16])
            report = self.graph.invoke(configuration, timeframe_months)
            self._cache_put(key, report)
            result = report.model_copy(deep=True)
        self._cleanup_cache()
        return result, False

    def _get_session_lock(self, session_id: str) -> threading.Lock:
        with self._sessions_lock:
            lock = self._session_locks.get(session_id)
            if lock is None:
                lock = threading.Lock()
                self._session_locks[session_id] = lock
            return lock

    def _get_key_lock(self, key: str) -> threading.Lock:
        with self._cache_lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock

    def _redis_key(self, key: str) -> str:
        return f"rigadvisor:analysis:{key}"

    def _cache_get(self, key: str) -> AnalysisReport | None:
        if self.cache_store == "redis":
            assert self._redis_client is not None
            payload = self._redis_client.get(self._redis_key(key))
            if not payload:
                return None
            return AnalysisReport.model_validate_json(payload)

        with self._cache_lock:
            item = self._cache.get(key)
            if item is None:
                return None
            expires_at, report = item
            if self.cache_ttl_seconds > 0 and time.monotonic() >= expires_at:
                self._cache.pop(key, None)
                return None
            return report.model_copy(deep=True)

    def _cache_put(self, key: str, report: AnalysisReport) -> None:
        if self.cache_store == "redis":
            assert self._redis_client is not None
            payload = report.model_dump_json()
            if self.cache_ttl_seconds > 0:
                self._redis_client.set(self._redis_key(key), payload, ex=self.cache_ttl_seconds)
            else:
                self._redis_client.set(self._redis_key(key), payload)
            return

        with self._cache_lock:
            self._cache[key] = (time.monotonic() + self.cache_ttl_seconds, report.model_copy(deep=True))

    def clear_cache(self) -> None:
        with self._cache_lock:
            self._cache.clear()
            self._key_locks.clear()

    def _cleanup_expired_sessions(self, force: bool = False) -> None:
        if self.session_ttl_seconds <= 0:
            return
        now = time.monotonic()
        if not force and now - self._last_cleanup_monotonic < self.session_cleanup_interval_seconds:
            return
        if not self._cleanup_lock.acquire(blocking=False):
            return
        try:
            self._last_cleanup_monotonic = now
            cutoff = now - self.session_ttl_seconds
            with self._sessions_lock:
                stale = [sid for sid, seen in self._session_last_seen.items() if seen < cutoff]
                for sid in stale:
                    lock = self._session_locks.get(sid)
                    if lock is not None and lock.locked():
                        continue
                    self.sessions.pop(sid, None)
                    self._session_locks.pop(sid, None)
                    self._session_last_seen.pop(sid, None)
            if stale:
                logger.debug("[analysis] swept sessions=%d", len(stale))
        finally:
            self._cleanup_lock.release()

    def _cleanup_cache(self, force: bool = False) -> None:
        now = time.monotonic()
        if not force and now - self._last_cache_cleanup_monotonic < self.cache_cleanup_interval_seconds:
            return
        with self._cache_lock:
            self._last_cache_cleanup_monotonic = now
            # ttl 0 means entries never expire
            expired = []
            if self.cache_ttl_seconds > 0:
                expired = [k for k, (expires_at, _) in self._cache.items() if now >= expires_at]
            for k in expired:
                self._cache.pop(k, None)
            idle = [k for k, lock in self._key_locks.items() if k not in self._cache and not lock.locked()]
            for k in idle:
                self._key_locks.pop(k, None)
        if expired:
            logger.debug("[cache] swept entries=%d", len(expired))

"""
Caching Utilities

In-memory caching for metric results and per-session state with TTL support.
"""

import hashlib
import time
from collections import OrderedDict
from threading import Lock
from typing import Any, Callable, Optional, TypeVar

from config import get_settings
from core.logging_config import cache_logger as logger


T = TypeVar("T")


class TTLCache:
    """Thread-safe LRU cache with TTL support."""

    def __init__(self, maxsize: int = 128, ttl_seconds: int = 3600, enabled: bool = True):
        self.maxsize = maxsize
        self.ttl_seconds = ttl_seconds
        self.enabled = enabled
        self._cache: OrderedDict[str, tuple[Any, float]] = OrderedDict()
        self._lock = Lock()

    def _make_key(self, *args, **kwargs) -> str:
        """Create cache key from arguments."""
        key_parts = [str(arg) for arg in args]
        key_parts.extend(f"{k}={v}" for k, v in sorted(kwargs.items()))
        key_string = "|".join(key_parts)
        return hashlib.md5(key_string.encode()).hexdigest()

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache if not expired."""
        if not self.enabled:
            return None
        with self._lock:
            if key not in self._cache:
                return None

            value, timestamp = self._cache[key]
            if time.time() - timestamp > self.ttl_seconds:
                # Expired
                del self._cache[key]
                return None

            # Move to end (most recently accessed)
            self._cache.move_to_end(key)
            return value

    def set(self, key: str, value: Any) -> None:
        """Set value in cache."""
        if not self.enabled:
            return
        with self._lock:
            # Remove oldest if at capacity
            while len(self._cache) >= self.maxsize:
                self._cache.popitem(last=False)

            self._cache[key] = (value, time.time())

    def delete_prefix(self, prefix: str) -> int:
        """Delete every key created by `make_session_key` for a session."""
        with self._lock:
            doomed = [k for k in self._cache if k.startswith(prefix)]
            for k in doomed:
                del self._cache[k]
            return len(doomed)

    def make_session_key(self, session_id: str, *args, **kwargs) -> str:
        """Key namespaced by session so a session's entries can be dropped together."""
        return f"{session_id}:{self._make_key(*args, **kwargs)}"

    def clear(self) -> None:
        """Clear all cache entries."""
        with self._lock:
            self._cache.clear()

    def __contains__(self, key: str) -> bool:
        """Check if key exists and is not expired."""
        return self.get(key) is not None


class SessionStore:
    """
    Session metadata storage.

    Besides metadata, a session can hold live objects (a discovery engine,
    a question generator) under `objects`; those never leave the process.
    """

    def __init__(self):
        self._sessions: dict[str, dict[str, Any]] = {}
        self._lock = Lock()
        settings = get_settings()
        self.ttl_seconds = settings.session_ttl_hours * 3600

    def create(self, session_id: str, metadata: dict[str, Any]) -> None:
        """Create new session."""
        with self._lock:
            self._sessions[session_id] = {
                **metadata,
                "created_at": time.time(),
                "objects": {},
                "lock": Lock(),
            }
        logger.debug(f"Created session {session_id}")

    def get(self, session_id: str) -> Optional[dict[str, Any]]:
        """Get session metadata."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None

            # Check expiration
            if time.time() - session["created_at"] > self.ttl_seconds:
                del self._sessions[session_id]
                logger.info(f"Session {session_id} expired")
                return None

            return session

    def get_object(self, session_id: str, name: str, factory: Callable[[], T]) -> Optional[T]:
        """Return a live per-session object, building it on first use."""
        session = self.get(session_id)
        if session is None:
            return None
        with self._lock:
            objects = session["objects"]
            if name not in objects:
                objects[name] = factory()
            return objects[name]

    def delete(self, session_id: str) -> bool:
        """Delete session."""
        with self._lock:
            if session_id in self._sessions:
                del self._sessions[session_id]
                return True
            return False

    def clear_all(self) -> int:
        """Drop every session and return how many there were."""
        with self._lock:
            count = len(self._sessions)
            self._sessions.clear()
            return count

    def list_sessions(self) -> list[str]:
        """List all active session IDs."""
        with self._lock:
            now = time.time()
            # Clean expired and return active
            active = []
            expired = []
            for sid, session in self._sessions.items():
                if now - session["created_at"] > self.ttl_seconds:
                    expired.append(sid)
                else:
                    active.append(sid)

            for sid in expired:
                del self._sessions[sid]

            return active


# Global instances
settings = get_settings()
metrics_cache = TTLCache(
    maxsize=settings.cache.max_size,
    ttl_seconds=settings.cache.ttl_seconds,
    enabled=settings.cache.enabled,
)
session_store = SessionStore()

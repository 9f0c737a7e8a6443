"""
Redis Plan Cache

Caches generated plans keyed by the inputs that produced them, so repeated
requests with the same history, program, preferences and terms skip the
catalog fetch and allocation.

Features:
- Plan results (plan, audit, rejected records) stored as JSON
- Configurable TTL
- Graceful fallback if Redis unavailable
- Per-student invalidation

The cache is an explicit object owned by its caller (the server keeps one
on app.state); nothing here is process-global.
"""

import json
import hashlib
from typing import Optional, Dict, Any, Iterable, Mapping, Sequence

import redis

from core.config import REDIS_URL, REDIS_HOST, REDIS_PORT, REDIS_DB, REDIS_PASSWORD, PLAN_CACHE_TTL
from core.models import Preferences


# Cache key prefixes
CACHE_PREFIX = "course_planner:"
PLAN_PREFIX = f"{CACHE_PREFIX}plan:"


class PlanCache:
    """Redis cache for generated plans"""

    def __init__(self, client: Optional[redis.Redis] = None, ttl: int = PLAN_CACHE_TTL):
        self._client: Optional[redis.Redis] = client
        self._connected = client is not None
        self.ttl = ttl

    def connect(self) -> bool:
        """
        Connect to Redis server.

        Returns:
            True if connected successfully, False otherwise
        """
        try:
            # Try URL first, then host/port
            if REDIS_URL and REDIS_URL != "redis://localhost:6379/0":
                self._client = redis.from_url(
                    REDIS_URL,
                    decode_responses=True,
                    socket_timeout=5,
                    socket_connect_timeout=5
                )
            else:
                self._client = redis.Redis(
                    host=REDIS_HOST,
                    port=REDIS_PORT,
                    db=REDIS_DB,
                    password=REDIS_PASSWORD,
                    decode_responses=True,
                    socket_timeout=5,
                    socket_connect_timeout=5
                )

            self._client.ping()
            self._connected = True
            print(f"[CACHE] Connected to Redis at {REDIS_HOST}:{REDIS_PORT}")
            return True

        except Exception as e:
            print(f"[CACHE] Failed to connect to Redis: {e}")
            self._client = None
            self._connected = False
            return False

    @property
    def is_connected(self) -> bool:
        """Check if Redis is connected"""
        if not self._connected or not self._client:
            return False
        try:
            self._client.ping()
            return True
        except Exception:
            self._connected = False
            return False

    # --- Keys ---

    @staticmethod
    def _sanitize_key(key: str) -> str:
        """Sanitize a string for use as Redis key"""
        return key.replace(" ", "_").replace("/", "-")

    @staticmethod
    def _hash_inputs(payload: Dict[str, Any]) -> str:
        """Stable hash of planning inputs"""
        content = json.dumps(payload, sort_keys=True)
        return hashlib.md5(content.encode()).hexdigest()[:16]

    def plan_key(
        self,
        student_id: str,
        program: Optional[str],
        preferences: Preferences,
        credits_per_term: int,
        terms: Sequence[str],
        completed: Optional[Mapping[str, int]] = None,
        planned_course_ids: Iterable[str] = (),
        subject: Optional[str] = None
    ) -> str:
        """
        Cache key for a planning request; equal inputs give equal keys.

        Term labels carry the start term and horizon; completed courses
        carry the student history.
        """
        digest = self._hash_inputs({
            "program": program,
            "preferences": preferences.to_dict(),
            "credits_per_term": credits_per_term,
            "terms": list(terms),
            "completed": sorted((completed or {}).items()),
            "planned": sorted(planned_course_ids),
            "subject": subject,
        })
        return f"{PLAN_PREFIX}{self._sanitize_key(student_id)}:{digest}"

    # --- Plans ---

    def get_result(self, key: str) -> Optional[Dict[str, Any]]:
        """Get a cached plan result payload, or None on miss or error"""
        if not self.is_connected:
            return None

        try:
            data = self._client.get(key)
            if data:
                return json.loads(data)
            return None
        except Exception as e:
            print(f"[CACHE] Get error for {key}: {e}")
            return None

    def set_result(self, key: str, payload: Dict[str, Any]) -> bool:
        """Cache a plan result payload with the configured TTL"""
        if not self.is_connected:
            return False

        try:
            self._client.setex(key, self.ttl, json.dumps(payload))
            return True
        except Exception as e:
            print(f"[CACHE] Set error for {key}: {e}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern"""
        if not self.is_connected:
            return 0

        try:
            keys = self._client.keys(pattern)
            if keys:
                return self._client.delete(*keys)
            return 0
        except Exception as e:
            print(f"[CACHE] Delete pattern error for {pattern}: {e}")
            return 0

    def invalidate_student(self, student_id: str) -> int:
        """Drop every cached plan for a student (after their history changes)"""
        count = self.delete_pattern(f"{PLAN_PREFIX}{self._sanitize_key(student_id)}:*")
        print(f"[CACHE] Invalidated {count} plans for {student_id}")
        return count

    def clear(self) -> int:
        """Clear all cached plans"""
        count = self.delete_pattern(f"{PLAN_PREFIX}*")
        print(f"[CACHE] Cleared {count} keys")
        return count

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics"""
        if not self.is_connected:
            return {"connected": False}

        try:
            info = self._client.info("stats")
            return {
                "connected": True,
                "hits": info.get("keyspace_hits", 0),
                "misses": info.get("keyspace_misses", 0),
                "plan_keys": len(self._client.keys(f"{PLAN_PREFIX}*")),
                "ttl": self.ttl
            }
        except Exception as e:
            return {"connected": True, "error": str(e)}

"""
Rate limiting for ModRepo

- `limiter`: Flask-Limiter instance guarding HTTP endpoints.
- `RedisRateLimiter` / `MemoryRateLimiter`: "admit at most once per key per
  window" stores used to count downloads once per client.
"""

import logging
import threading
import time
from datetime import timedelta
from typing import Callable, Dict

import redis
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

logger = logging.getLogger("main")

limiter = Limiter(key_func=get_remote_address)


def make_limiter_key(identity: str, action: str, scope: str) -> str:
    return f"{identity}:{action}:{scope}"


def _window_seconds(window) -> int:
    if isinstance(window, timedelta):
        window = window.total_seconds()
    return max(1, int(window))


class RedisRateLimiter:
    """Admission store on Redis: SET key NX EX window."""

    def __init__(self, client: "redis.Redis"):
        self.client = client

    @classmethod
    def from_url(cls, redis_url: str) -> "RedisRateLimiter":
        client = redis.from_url(redis_url, decode_responses=True)
        logger.info(f"Redis rate limiter initialized at {redis_url}")
        return cls(client)

    def try_admit(self, identity: str, action: str, scope: str, window) -> bool:
        """
        Admit (identity, action, scope) once per window.

        Returns False when already admitted inside the window or when Redis
        cannot be reached.
        """
        key = make_limiter_key(identity, action, scope)
        try:
            return bool(self.client.set(key, 1, nx=True, ex=_window_seconds(window)))
        except redis.RedisError as e:
            logger.warning(f"Rate limiter check failed for {key}: {e}")
            return False


class MemoryRateLimiter:
    """
    Process-local admission store for single worker setups and tests.

    Expired keys are swept on write, at most once per `sweep_interval`
    seconds or as soon as the store holds `max_keys` entries.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_interval: float = 60, max_keys: int = 10000):
        self._clock = clock
        self._expiries: Dict[str, float] = {}
        self._lock = threading.Lock()
        self.sweep_interval = sweep_interval
        self.max_keys = max_keys
        self._last_sweep = clock()

    def _sweep(self, now: float) -> None:
        expired = [key for key, expiry in self._expiries.items() if expiry <= now]
        for key in expired:
            del self._expiries[key]
        self._last_sweep = now
        if expired:
            logger.debug(f"Rate limiter swept {len(expired)} expired keys, {len(self._expiries)} left")

    def try_admit(self, identity: str, action: str, scope: str, window) -> bool:
        key = make_limiter_key(identity, action, scope)
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.sweep_interval or len(self._expiries) >= self.max_keys:
                self._sweep(now)

            expiry = self._expiries.get(key)
            if expiry is not None and expiry > now:
                return False
            self._expiries[key] = now + _window_seconds(window)
            return True

    def __len__(self):
        with self._lock:
            return len(self._expiries)


def build_rate_limiter(limits_settings):
    backend = limits_settings.get("backend", "memory")
    if backend == "redis":
        return RedisRateLimiter.from_url(limits_settings["redis_url"])
    if backend == "memory":
        return MemoryRateLimiter()
    raise ValueError(f"Unknown rate limiter backend: {backend}")

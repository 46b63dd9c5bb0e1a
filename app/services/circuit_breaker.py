"""
Circuit breaker implementation using pybreaker library.
Provides Redis-backed state storage so every API/worker process sees the same
state of the object store.
"""
import logging
from datetime import datetime, timezone

import redis
import pybreaker

from app.core.config import settings
from app.utils.metrics import circuit_breaker_state


logger = logging.getLogger("circuit_breaker")


class RedisCircuitBreakerStorage(pybreaker.CircuitBreakerStorage):
    """Redis-backed storage for circuit breaker state (distributed-friendly)."""

    def __init__(self, name: str, client: redis.Redis | None = None) -> None:
        super().__init__(name)
        self._name = name
        self.client = client or redis.Redis.from_url(settings.redis_url, decode_responses=True)
        self._state_key = f"cb:{name}:state"
        self._counter_key = f"cb:{name}:counter"
        self._success_key = f"cb:{name}:success"
        self._opened_at_key = f"cb:{name}:opened_at"

    @property
    def state(self) -> str:
        try:
            state = self.client.get(self._state_key)
        except redis.RedisError:
            # Breaker must not turn a Redis outage into a storage outage
            return pybreaker.STATE_CLOSED
        return state or pybreaker.STATE_CLOSED

    @state.setter
    def state(self, value: str) -> None:
        try:
            self.client.set(self._state_key, value, ex=settings.cb_open_seconds * 2)
        except redis.RedisError:
            logger.warning("circuit_breaker_state_write_failed", extra={"breaker_name": self._name})
        circuit_breaker_state.labels(name=self._name).set(
            1 if value == pybreaker.STATE_OPEN else 0
        )

    @property
    def counter(self) -> int:
        try:
            count = self.client.get(self._counter_key)
        except redis.RedisError:
            return 0
        return int(count) if count else 0

    def increment_counter(self) -> None:
        try:
            self.client.incr(self._counter_key)
            self.client.expire(self._counter_key, settings.cb_open_seconds)
        except redis.RedisError:
            pass

    def reset_counter(self) -> None:
        try:
            self.client.delete(self._counter_key)
        except redis.RedisError:
            pass

    @property
    def success_counter(self) -> int:
        try:
            count = self.client.get(self._success_key)
        except redis.RedisError:
            return 0
        return int(count) if count else 0

    def increment_success_counter(self) -> None:
        try:
            self.client.incr(self._success_key)
            self.client.expire(self._success_key, settings.cb_open_seconds * 2)
        except redis.RedisError:
            logger.warning("circuit_breaker_counter_write_failed", extra={"breaker_name": self._name})

    def reset_success_counter(self) -> None:
        try:
            self.client.delete(self._success_key)
        except redis.RedisError:
            logger.warning("circuit_breaker_counter_write_failed", extra={"breaker_name": self._name})

    @property
    def opened_at(self) -> datetime | None:
        try:
            raw = self.client.get(self._opened_at_key)
        except redis.RedisError:
            return None
        if not raw:
            return None
        try:
            value = datetime.fromisoformat(raw)
        except ValueError:
            return None
        # pybreaker compares against an aware UTC now
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    @opened_at.setter
    def opened_at(self, value: datetime) -> None:
        try:
            self.client.set(self._opened_at_key, value.isoformat(), ex=settings.cb_open_seconds * 2)
        except redis.RedisError:
            logger.warning("circuit_breaker_state_write_failed", extra={"breaker_name": self._name})


class CircuitBreakerListener(pybreaker.CircuitBreakerListener):
    """Listener for circuit breaker events (logging/metrics)."""

    def __init__(self, name: str) -> None:
        self.name = name

    def state_change(self, cb: pybreaker.CircuitBreaker, old_state, new_state) -> None:
        logger.warning(
            "circuit_breaker_state_change",
            extra={
                "breaker_name": self.name,
                "old_state": getattr(old_state, "name", str(old_state)),
                "new_state": getattr(new_state, "name", str(new_state)),
            },
        )

    def failure(self, cb: pybreaker.CircuitBreaker, exc: BaseException) -> None:
        logger.warning(
            "circuit_breaker_failure",
            extra={
                "breaker_name": self.name,
                "error": type(exc).__name__,
            },
        )


_breakers: dict[str, pybreaker.CircuitBreaker] = {}


def build_circuit_breaker(name: str, client: redis.Redis | None = None) -> pybreaker.CircuitBreaker:
    return pybreaker.CircuitBreaker(
        fail_max=settings.cb_failure_threshold,
        reset_timeout=settings.cb_open_seconds,
        state_storage=RedisCircuitBreakerStorage(name, client),
        listeners=[CircuitBreakerListener(name)],
        # Missing objects are a normal answer, not a sick backend
        exclude=[_is_not_found],
    )


def get_circuit_breaker(name: str) -> pybreaker.CircuitBreaker:
    """Get or create a circuit breaker by name (created lazily, on first call)."""
    if name not in _breakers:
        _breakers[name] = build_circuit_breaker(name)
    return _breakers[name]


def _is_not_found(exc: BaseException) -> bool:
    response = getattr(exc, "response", None)
    if not isinstance(response, dict):
        return False
    return str(response.get("Error", {}).get("Code", "")) in ("NoSuchKey", "404", "NotFound")


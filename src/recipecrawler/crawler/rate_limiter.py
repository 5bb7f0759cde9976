"""
Adaptive pacing for the crawler.

:class:`AdaptiveRateLimiter` derives the inter-batch delay from recent
success and failure counts. :class:`DomainThrottle` enforces a minimum
spacing between requests to the same host and adapts it to how the host
responds.
"""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

import structlog

from ..config.config import RateLimiterConfig, ThrottleConfig
from ..observability.metrics import METRICS
from .results import FetchBlocked, FetchResult, status_code_of

logger = structlog.get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]
ClockFunc = Callable[[], float]


class AdaptiveRateLimiter:
    """
    Scales the base inter-batch delay by the rolling success ratio.

    Counters are halved once their sum passes the history ceiling so the
    ratio reflects recent behaviour rather than the whole process lifetime.
    """

    def __init__(self, config: Optional[RateLimiterConfig] = None) -> None:
        self.config = config or RateLimiterConfig()
        self.success_count = 0
        self.failure_count = 0

    def record_success(self) -> None:
        self.success_count += 1
        self._decay()

    def record_failure(self) -> None:
        self.failure_count += 1
        self._decay()

    def _decay(self) -> None:
        if self.success_count + self.failure_count > self.config.history_ceiling:
            self.success_count //= 2
            self.failure_count //= 2

    @property
    def success_ratio(self) -> Optional[float]:
        total = self.success_count + self.failure_count
        if total == 0:
            return None
        return self.success_count / total

    def get_delay(self) -> float:
        """Delay in milliseconds to wait before the next batch."""
        cfg = self.config
        ratio = self.success_ratio
        if ratio is None:
            delay = cfg.base_delay_ms
        elif ratio > cfg.speedup_ratio:
            delay = max(cfg.min_delay_ms, cfg.base_delay_ms * cfg.speedup_factor)
        elif ratio < cfg.slowdown_ratio:
            delay = min(cfg.max_delay_ms, cfg.base_delay_ms * cfg.slowdown_factor)
        else:
            delay = cfg.base_delay_ms
        METRICS["batch_delay_ms"].set(delay)
        return delay

    def reset(self) -> None:
        self.success_count = 0
        self.failure_count = 0

    def get_stats(self) -> Dict[str, Any]:
        return {
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "success_ratio": self.success_ratio,
            "delay_ms": self.get_delay(),
        }


@dataclass
class DomainThrottleState:
    """Spacing state for one host."""

    interval: float
    last_request_time: Optional[float] = None
    consecutive_successes: int = 0
    blocked_responses: int = 0


class DomainThrottle:
    """
    Per-host minimum request spacing with back-off and speed-up.

    Features:
    - One lock per domain so concurrent callers queue in order
    - Interval grown on 403/429 toward the ceiling
    - Interval shrunk after a streak of 200s toward the floor
    - Random jitter after every wait
    """

    def __init__(
        self,
        config: Optional[ThrottleConfig] = None,
        protected_domains: Iterable[str] = (),
        *,
        clock: ClockFunc = time.monotonic,
        sleep: SleepFunc = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config or ThrottleConfig()
        self.protected_domains = [d.lower() for d in protected_domains]
        self._clock = clock
        self._sleep = sleep
        self._rng = rng or random.Random()

        self._states: Dict[str, DomainThrottleState] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self.logger = logger.bind(component="DomainThrottle")

    def applies_to(self, domain: str) -> bool:
        if self.config.throttle_all_domains:
            return True
        domain = domain.lower()
        return any(domain == p or domain.endswith("." + p) for p in self.protected_domains)

    def _get_domain_lock(self, domain: str) -> asyncio.Lock:
        if domain not in self._locks:
            self._locks[domain] = asyncio.Lock()
        return self._locks[domain]

    def _get_state(self, domain: str) -> DomainThrottleState:
        if domain not in self._states:
            self._states[domain] = DomainThrottleState(interval=self.config.default_interval_seconds)
        return self._states[domain]

    async def wait_for_domain(self, domain: str) -> float:
        """
        Block until the domain's interval has elapsed since its last request.

        Returns:
            Total seconds slept, jitter included
        """
        async with self._get_domain_lock(domain):
            state = self._get_state(domain)
            slept = 0.0
            if state.last_request_time is not None:
                remaining = state.interval - (self._clock() - state.last_request_time)
                if remaining > 0:
                    self.logger.debug("Throttling domain", domain=domain, wait_seconds=round(remaining, 2))
                    await self._sleep(remaining)
                    slept += remaining

            state.last_request_time = self._clock()

            jitter = self._rng.uniform(0, self.config.max_jitter_seconds)
            if jitter > 0:
                await self._sleep(jitter)
                slept += jitter
            return slept

    def record_response(self, domain: str, status_code: int) -> None:
        """Adapt the domain's interval to the status it just answered with."""
        cfg = self.config
        state = self._get_state(domain)

        if status_code in (403, 429):
            state.consecutive_successes = 0
            state.blocked_responses += 1
            new_interval = min(cfg.max_interval_seconds, state.interval * cfg.backoff_factor)
            if new_interval != state.interval:
                self.logger.warning(
                    "Backing off domain",
                    domain=domain,
                    status_code=status_code,
                    interval_seconds=round(new_interval, 2),
                )
            state.interval = new_interval
        elif status_code == 200:
            state.consecutive_successes += 1
            if state.consecutive_successes >= cfg.success_streak:
                state.interval = max(cfg.min_interval_seconds, state.interval * cfg.speedup_factor)
                state.consecutive_successes = 0
        else:
            state.consecutive_successes = 0

    def record_result(self, domain: str, result: FetchResult) -> None:
        """Feed a fetch outcome back; a challenge page counts as a 403."""
        if isinstance(result, FetchBlocked) and result.status_code not in (403, 429):
            self.record_response(domain, 403)
            return
        status = status_code_of(result)
        if status is not None:
            self.record_response(domain, status)

    def get_domain_stats(self, domain: str) -> Dict[str, Any]:
        if domain not in self._states:
            return {"exists": False}
        state = self._states[domain]
        since_last = None if state.last_request_time is None else self._clock() - state.last_request_time
        return {
            "exists": True,
            "interval_seconds": state.interval,
            "consecutive_successes": state.consecutive_successes,
            "blocked_responses": state.blocked_responses,
            "seconds_since_last_request": since_last,
        }

    def reset_domain(self, domain: str) -> None:
        self._states.pop(domain, None)
        self._locks.pop(domain, None)

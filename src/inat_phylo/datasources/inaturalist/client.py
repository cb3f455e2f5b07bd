"""
iNaturalist API client.

Low-level HTTP client for the iNaturalist API v1: request building and a
blocking rate limiter.

API docs: https://api.inaturalist.org/v1/docs/
Recommended practices: https://www.inaturalist.org/pages/api+recommended+practices
  - stay at or below ~1 req/s (we use half that)
  - don't page past 10,000 results for a single query
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from inat_phylo.services.http import DEFAULT_TIMEOUT, create_session

if TYPE_CHECKING:
    from collections.abc import Callable

# ---------------------------------------------------------------------------
# API configuration
# ---------------------------------------------------------------------------
API_BASE = "https://api.inaturalist.org/v1"
MAX_PER_PAGE = 200  # API maximum for /observations
MAX_REQUESTS = 50  # pages per query
MAX_RESULTS = MAX_PER_PAGE * MAX_REQUESTS  # 10k, the recommended ceiling

DEFAULT_REQUESTS_PER_SECOND = 0.5  # one request every 2 seconds

session = create_session()


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


class RateLimiter:
    """Blocking limiter: successive ``wait()`` calls are at least ``min_interval`` apart.

    The first call never sleeps. Every sleep actually performed is recorded in
    ``delays`` so callers (and tests) can see how much throttling happened.
    """

    def __init__(
        self,
        min_interval: float,
        *,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        if min_interval < 0:
            msg = f"min_interval must be >= 0, got {min_interval}"
            raise ValueError(msg)
        self.min_interval = min_interval
        self._clock = clock or time.monotonic
        self._sleep = sleep or time.sleep
        self._last: float | None = None
        self.delays: list[float] = []

    @classmethod
    def from_rate(cls, requests_per_second: float, **kwargs: Any) -> RateLimiter:
        """Build a limiter from a requests-per-second ceiling."""
        if requests_per_second <= 0:
            msg = f"requests_per_second must be > 0, got {requests_per_second}"
            raise ValueError(msg)
        return cls(1.0 / requests_per_second, **kwargs)

    def wait(self) -> float:
        """Sleep until the next request is allowed. Returns seconds slept."""
        delay = 0.0
        if self._last is not None:
            elapsed = self._clock() - self._last
            if elapsed < self.min_interval:
                delay = self.min_interval - elapsed
                self._sleep(delay)
                self.delays.append(delay)
        self._last = self._clock()
        return delay


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


def get_observations(
    params: dict[str, Any],
    *,
    api_base: str = API_BASE,
    timeout: float = DEFAULT_TIMEOUT,
) -> dict[str, Any]:
    """GET /observations - search observations. Raises on HTTP errors."""
    resp = session.get(f"{api_base}/observations", params=params, timeout=timeout)
    resp.raise_for_status()
    data: dict[str, Any] = resp.json()
    return data

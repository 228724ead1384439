"""GitHub API rate limit bookkeeping.

The monitor does not throttle itself; it only records what GitHub reports so
low quotas show up in the logs and the worker's health status.
"""

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class RateLimitInfo:
    """Quota of one GitHub API resource as of the last response."""

    limit: int
    remaining: int
    reset: int
    used: int = 0
    resource: str = "core"

    @property
    def reset_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.reset, tz=UTC)

    @property
    def seconds_until_reset(self) -> float:
        return max(0, self.reset - time.time())

    @property
    def is_exceeded(self) -> bool:
        return self.remaining <= 0


@dataclass
class RateLimitTracker:
    """Keeps the latest rate limit info per GitHub resource."""

    warn_below: int = 100

    _rate_limits: dict[str, RateLimitInfo] = field(default_factory=dict)

    def get_rate_limit(self, resource: str = "core") -> RateLimitInfo | None:
        return self._rate_limits.get(resource)

    def update_rate_limit(self, headers: Mapping[str, str]) -> None:
        """Record the ``X-RateLimit-*`` headers of a response, if present."""
        if "X-RateLimit-Limit" not in headers:
            return

        try:
            rate_limit = RateLimitInfo(
                limit=int(headers.get("X-RateLimit-Limit", 5000)),
                remaining=int(headers.get("X-RateLimit-Remaining", 0)),
                reset=int(headers.get("X-RateLimit-Reset", 0)),
                used=int(headers.get("X-RateLimit-Used", 0)),
                resource=headers.get("X-RateLimit-Resource", "core"),
            )
        except (ValueError, TypeError):
            logger.debug("Ignoring malformed rate limit headers")
            return

        previous = self._rate_limits.get(rate_limit.resource)
        self._rate_limits[rate_limit.resource] = rate_limit

        crossed = previous is None or previous.remaining >= self.warn_below
        if rate_limit.remaining < self.warn_below and crossed:
            logger.warning(
                f"GitHub rate limit for '{rate_limit.resource}' is low: "
                f"{rate_limit.remaining}/{rate_limit.limit} remaining, "
                f"resets in {rate_limit.seconds_until_reset:.0f}s"
            )

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Plain-dict view for health reporting."""
        return {
            resource: {
                "limit": info.limit,
                "remaining": info.remaining,
                "exhausted": info.is_exceeded,
                "resets_at": info.reset_datetime.isoformat(),
            }
            for resource, info in self._rate_limits.items()
        }

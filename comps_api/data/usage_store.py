import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone

from ..core.cache import redis_client
from ..core.config import Settings, settings as default_settings
from .base import Meter

log = logging.getLogger(__name__)

# Every write pushes the expiry out; a month's hash lapses ~2 months after its last use.
_USAGE_TTL_SECONDS = 62 * 24 * 3600

def current_year_month() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m")

@dataclass
class UsageCounts:
    count_a: int = 0
    count_b: int = 0

    def count(self, meter: Meter) -> int:
        return self.count_a if meter is Meter.A else self.count_b

class UsageStore:
    """
    Per-user, per-month call counters for the two metered providers.

    One record per (user_id, year_month); a new month means a new key, so
    counters reset implicitly. Increments are atomic: HINCRBY on Redis, a
    process lock for the in-memory backend.
    """
    def __init__(self, backend=None):
        self.backend = backend
        self._rows: dict[tuple[str, str], UsageCounts] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(user_id: str, year_month: str) -> str:
        return f"usage:{user_id}:{year_month}"

    def get_usage(self, user_id: str, year_month: str) -> UsageCounts:
        """Get-or-create: a missing row is created zeroed."""
        if self.backend is not None:
            key = self._key(user_id, year_month)
            pipe = self.backend.pipeline()
            pipe.hsetnx(key, Meter.A.value, 0)
            pipe.hsetnx(key, Meter.B.value, 0)
            pipe.expire(key, _USAGE_TTL_SECONDS)
            pipe.hgetall(key)
            row = pipe.execute()[-1] or {}
            return UsageCounts(int(row.get(Meter.A.value, 0)), int(row.get(Meter.B.value, 0)))
        with self._lock:
            row = self._rows.setdefault((user_id, year_month), UsageCounts())
            return UsageCounts(row.count_a, row.count_b)

    def increment(self, user_id: str, year_month: str, meter: Meter) -> UsageCounts:
        """Add exactly one call to ``meter`` and return the updated row."""
        if self.backend is not None:
            key = self._key(user_id, year_month)
            pipe = self.backend.pipeline()
            pipe.hincrby(key, meter.value, 1)
            pipe.hsetnx(key, Meter.A.value, 0)
            pipe.hsetnx(key, Meter.B.value, 0)
            pipe.expire(key, _USAGE_TTL_SECONDS)
            pipe.hgetall(key)
            row = pipe.execute()[-1] or {}
            counts = UsageCounts(int(row.get(Meter.A.value, 0)), int(row.get(Meter.B.value, 0)))
        else:
            with self._lock:
                row = self._rows.setdefault((user_id, year_month), UsageCounts())
                if meter is Meter.A:
                    row.count_a += 1
                else:
                    row.count_b += 1
                counts = UsageCounts(row.count_a, row.count_b)
        log.info("usage %s %s meter=%s -> a=%d b=%d",
                 user_id, year_month, meter.value, counts.count_a, counts.count_b)
        return counts

    def reset(self, user_id: str, year_month: str) -> UsageCounts:
        """Zero both counters for the month (new plan period)."""
        if self.backend is not None:
            key = self._key(user_id, year_month)
            pipe = self.backend.pipeline()
            pipe.hset(key, mapping={Meter.A.value: 0, Meter.B.value: 0})
            pipe.expire(key, _USAGE_TTL_SECONDS)
            pipe.execute()
        else:
            with self._lock:
                self._rows[(user_id, year_month)] = UsageCounts()
        log.info("usage %s %s reset", user_id, year_month)
        return UsageCounts()

_store: UsageStore | None = None

def usage_store(settings: Settings = default_settings) -> UsageStore:
    """Process-wide store; Redis when USE_REDIS is on, else in-memory."""
    global _store
    if _store is None:
        _store = UsageStore(redis_client() if settings.USE_REDIS else None)
    return _store

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from starlette.concurrency import run_in_threadpool

from ..core.config import Settings, settings as default_settings
from ..core.errors import ConfigurationError, ProviderTransportError, QuotaExceeded
from ..core.metrics import PROVIDER_LATENCY, record_provider
from ..core.utils import parse_sale_date
from ..data.base import Comp, CompsProvider, Meter, OnCall, SubjectQuery
from ..data.realie_client import realie_provider
from ..data.rentcast_client import RENTCAST_PROVIDERS, RentCastListings, rentcast_provider
from ..data.usage_store import UsageCounts, UsageStore, current_year_month, usage_store
from .filters import annotate_distance, exclude_subject, filter_recent

log = logging.getLogger(__name__)

NO_DATA_WARNING = "No comparable sales found for this address or area."
STALE_WARNING = "No sales within the last 12 months; older sales are included."
BUDGET_WARNING = "Comparable search ran out of time; remaining providers were skipped."

@dataclass
class QuotaLimits:
    a: int
    b: int

    def limit(self, meter: Meter) -> int:
        return self.a if meter is Meter.A else self.b

@dataclass
class ResolutionResult:
    comps: List[Comp] = field(default_factory=list)
    source: str = "none"
    avm_value: Optional[float] = None
    avm_subject: Optional[Comp] = None
    subject_sale_listing: Optional[Comp] = None
    warnings: List[str] = field(default_factory=list)
    usage: Optional[UsageCounts] = None
    attempts: List[Dict[str, Any]] = field(default_factory=list)

    def warn(self, message: str) -> None:
        if message not in self.warnings:
            self.warnings.append(message)

class _Run:
    """
    Per-request usage bookkeeping; charges land as each call completes.
    Store calls may block on Redis, so they run in the threadpool.
    """
    def __init__(self, store: UsageStore, user_id: Optional[str], limits: QuotaLimits):
        self.store = store
        self.user_id = user_id
        self.limits = limits
        self.year_month = current_year_month()
        self.usage: Optional[UsageCounts] = None

    async def load(self) -> "_Run":
        if self.user_id:
            self.usage = await run_in_threadpool(self.store.get_usage, self.user_id, self.year_month)
        return self

    def allows(self, meter: Meter, planned_calls: int) -> bool:
        # Anonymous requests are not metered
        if self.usage is None:
            return True
        return self.usage.count(meter) + planned_calls <= self.limits.limit(meter)

    def charger(self, meter: Meter) -> OnCall:
        async def charge() -> None:
            if self.user_id:
                self.usage = await run_in_threadpool(self.store.increment, self.user_id, self.year_month, meter)
        return charge

    def capped(self) -> Optional[UsageCounts]:
        if self.usage is None:
            return None
        return UsageCounts(
            min(self.usage.count_a, self.limits.a),
            min(self.usage.count_b, self.limits.b),
        )

class CompsResolver:
    """
    Orchestrates the fallback chain:
      providers (in order) → map → distance → subject exclusion → recency
    The first provider whose filtered batch is non-empty wins. Providers
    run one at a time; a later provider is only paid for when every earlier
    one came back empty, failed, or was skipped.
    """
    def __init__(
        self,
        providers: Sequence[CompsProvider],
        store: UsageStore,
        limits: QuotaLimits,
        *,
        listing_lookup: Optional[RentCastListings] = None,
        max_comps: int = 5,
        recency_days: int = 365,
        budget_seconds: float = 40.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.providers = list(providers)
        self.store = store
        self.limits = limits
        self.listing_lookup = listing_lookup
        self.max_comps = max_comps
        self.recency_days = recency_days
        self.budget_seconds = budget_seconds
        self.clock = clock

    async def resolve(self, query: SubjectQuery) -> ResolutionResult:
        result = ResolutionResult()
        run = await _Run(self.store, query.user_id, self.limits).load()
        deadline = self.clock() + self.budget_seconds
        lat, lng = query.lat, query.lng
        any_configured = False
        any_called = False

        for provider in self.providers:
            if not provider.configured():
                log.debug("%s has no API key; skipped", provider.name)
                record_provider(provider.name, "skipped_config")
                continue
            any_configured = True

            if provider.requires_coordinates and not query.has_coordinates:
                result.warn(f"Subject coordinates unavailable; skipped {provider.source}.")
                record_provider(provider.name, "skipped_coords")
                continue

            if not run.allows(provider.meter, provider.planned_calls):
                limit = self.limits.limit(provider.meter)
                log.info("%s skipped: %s quota at %d/%d for user %s", provider.name, provider.vendor,
                         run.usage.count(provider.meter), limit, query.user_id)
                result.warn(str(QuotaExceeded(provider.vendor, limit)))
                record_provider(provider.name, "skipped_quota")
                continue

            remaining = deadline - self.clock()
            if remaining <= 0:
                result.warn(BUDGET_WARNING)
                record_provider(provider.name, "skipped_budget")
                break

            any_called = True
            started = time.perf_counter()
            try:
                batch = await asyncio.wait_for(
                    provider.fetch(query, run.charger(provider.meter)), timeout=remaining
                )
            except (ProviderTransportError, asyncio.TimeoutError) as e:
                log.warning("%s failed: %s", provider.name, str(e) or "deadline exceeded")
                result.warn(f"{provider.source}: provider request failed.")
                record_provider(provider.name, "error")
                continue
            finally:
                PROVIDER_LATENCY.labels(provider=provider.name).observe(time.perf_counter() - started)

            if batch.avm_value is not None and result.avm_value is None:
                result.avm_value = batch.avm_value
            if batch.avm_subject is not None and result.avm_subject is None:
                result.avm_subject = batch.avm_subject
            if (lat is None or lng is None) and batch.subject_point:
                lat, lng = batch.subject_point

            comps = annotate_distance(batch.comps, lat, lng)
            not_subject = exclude_subject(comps, query.subject_address, query.property_id)
            recent = filter_recent(not_subject, self.recency_days)
            result.attempts.append({
                "provider": provider.source,
                "rawCount": len(batch.comps),
                "notSubjectCount": len(not_subject),
                "recentCount": len(recent.comps),
            })

            if recent.comps:
                result.comps = recent.comps[: self.max_comps]
                result.source = provider.source
                if recent.degraded:
                    result.warn(STALE_WARNING)
                record_provider(provider.name, "ok")
                break
            record_provider(provider.name, "empty")

        if not result.comps and query.property_id:
            result.subject_sale_listing = await self._subject_sale_listing(query, run, deadline, result)

        if not any_configured:
            result.warn(str(ConfigurationError()))
        elif not result.comps and any_called:
            result.warn(NO_DATA_WARNING)

        result.usage = run.capped()
        log.info("resolved %d comps from %s (%d warnings)", len(result.comps), result.source, len(result.warnings))
        return result

    async def _subject_sale_listing(self, query: SubjectQuery, run: _Run, deadline: float,
                                    result: ResolutionResult) -> Optional[Comp]:
        """Last resort with no comps: the subject's own sale listing, if it has one."""
        lookup = self.listing_lookup
        if lookup is None or not lookup.configured():
            return None
        if not run.allows(lookup.meter, 1):
            result.warn(str(QuotaExceeded(lookup.vendor, self.limits.limit(lookup.meter))))
            return None
        remaining = deadline - self.clock()
        if remaining <= 0:
            return None
        try:
            listing = await asyncio.wait_for(
                lookup.sale_listing(query.property_id, run.charger(lookup.meter)), timeout=remaining
            )
        except (ProviderTransportError, asyncio.TimeoutError) as e:
            log.warning("subject sale listing lookup failed: %s", str(e) or "deadline exceeded")
            return None
        if listing is None:
            return None
        sold = parse_sale_date(listing.sale_date)
        if sold and sold > datetime.now(timezone.utc).date():
            return None
        return listing

def build_providers(settings: Settings, **kw) -> List[CompsProvider]:
    """Provider chain in PROVIDER_ORDER order; unknown names are a config error."""
    providers: List[CompsProvider] = []
    for name in (n.strip() for n in settings.PROVIDER_ORDER.split(",")):
        if not name:
            continue
        if name == "realie":
            providers.append(realie_provider(settings, **kw))
        elif name in RENTCAST_PROVIDERS:
            providers.append(rentcast_provider(name, settings, **kw))
        else:
            raise ValueError(f"Unknown provider {name!r} in PROVIDER_ORDER")
    return providers

def build_resolver(settings: Settings = default_settings, store: UsageStore | None = None,
                   **kw) -> CompsResolver:
    """Factory wiring providers, usage store and limits from settings."""
    return CompsResolver(
        build_providers(settings, **kw),
        store or usage_store(settings),
        QuotaLimits(settings.LIMIT_A, settings.LIMIT_B),
        listing_lookup=rentcast_provider("rentcast_listings", settings, **kw),
        max_comps=settings.MAX_COMPS,
        recency_days=settings.RECENCY_DAYS,
        budget_seconds=settings.PIPELINE_BUDGET_SECONDS,
    )

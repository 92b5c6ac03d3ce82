from ..core.config import Settings
from .base import Meter, OnCall, ProviderBatch, SubjectQuery
from .http_client import HttpProvider, get_json
from .mappers import extract_items, map_all, map_realie_comparable

def _band(value: float | None, spread: float = 1) -> tuple[float | None, float | None]:
    if value is None:
        return None, None
    return max(0, value - spread), value + spread

class RealieComparables(HttpProvider):
    """
    Primary comparables provider: coordinate + radius search over recorded
    transfers. Needs subject coordinates; metered on counter A.
    """
    name = "realie"
    source = "PrimaryProvider"
    vendor = "Realie"
    meter = Meter.A
    planned_calls = 1
    requires_coordinates = True

    def __init__(self, api_key: str | None, base_url: str, radius_miles: float = 1.0,
                 max_results: int = 15, time_frame_months: int = 12, **kw):
        super().__init__(api_key, base_url, **kw)
        self.radius_miles = radius_miles
        self.max_results = max_results
        self.time_frame_months = time_frame_months

    def headers(self) -> dict:
        return {"Accept": "application/json", "Authorization": self.api_key or ""}

    def params(self, query: SubjectQuery) -> dict:
        beds_min, beds_max = _band(query.bedrooms)
        baths_min, baths_max = _band(query.bathrooms)
        return {
            "latitude": query.lat,
            "longitude": query.lng,
            "radius": self.radius_miles,
            "timeFrame": self.time_frame_months,
            "maxResults": self.max_results,
            "bedsMin": beds_min,
            "bedsMax": beds_max,
            "bathsMin": baths_min,
            "bathsMax": baths_max,
        }

    async def fetch(self, query: SubjectQuery, on_call: OnCall) -> ProviderBatch:
        async with self.client() as client:
            data = await get_json(
                client, self.vendor, f"{self.base_url}/public/premium/comparables/",
                params=self.params(query), headers=self.headers(), on_call=on_call,
            )
        items = extract_items(data, "comparables", "data", "results")
        return ProviderBatch(comps=map_all(items, map_realie_comparable))

def realie_provider(settings: Settings, **kw) -> RealieComparables:
    return RealieComparables(
        settings.REALIE_API_KEY,
        settings.REALIE_BASE_URL,
        radius_miles=settings.REALIE_RADIUS_MILES,
        max_results=settings.FETCH_LIMIT,
        timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        **kw,
    )

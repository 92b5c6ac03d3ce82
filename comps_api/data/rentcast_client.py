import logging
from urllib.parse import quote

from ..core.config import Settings
from .base import Comp, Meter, OnCall, ProviderBatch, SubjectQuery
from .http_client import HttpProvider, get_json
from .mappers import (
    extract_items, map_all, map_avm_response, map_property_record, map_rentcast_listing,
    map_sale_listing, newest_first,
)

log = logging.getLogger(__name__)

class RentCastProvider(HttpProvider):
    """Shared auth for every RentCast endpoint; all of them bill counter B."""
    vendor = "RentCast"
    meter = Meter.B

    def __init__(self, api_key: str | None, base_url: str, limit: int = 20, **kw):
        super().__init__(api_key, base_url, **kw)
        self.limit = limit

    def headers(self) -> dict:
        return {"Accept": "application/json", "X-Api-Key": self.api_key or ""}

class RentCastValuation(RentCastProvider):
    """
    GET /avm/value: value estimate plus the comparables behind it.
    The subject record it returns doubles as a coordinate source.
    """
    name = "rentcast_avm"
    source = "ValuationProvider"

    async def fetch(self, query: SubjectQuery, on_call: OnCall) -> ProviderBatch:
        async with self.client() as client:
            data = await get_json(
                client, self.vendor, f"{self.base_url}/avm/value",
                params={"address": query.full_address, "zipCode": query.zip_code},
                headers=self.headers(), on_call=on_call,
            )
        return map_avm_response(data)

class RentCastListings(RentCastProvider):
    """GET /listings/sale: active and sold listings around the address."""
    name = "rentcast_listings"
    source = "ListingsProvider"

    async def fetch(self, query: SubjectQuery, on_call: OnCall) -> ProviderBatch:
        params = {
            "address": query.address,
            "zipCode": query.zip_code,
            "bedrooms": query.bedrooms,
            "bathrooms": query.bathrooms,
            "limit": self.limit,
        }
        async with self.client() as client:
            data = await get_json(
                client, self.vendor, f"{self.base_url}/listings/sale",
                params=params, headers=self.headers(), on_call=on_call,
            )
        items = extract_items(data, "listings", "comps", "data")
        return ProviderBatch(comps=newest_first(map_all(items, map_rentcast_listing)))

    async def sale_listing(self, property_id: str, on_call: OnCall) -> Comp | None:
        """GET /listings/sale/{id}: the subject itself as a sale listing."""
        async with self.client() as client:
            data = await get_json(
                client, self.vendor, f"{self.base_url}/listings/sale/{quote(property_id.strip(), safe='')}",
                headers=self.headers(), on_call=on_call,
            )
        return map_sale_listing(data)

class RentCastPropertyRecords(RentCastProvider):
    """
    GET /properties: public records with last-sale data. Tries the full
    address first, then the ZIP alone when the address matched nothing.
    """
    name = "rentcast_properties"
    source = "PropertyRecordsProvider"
    planned_calls = 2

    async def fetch(self, query: SubjectQuery, on_call: OnCall) -> ProviderBatch:
        async with self.client() as client:
            comps = await self._search(client, query, query.full_address, on_call)
            if not comps:
                log.info("[RentCast] no property records for address; retrying by ZIP %s", query.zip_code)
                comps = await self._search(client, query, None, on_call)
        return ProviderBatch(comps=comps)

    async def _search(self, client, query: SubjectQuery, address: str | None, on_call: OnCall):
        params = {
            "zipCode": query.zip_code,
            "address": address,
            "city": query.city,
            "state": query.state,
            "saleDateRange": 365,
            "limit": self.limit,
        }
        data = await get_json(
            client, self.vendor, f"{self.base_url}/properties",
            params=params, headers=self.headers(), on_call=on_call,
        )
        items = extract_items(data, "properties", "listings", "data", "results")
        return newest_first(map_all(items, map_property_record))

RENTCAST_PROVIDERS = {
    RentCastValuation.name: RentCastValuation,
    RentCastListings.name: RentCastListings,
    RentCastPropertyRecords.name: RentCastPropertyRecords,
}

def rentcast_provider(name: str, settings: Settings, **kw) -> RentCastProvider:
    cls = RENTCAST_PROVIDERS[name]
    return cls(
        settings.RENTCAST_API_KEY,
        settings.RENTCAST_BASE_URL,
        timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        **kw,
    )

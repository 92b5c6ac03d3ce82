from typing import Protocol, List, Optional, Callable, Awaitable
from dataclasses import dataclass, field
from enum import Enum

# ----- Data shapes (thin & explicit) -----

class Meter(str, Enum):
    """The two independently metered monthly quotas."""
    A = "a"   # Realie premium comparables
    B = "b"   # RentCast (AVM, listings, property records)

@dataclass
class SubjectQuery:
    address: str
    zip_code: str
    city: Optional[str] = None
    state: Optional[str] = None        # 2-letter code
    bedrooms: Optional[float] = None   # filter hints only
    bathrooms: Optional[float] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    subject_address: Optional[str] = None
    property_id: Optional[str] = None
    user_id: Optional[str] = None
    debug: bool = False

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None

    @property
    def full_address(self) -> str:
        parts = [self.address.strip(), (self.city or "").strip(), self.state, self.zip_code]
        return ", ".join(p for p in parts if p)

@dataclass
class Comp:
    address: str
    sale_price: Optional[float] = None
    sale_date: Optional[str] = None    # YYYY-MM-DD
    sqft: Optional[int] = None
    beds: Optional[float] = None
    baths: Optional[float] = None
    year_built: Optional[int] = None
    dom: Optional[int] = None
    id: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    distance: Optional[float] = None   # miles
    basement: Optional[str] = None
    basement_type: Optional[str] = None
    basement_condition: Optional[str] = None
    parking_type: Optional[str] = None
    parking_spaces: Optional[int | str] = None
    levels: Optional[int | str] = None

@dataclass
class ProviderBatch:
    """What one provider produced for one query, already mapped to Comp."""
    comps: List[Comp] = field(default_factory=list)
    avm_value: Optional[float] = None
    avm_subject: Optional[Comp] = None
    subject_point: Optional[tuple[float, float]] = None

# Awaited once per completed HTTP exchange; this is what usage is charged on.
OnCall = Callable[[], Awaitable[None]]

# ----- Protocols (interfaces) -----

class CompsProvider(Protocol):
    name: str                    # config key, e.g. "rentcast_avm"
    source: str                  # label reported to callers, e.g. "ValuationProvider"
    vendor: str                  # quota label, e.g. "RentCast"
    meter: Meter
    planned_calls: int           # worst-case HTTP calls charged by one fetch
    requires_coordinates: bool

    def configured(self) -> bool: ...
    async def fetch(self, query: SubjectQuery, on_call: OnCall) -> ProviderBatch: ...

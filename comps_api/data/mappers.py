from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from ..core.utils import iso_date, parse_sale_date, to_float, to_int
from .base import Comp, ProviderBatch

# Raw provider field names are read here and nowhere else.
Raw = Dict[str, Any]

def _first(item: Raw, *keys: str):
    for k in keys:
        v = item.get(k)
        if v is not None and v != "":
            return v
    return None

def _text(v) -> Optional[str]:
    if v is None or v == "":
        return None
    return str(v).strip() or None

def _count_or_text(v) -> Optional[int | str]:
    """Parking spaces / levels: a number when it parses, the raw label otherwise."""
    if v is None or v == "":
        return None
    n = to_int(v)
    return n if n is not None else str(v)

def _today() -> date:
    return datetime.now(timezone.utc).date()

def build_address(item: Raw, *street_keys: str) -> str:
    """
    "street, city, ST, zip" from whichever street field is present. A street
    value that already carries a comma is a full address and is used as is.
    """
    street = _text(_first(item, *street_keys))
    if street and "," in street:
        return street
    zip_code = _first(item, "zipCode", "zip_code", "zip")
    parts = [street, _text(item.get("city")), _text(item.get("state")), _text(zip_code)]
    return ", ".join(p for p in parts if p)

def extract_items(data: Any, *keys: str) -> List[Raw]:
    """Pull the item list out of a provider envelope (bare list or {key: [...]})."""
    if isinstance(data, list):
        items = data
    elif isinstance(data, dict):
        items = []
        for k in keys:
            if isinstance(data.get(k), list):
                items = data[k]
                break
    else:
        items = []
    return [i for i in items if isinstance(i, dict)]

# ----- Realie premium comparables -----

def map_realie_comparable(item: Raw) -> Optional[Comp]:
    if not isinstance(item, dict):
        return None
    address = build_address(item, "addressFull", "address", "streetAddress")
    if not address:
        return None
    return Comp(
        address=address,
        sale_price=to_float(_first(item, "transferPrice", "salePrice", "price")),
        sale_date=iso_date(_first(item, "transferDate", "saleDate", "recordingDate")),
        sqft=to_int(_first(item, "buildingArea", "livingArea", "squareFootage")),
        beds=to_float(_first(item, "totalBedrooms", "bedrooms", "beds")),
        baths=to_float(_first(item, "totalBathrooms", "bathrooms", "baths")),
        year_built=to_int(item.get("yearBuilt")),
        dom=to_int(_first(item, "daysOnMarket", "dom")),
        id=_text(_first(item, "parcelId", "id", "propertyId")),
        latitude=to_float(item.get("latitude")),
        longitude=to_float(item.get("longitude")),
        distance=to_float(item.get("distance")),
        basement=_text(_first(item, "basement", "basementType")),
        basement_type=_text(item.get("basementType")),
        parking_type=_text(_first(item, "garageType", "parkingType")),
        parking_spaces=_count_or_text(_first(item, "garageCount", "parkingSpaces", "garageSpaces")),
        levels=_count_or_text(_first(item, "stories", "levels")),
    )

# ----- RentCast listings and AVM comparables -----

def map_rentcast_listing(item: Raw, today: date | None = None) -> Optional[Comp]:
    """Shape shared by /listings/sale items and /avm/value comparables."""
    if not isinstance(item, dict):
        return None
    address = build_address(
        item, "formattedAddress", "address", "streetAddress", "addressLine1", "street_line_1"
    )
    if not address:
        return None

    sale_date = iso_date(_first(item, "soldDate", "saleDate", "sale_date", "lastSaleDate", "closeDate"))
    if sale_date is None:
        # Fall back to the listing date unless it points into the future
        listed = parse_sale_date(item.get("listedDate"))
        if listed and listed <= (today or _today()):
            sale_date = listed.isoformat()

    return Comp(
        address=address,
        sale_price=to_float(_first(item, "price", "salePrice", "sale_price", "lastSalePrice")),
        sale_date=sale_date,
        sqft=to_int(_first(item, "squareFootage", "sqft", "square_footage")),
        beds=to_float(_first(item, "bedrooms", "beds")),
        baths=to_float(_first(item, "bathrooms", "baths")),
        year_built=to_int(item.get("yearBuilt")),
        dom=to_int(_first(item, "daysOnMarket", "dom", "days_on_market")),
        id=_text(_first(item, "id", "propertyId", "parcelId")),
        latitude=to_float(item.get("latitude")),
        longitude=to_float(item.get("longitude")),
        distance=to_float(item.get("distance")),
        basement=_text(_first(item, "basement", "basementType", "basement_type")),
        basement_type=_text(_first(item, "basementType", "basement_type")),
        basement_condition=_text(_first(item, "basementCondition", "basement_condition")),
        parking_type=_text(_first(
            item, "garageType", "garage_type", "parkingType", "parking_type", "carport", "streetParking"
        )),
        parking_spaces=_count_or_text(_first(
            item, "parkingSpaces", "parking_spaces", "garageSpaces", "numberOfParking", "garage_spaces"
        )),
        levels=_count_or_text(_first(item, "levels", "stories", "numberOfStories", "stories_count")),
    )

def map_sale_listing(data: Any) -> Optional[Comp]:
    """/listings/sale/{id}: a bare listing or one wrapped in ``data``."""
    if not isinstance(data, dict):
        return None
    record = data["data"] if isinstance(data.get("data"), dict) else data
    return map_rentcast_listing(record)

# ----- RentCast property records -----

def _latest_sale_event(item: Raw) -> Raw:
    """Most recent entry of ``history`` (list, or dict keyed by date)."""
    history = item.get("history")
    if isinstance(history, dict):
        events = [v for _, v in sorted(history.items(), reverse=True) if isinstance(v, dict)]
    elif isinstance(history, list):
        events = [v for v in history if isinstance(v, dict)]
    else:
        events = []
    return events[0] if events else {}

def map_property_record(item: Raw) -> Optional[Comp]:
    if not isinstance(item, dict):
        return None
    address = build_address(item, "formattedAddress", "address", "streetAddress", "street_address",
                            "line1", "streetLine1", "addressLine1")
    if not address:
        return None
    last = _latest_sale_event(item)
    features = item.get("features") if isinstance(item.get("features"), dict) else {}
    basement = _first(item, "basement")
    basement_type = _first(item, "basementType")
    return Comp(
        address=address,
        sale_price=to_float(_first(item, "lastSalePrice", "last_sale_price")
                            or _first(last, "price", "salePrice", "closePrice")
                            or item.get("price")),
        sale_date=iso_date(_first(item, "lastSaleDate", "last_sale_date")
                           or _first(last, "saleDate", "closeDate", "date")),
        sqft=to_int(_first(item, "squareFootage", "sqft", "square_footage")),
        beds=to_float(_first(item, "bedrooms", "beds")),
        baths=to_float(_first(item, "bathrooms", "baths")),
        year_built=to_int(item.get("yearBuilt")),
        dom=to_int(_first(item, "daysOnMarket", "dom") or last.get("daysOnMarket")),
        id=_text(_first(item, "id", "propertyId", "parcelId")),
        latitude=to_float(item.get("latitude")),
        longitude=to_float(item.get("longitude")),
        distance=to_float(item.get("distance")),
        basement=_text(basement if basement is not None else basement_type),
        basement_type=_text(basement_type),
        basement_condition=_text(item.get("basementCondition")),
        parking_type=_text(_first(item, "garageType", "parkingType") or features.get("garageType")),
        parking_spaces=_count_or_text(_first(item, "parkingSpaces", "garageSpaces")
                                      or features.get("garageSpaces")),
        levels=_count_or_text(_first(item, "levels", "stories") or features.get("floorCount")),
    )

# ----- RentCast AVM -----

def map_avm_response(data: Any) -> ProviderBatch:
    """
    /avm/value payload: the estimate, the comparables behind it and the
    subject record. The subject is mapped like a property record; its
    coordinates fall back to the top-level ones and become the subject point.
    """
    if not isinstance(data, dict):
        return ProviderBatch()
    subject = map_property_record(data.get("subjectProperty"))
    lat, lng = to_float(data.get("latitude")), to_float(data.get("longitude"))
    if subject is not None:
        if subject.latitude is None or subject.longitude is None:
            subject.latitude, subject.longitude = lat, lng
        lat, lng = subject.latitude, subject.longitude
    return ProviderBatch(
        comps=map_all(extract_items(data, "comparables"), map_rentcast_listing),
        avm_value=to_float(data.get("price")),
        avm_subject=subject,
        subject_point=(lat, lng) if lat is not None and lng is not None else None,
    )

def map_all(items: List[Raw], mapper) -> List[Comp]:
    """Map a batch, dropping items that have no resolvable address."""
    out: List[Comp] = []
    for item in items:
        comp = mapper(item)
        if comp is not None:
            out.append(comp)
    return out

def newest_first(comps: List[Comp]) -> List[Comp]:
    """Sort by sale date descending; undated comps go last."""
    return sorted(comps, key=lambda c: c.sale_date or "", reverse=True)

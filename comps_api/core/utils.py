import math
import re
from datetime import date, datetime

# Single radius for every haversine call site
EARTH_RADIUS_MILES = 3958.8

_SUFFIX_RE = re.compile(
    r"\s*\b(street|st|avenue|ave|road|rd|drive|dr|lane|ln|court|ct|circle|cir"
    r"|boulevard|blvd|way|place|pl)\b\.?$"
)

def normalize_address(addr: str | None) -> str:
    """
    Canonical street line used for subject matching:
    - lowercase, collapse whitespace
    - keep only the part before the first comma
    - drop trailing street-suffix tokens ("Mural Circle" == "Mural Cir")
    """
    if not addr:
        return ""
    s = " ".join(str(addr).lower().split())
    comma = s.find(",")
    if comma > 0:
        s = s[:comma].strip()
    while True:
        stripped = _SUFFIX_RE.sub("", s).strip()
        if stripped == s:
            return s
        s = stripped

def is_street_address(norm: str) -> bool:
    """True for a real street line ("125 5th avenue"), not a bare fragment ("5th")."""
    return len(norm) >= 10 and norm[:1].isdigit()

def distance_miles(lat1, lng1, lat2, lng2) -> float:
    """Great-circle distance in miles; NaN when any coordinate is missing or non-finite."""
    try:
        coords = [float(v) for v in (lat1, lng1, lat2, lng2)]
    except (TypeError, ValueError):
        return math.nan
    if not all(math.isfinite(v) for v in coords):
        return math.nan
    la1, lo1, la2, lo2 = (math.radians(v) for v in coords)
    dlat = la2 - la1
    dlng = lo2 - lo1
    a = math.sin(dlat / 2) ** 2 + math.cos(la1) * math.cos(la2) * math.sin(dlng / 2) ** 2
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

def to_float(x) -> float | None:
    """Lenient number parse: tolerates None, '', '1,234' and rejects NaN/inf."""
    if x is None or isinstance(x, bool):
        return None
    try:
        if isinstance(x, (int, float)):
            v = float(x)
        else:
            s = str(x).strip().replace(",", "").replace("$", "")
            if not s:
                return None
            v = float(s)
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None

def to_int(x) -> int | None:
    v = to_float(x)
    return int(round(v)) if v is not None else None

_DATE_FORMATS = ("%Y-%m-%d", "%Y%m%d", "%Y/%m/%d", "%m/%d/%Y")

def parse_sale_date(val) -> date | None:
    """
    Parse the date shapes providers send: ISO dates and timestamps,
    compact YYYYMMDD and US MM/DD/YYYY. Anything else is None.
    """
    if not val:
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    s = str(val).strip()
    for candidate in (s[:10], s[:8], s):
        for fmt in _DATE_FORMATS:
            try:
                return datetime.strptime(candidate, fmt).date()
            except ValueError:
                continue
    return None

def iso_date(val) -> str | None:
    d = parse_sale_date(val)
    return d.isoformat() if d else None

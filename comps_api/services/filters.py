import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import List, Optional

from ..core.utils import distance_miles, is_street_address, normalize_address, parse_sale_date
from ..data.base import Comp

log = logging.getLogger(__name__)

def is_subject(comp: Comp, subject_address: Optional[str] = None,
               property_id: Optional[str] = None) -> bool:
    """
    True when ``comp`` is the subject property itself.

    An ID match wins outright. Otherwise the normalized street lines must be
    equal, or one must contain the other where the contained side still
    looks like a full street line (so "5th" never matches "125th ...").
    Anything we cannot identify confidently is kept.
    """
    pid = (property_id or "").strip()
    if pid:
        comp_id = (comp.id or "").strip()
        if comp_id and comp_id == pid:
            return True

    if not subject_address or not subject_address.strip():
        return False
    norm_subj = normalize_address(subject_address)
    norm_comp = normalize_address(comp.address)
    if not norm_subj or not norm_comp:
        return False
    if norm_subj == norm_comp:
        return True
    if (norm_subj in norm_comp and is_street_address(norm_subj)) or \
       (norm_comp in norm_subj and is_street_address(norm_comp)):
        # Containment is the fuzzy branch; keep a trail of what it drops
        log.info("subject match by containment: subject=%r comp=%r", norm_subj, norm_comp)
        return True
    return False

def exclude_subject(comps: List[Comp], subject_address: Optional[str],
                    property_id: Optional[str]) -> List[Comp]:
    return [c for c in comps if not is_subject(c, subject_address, property_id)]

def annotate_distance(comps: List[Comp], lat: Optional[float], lng: Optional[float]) -> List[Comp]:
    """Fill ``distance`` (miles) where the provider did not supply one."""
    if lat is None or lng is None:
        return comps
    for c in comps:
        if c.distance is not None:
            continue
        d = distance_miles(lat, lng, c.latitude, c.longitude)
        if not math.isnan(d):
            c.distance = round(d, 2)
    return comps

@dataclass
class RecencyResult:
    comps: List[Comp]
    degraded: bool = False   # True when the strict window was empty and older sales were kept

def filter_recent(comps: List[Comp], cutoff_days: int = 365,
                  today: Optional[date] = None) -> RecencyResult:
    """
    Keep sales from the trailing ``cutoff_days`` (undated comps pass).
    If that leaves nothing, keep every comp that is not dated in the future.
    """
    today = today or datetime.now(timezone.utc).date()

    def age(c: Comp) -> Optional[int]:
        sold = parse_sale_date(c.sale_date)
        return (today - sold).days if sold else None

    strict = []
    for c in comps:
        a = age(c)
        if a is None or 0 <= a <= cutoff_days:
            strict.append(c)
    if strict or not comps:
        return RecencyResult(strict)

    # Strict pass was empty, so every comp here is dated; drop only future sales
    relaxed = [c for c in comps if age(c) >= 0]
    return RecencyResult(relaxed, degraded=bool(relaxed))

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from ..core.config import settings
from ..core.errors import ValidationError
from ..core.security import require_api_key, rate_limit
from ..data.usage_store import UsageStore, current_year_month, usage_store
from ..schemas import ErrorResponse, UsageOut, UsageRequest
from .comps import read_json_object

router = APIRouter()

def store_dep() -> UsageStore:
    return usage_store()

@router.post("/usage", response_model=UsageOut, responses={400: {"model": ErrorResponse}})
async def post_usage(
    request: Request,
    _auth = Depends(require_api_key),
    _lim  = Depends(rate_limit),
    store: UsageStore = Depends(store_dep),
):
    """Current month's counters for a user; ``action: "reset"`` zeroes them first."""
    body = UsageRequest.model_validate(await read_json_object(request))
    user_id = str(body.user_id or "").strip()
    if not user_id:
        raise ValidationError("userId is required")

    ym = current_year_month()
    # The store may block on Redis; keep it off the event loop
    if body.action == "reset":
        await run_in_threadpool(store.reset, user_id, ym)
    counts = await run_in_threadpool(store.get_usage, user_id, ym)
    return UsageOut(
        count_a=counts.count_a,
        count_b=counts.count_b,
        limit_a=settings.LIMIT_A,
        limit_b=settings.LIMIT_B,
        year_month=ym,
    )

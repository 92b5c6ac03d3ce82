import json
import logging

from fastapi import APIRouter, Depends, Request

from ..core.security import require_api_key, rate_limit
from ..schemas import CompOut, CompsRequest, CompsResponse, ErrorResponse, UsageOut
from ..services.comps_service import CompsResolver, build_resolver

log = logging.getLogger(__name__)

router = APIRouter()

_resolver: CompsResolver | None = None

def resolver_dep() -> CompsResolver:
    # Built once per process; providers open their HTTP clients per fetch.
    global _resolver
    if _resolver is None:
        _resolver = build_resolver()
    return _resolver

async def read_json_object(request: Request) -> dict:
    """Request body as a dict; anything unparsable counts as an empty body."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return body if isinstance(body, dict) else {}

@router.post(
    "/comps",
    response_model=CompsResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def post_comps(
    request: Request,
    _auth = Depends(require_api_key),
    _lim  = Depends(rate_limit),
    resolver: CompsResolver = Depends(resolver_dep),
):
    body = CompsRequest.model_validate(await read_json_object(request))
    query = body.to_query()  # ValidationError -> 400 via app handler

    result = await resolver.resolve(query)

    payload = CompsResponse(
        recent_comps=[CompOut.model_validate(c) for c in result.comps],
        source=result.source,
        warnings=result.warnings,
        avm_value=result.avm_value,
    )
    if result.avm_subject is not None:
        payload.avm_subject = CompOut.model_validate(result.avm_subject)
    if result.subject_sale_listing is not None:
        payload.subject_sale_listing = CompOut.model_validate(result.subject_sale_listing)
    if result.usage is not None:
        payload.usage = UsageOut(
            count_a=result.usage.count_a,
            count_b=result.usage.count_b,
            limit_a=resolver.limits.a,
            limit_b=resolver.limits.b,
        )
    if query.debug:
        payload.debug = {
            "address": query.address,
            "zipCode": query.zip_code,
            "city": query.city,
            "state": query.state,
            "propertyId": query.property_id,
            "subjectAddress": query.subject_address,
            "fullAddress": query.full_address,
            "hasCoordinates": query.has_coordinates,
        }
        payload.debug_comps = result.attempts
    return payload

"""Shared fixtures: fake providers, fresh usage stores, canned provider payloads."""
import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from comps_api.data.base import Comp, Meter, ProviderBatch, SubjectQuery
from comps_api.data.usage_store import UsageStore
from comps_api.services.comps_service import CompsResolver, QuotaLimits


def days_ago(n: int) -> str:
    return (datetime.now(timezone.utc).date() - timedelta(days=n)).isoformat()


class FakeProvider:
    """In-memory stand-in for a provider adapter; records every fetch."""

    def __init__(self, name, source, *, vendor="RentCast", meter=Meter.B, comps=None,
                 planned_calls=1, requires_coordinates=False, configured=True,
                 error=None, calls_per_fetch=1, avm_value=None, avm_subject=None):
        self.name = name
        self.source = source
        self.vendor = vendor
        self.meter = meter
        self.planned_calls = planned_calls
        self.requires_coordinates = requires_coordinates
        self._configured = configured
        self._comps = comps or []
        self._error = error
        self._calls_per_fetch = calls_per_fetch
        self._avm_value = avm_value
        self._avm_subject = avm_subject
        self.fetches = []

    def configured(self):
        return self._configured

    async def fetch(self, query, on_call):
        self.fetches.append(query)
        if self._error is not None:
            raise self._error
        for _ in range(self._calls_per_fetch):
            await on_call()
        # fresh copies: the pipeline annotates distance in place
        comps = [Comp(**vars(c)) for c in self._comps]
        point = None
        if self._avm_subject is not None and self._avm_subject.latitude is not None:
            point = (self._avm_subject.latitude, self._avm_subject.longitude)
        return ProviderBatch(comps=comps, avm_value=self._avm_value,
                             avm_subject=self._avm_subject, subject_point=point)


def recorder(calls):
    """Async on_call that appends to ``calls`` for every charged exchange."""
    async def on_call():
        calls.append(1)
    return on_call


@pytest.fixture
def store():
    return UsageStore()


@pytest.fixture
def limits():
    return QuotaLimits(a=25, b=50)


@pytest.fixture
def subject():
    return SubjectQuery(
        address="500 Oak Ave",
        zip_code="62704",
        city="Springfield",
        state="IL",
        lat=39.78,
        lng=-89.65,
        subject_address="500 Oak Ave",
    )


@pytest.fixture
def make_resolver(store, limits):
    def _make(providers, **kw):
        return CompsResolver(providers, store, limits, **kw)
    return _make


@pytest.fixture
def realie_payload():
    """Primary provider answer: the subject itself, one stale sale, one recent sale."""
    def _payload():
        stale = datetime.now(timezone.utc).date() - timedelta(days=400)
        recent = datetime.now(timezone.utc).date() - timedelta(days=30)
        return {
            "comparables": [
                {
                    "addressFull": "500 OAK AVE, SPRINGFIELD, IL 62704",
                    "transferPrice": 210000,
                    "transferDate": recent.strftime("%Y%m%d"),
                    "latitude": 39.78, "longitude": -89.65,
                    "parcelId": "14-22-300-001",
                },
                {
                    "addressFull": "512 Oak Ave, Springfield, IL 62704",
                    "transferPrice": 198500,
                    "transferDate": stale.strftime("%Y%m%d"),
                    "latitude": 39.781, "longitude": -89.651,
                    "totalBedrooms": 3, "totalBathrooms": 2, "buildingArea": 1450,
                },
                {
                    "addressFull": "1520 Elm Dr, Springfield, IL 62704",
                    "transferPrice": 225000,
                    "transferDate": recent.strftime("%Y%m%d"),
                    "latitude": 39.785, "longitude": -89.66,
                    "totalBedrooms": 3, "totalBathrooms": 2, "buildingArea": 1600,
                    "yearBuilt": 1962, "parcelId": "14-22-310-017",
                },
            ]
        }
    return _payload


class Router:
    """
    Minimal httpx.MockTransport handler: maps URL path suffixes to JSON
    bodies (or callables / exceptions) and logs every request it saw.
    """

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        for suffix, answer in self.routes.items():
            if path.endswith(suffix):
                if callable(answer):
                    answer = answer(request)
                if isinstance(answer, Exception):
                    raise answer
                if isinstance(answer, httpx.Response):
                    return answer
                return httpx.Response(200, content=json.dumps(answer),
                                      headers={"content-type": "application/json"})
        return httpx.Response(404, json={"message": "not found"})

    def paths(self):
        return [r.url.path for r in self.requests]

    def transport(self):
        return httpx.MockTransport(self)

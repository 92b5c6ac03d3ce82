import re
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .core.errors import ValidationError
from .core.utils import to_float
from .data.base import SubjectQuery

def _clean(v: Any) -> str | None:
    if v is None:
        return None
    s = " ".join(str(v).split())
    return s or None

class CompsRequest(BaseModel):
    """
    Raw request body. Fields are deliberately loose (camelCase or snake_case,
    strings or numbers); ``to_query`` does the real validation so every
    failure becomes a 400 with a readable message.
    """
    model_config = ConfigDict(extra="ignore")

    address: Any = Field(default=None, validation_alias=AliasChoices("address", "formattedAddress"))
    zip_code: Any = Field(default=None, validation_alias=AliasChoices("zipCode", "zip_code"))
    city: Any = None
    state: Any = Field(default=None, validation_alias=AliasChoices("state", "stateCode", "state_code"))
    subject_specs: Any = Field(default=None, validation_alias=AliasChoices("subjectSpecs", "subject_specs"))
    lat: Any = None
    lng: Any = None
    user_id: Any = Field(default=None, validation_alias=AliasChoices("userId", "user_id"))
    property_id: Any = Field(default=None, validation_alias=AliasChoices("propertyId", "property_id"))
    subject_address: Any = Field(default=None, validation_alias=AliasChoices("subjectAddress", "subject_address"))
    debug: Any = False

    def to_query(self) -> SubjectQuery:
        address = _clean(self.address) or ""
        if len(address) < 5:
            raise ValidationError("address is required and must be at least 5 characters")
        zip_code = re.sub(r"\D", "", str(self.zip_code or ""))[:5]
        if len(zip_code) != 5:
            raise ValidationError("zipCode must be a 5-digit US ZIP")

        state = _clean(self.state)
        specs = self.subject_specs if isinstance(self.subject_specs, dict) else {}
        lat, lng = to_float(self.lat), to_float(self.lng)
        if lat is None or lng is None:
            lat = lng = None

        return SubjectQuery(
            address=address,
            zip_code=zip_code,
            city=_clean(self.city),
            state=state[:2].upper() if state else None,
            bedrooms=to_float(specs.get("bedrooms")),
            bathrooms=to_float(specs.get("bathrooms")),
            lat=lat,
            lng=lng,
            subject_address=_clean(self.subject_address) or address,
            property_id=_clean(self.property_id),
            user_id=_clean(self.user_id),
            debug=self.debug is True,
        )

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

class CompOut(CamelModel):
    address: str
    sale_price: float | None = None
    sale_date: str | None = None
    sqft: int | None = None
    beds: float | None = None
    baths: float | None = None
    year_built: int | None = None
    dom: int | None = None
    id: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    distance: float | None = None
    basement: str | None = None
    basement_type: str | None = None
    basement_condition: str | None = None
    parking_type: str | None = None
    parking_spaces: int | str | None = None
    levels: int | str | None = None

class UsageOut(CamelModel):
    count_a: int
    count_b: int
    limit_a: int
    limit_b: int
    year_month: str | None = None

class CompsResponse(CamelModel):
    recent_comps: list[CompOut]
    source: str
    subject_sale_listing: CompOut | None = None
    avm_value: float | None = None
    avm_subject: CompOut | None = None
    usage: UsageOut | None = None
    warnings: list[str] = []
    debug: dict | None = Field(default=None, alias="_debug")
    debug_comps: list[dict] | None = Field(default=None, alias="_debugComps")

class UsageRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: Any = Field(default=None, validation_alias=AliasChoices("userId", "user_id"))
    action: Any = None

class ErrorResponse(BaseModel):
    error: str

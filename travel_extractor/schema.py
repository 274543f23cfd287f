"""Schema contract for normalized travel pricing data

The pydantic models below are the single source of truth for the shape of an
extraction result. ``describe()`` renders them as a JSON schema that is handed
to the extraction backend as an output constraint, and the validator parses
candidate JSON through the very same models.
"""
from typing import Annotated, Any, Dict, Literal, Tuple

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, StrictBool, StrictStr, StringConstraints
from pydantic_core import PydanticCustomError

BUNDLE = "Bundle"
COMPONENT = "Component"
LOCATION_TYPES = (BUNDLE, COMPONENT)

LocationType = Literal["Bundle", "Component"]


def _require_number(value: Any) -> Any:
    # No coercion from strings or booleans: "500" or True are not prices
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PydanticCustomError("float_type", "Input should be a valid number")
    return value


Price = Annotated[float, Field(ge=0, allow_inf_nan=False), BeforeValidator(_require_number)]
NonEmptyStr = Annotated[StrictStr, StringConstraints(strip_whitespace=True, min_length=1)]


class _Contract(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={"additionalProperties": False},
    )


class Room(_Contract):
    """A priced stay or package offering (the "Stay" cost)"""

    type: NonEmptyStr = Field(..., description="Room/Package Name")
    price: Price


class Activity(_Contract):
    """An ancillary service line item"""

    name: NonEmptyStr = Field(..., description="Activity/Service Name")
    price: Price
    is_included: StrictBool = Field(..., alias="isIncluded")


class Resort(_Contract):
    resort_name: NonEmptyStr = Field(..., alias="resortName")
    currency: NonEmptyStr = Field(..., description="3-letter ISO code or symbol")
    location_type: LocationType = Field(..., alias="locationType")
    rooms: Tuple[Room, ...]
    activities: Tuple[Activity, ...]


class Location(_Contract):
    name: NonEmptyStr = Field(..., description="Location Name (e.g., Maldives, Finland)")
    resorts: Tuple[Resort, ...]


class ExtractionResult(_Contract):
    """Root of the published travel database"""

    locations: Tuple[Location, ...]

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")

    def to_json(self, indent: int = 2) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)

    def resorts(self):
        """Iterate over ``(location, resort)`` pairs in source order"""
        for location in self.locations:
            for resort in location.resorts:
                yield location, resort


def describe() -> Dict[str, Any]:
    """Return the JSON schema every extraction result must satisfy"""
    return ExtractionResult.model_json_schema(by_alias=True)

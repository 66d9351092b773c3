import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.core.enums import VehicleClass

_CLASS_ALIASES = {
    "sedan": VehicleClass.SEDAN,
    "car": VehicleClass.SEDAN,
    "coupe": VehicleClass.SEDAN,
    "suv": VehicleClass.SUV,
    "van": VehicleClass.VAN,
    "minivan": VehicleClass.VAN,
    "pickup_2_door": VehicleClass.PICKUP_2_DOOR,
    "pickup_2_doors": VehicleClass.PICKUP_2_DOOR,
    "2_door_pickup": VehicleClass.PICKUP_2_DOOR,
    "pickup_4_door": VehicleClass.PICKUP_4_DOOR,
    "pickup_4_doors": VehicleClass.PICKUP_4_DOOR,
    "4_door_pickup": VehicleClass.PICKUP_4_DOOR,
}


def normalize_pricing_class(raw) -> Optional[VehicleClass]:
    """Map free-text pricing classes ("SUV", "Pickup 4 Door", "4-door pickup") onto VehicleClass."""
    if raw is None:
        return None
    if isinstance(raw, VehicleClass):
        return raw
    key = re.sub(r"[\s\-]+", "_", str(raw).strip().lower())
    return _CLASS_ALIASES.get(key)


class Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    city: str
    state: str

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data):
        # "Detroit, MI"
        if isinstance(data, str):
            city, _, state = data.rpartition(",")
            return {"city": city.strip(), "state": state.strip()}
        return data

    @field_validator("city")
    @classmethod
    def _require_city(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("city is required")
        return v

    @field_validator("state")
    @classmethod
    def _upper_state(cls, v: str) -> str:
        v = v.strip().upper()
        if not re.fullmatch(r"[A-Z]{2}", v):
            raise ValueError(f"state must be a two-letter code, got {v!r}")
        return v

    def __str__(self):
        return f"{self.city}, {self.state}"


class VehicleIn(BaseModel):
    model_config = ConfigDict(frozen=True)

    make: str
    model: str
    pricing_class: Optional[VehicleClass] = None
    is_inoperable: bool = False
    is_oversize: Optional[bool] = None
    vin: Optional[str] = None
    year: Optional[int] = Field(default=None, ge=1900, le=2100)

    @field_validator("pricing_class", mode="before")
    @classmethod
    def _normalise_class(cls, v):
        if v is None or v == "":
            return None
        return normalize_pricing_class(v) or v

"""Modifier configuration documents.

A modifier set is either the single global set (tenant-independent defaults)
or a per-portal override set. Every modifier is a typed ``ModifierValue``;
grouped modifiers (routes, states, make/model, service levels) wrap one.
"""
from decimal import Decimal
from typing import Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from app.core.config import settings
from app.core.enums import ModifierKind, StateDirection, VehicleClass
from app.utils.money import ZERO, ceil_whole, to_decimal

_KIND_ALIASES = {
    "flat": ModifierKind.FLAT,
    "fixed": ModifierKind.FLAT,
    "percentage": ModifierKind.PERCENTAGE,
    "percent": ModifierKind.PERCENTAGE,
}


class ModifierValue(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    value: Decimal
    kind: ModifierKind = Field(validation_alias=AliasChoices("kind", "value_type", "valueType"))

    @field_validator("kind", mode="before")
    @classmethod
    def _normalise_kind(cls, v):
        if isinstance(v, str):
            return _KIND_ALIASES.get(v.strip().lower(), v)
        return v

    def apply(self, base) -> Decimal:
        if self.kind == ModifierKind.PERCENTAGE:
            return ceil_whole(to_decimal(base) * self.value / 100)
        return self.value


def apply_modifier(modifier: Optional[ModifierValue], base) -> Decimal:
    """Zero when the modifier is not configured."""
    if modifier is None:
        return ZERO
    return modifier.apply(base)


class OversizeTable(BaseModel):
    model_config = ConfigDict(frozen=True)

    suv: Optional[Decimal] = None
    van: Optional[Decimal] = None
    pickup_2_door: Optional[Decimal] = Field(
        default=None, validation_alias=AliasChoices("pickup_2_door", "pickup_2_doors")
    )
    pickup_4_door: Optional[Decimal] = Field(
        default=None, validation_alias=AliasChoices("pickup_4_door", "pickup_4_doors")
    )
    sedan: Optional[Decimal] = None
    default: Optional[Decimal] = None
    kind: ModifierKind = ModifierKind.FLAT

    def amount_for(self, pricing_class: Optional[VehicleClass]) -> Optional[Decimal]:
        """Configured amount for a class, or None when the class has no entry."""
        if pricing_class is None:
            return None
        return {
            VehicleClass.SEDAN: self.sedan,
            VehicleClass.SUV: self.suv,
            VehicleClass.VAN: self.van,
            VehicleClass.PICKUP_2_DOOR: self.pickup_2_door,
            VehicleClass.PICKUP_4_DOOR: self.pickup_4_door,
        }.get(pricing_class)


class WhiteGloveConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    multiplier: Decimal = Field(default_factory=lambda: settings.WHITE_GLOVE_MULTIPLIER)
    minimum: Decimal = Field(default_factory=lambda: settings.WHITE_GLOVE_MINIMUM)


class RouteModifier(BaseModel):
    model_config = ConfigDict(frozen=True)

    origin_state: str = Field(validation_alias=AliasChoices("origin_state", "origin"))
    destination_state: str = Field(validation_alias=AliasChoices("destination_state", "destination"))
    modifier: ModifierValue

    @field_validator("origin_state", "destination_state")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.strip().upper()


class StateModifier(BaseModel):
    model_config = ConfigDict(frozen=True)

    direction: StateDirection = StateDirection.BOTH
    modifier: ModifierValue

    def applies_outbound(self) -> bool:
        return self.direction in (StateDirection.OUTBOUND, StateDirection.BOTH)

    def applies_inbound(self) -> bool:
        return self.direction in (StateDirection.INBOUND, StateDirection.BOTH)


class VehicleModifier(BaseModel):
    model_config = ConfigDict(frozen=True)

    make: str
    model: str
    modifier: ModifierValue

    def matches(self, make: str, model: str) -> bool:
        return (
            self.make.strip().lower() == (make or "").strip().lower()
            and self.model.strip().lower() == (model or "").strip().lower()
        )


class ServiceLevelModifier(BaseModel):
    model_config = ConfigDict(frozen=True)

    # raw on purpose: stored documents mix "1", 1 and "one"
    tier: Union[str, int] = Field(validation_alias=AliasChoices("tier", "service_level", "serviceLevelOption"))
    modifier: ModifierValue


class ModifierSetConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    inoperable: Optional[ModifierValue] = None
    fuel: Optional[ModifierValue] = None
    irr: Optional[ModifierValue] = None
    enclosed_flat: Optional[ModifierValue] = None
    enclosed_percent: Optional[ModifierValue] = None
    discount: Optional[ModifierValue] = None
    oversize: Optional[OversizeTable] = None

    # minimum is read from the global set; a portal set may override the multiplier
    white_glove: Optional[WhiteGloveConfig] = None

    # portal set only
    company_tariff: Optional[ModifierValue] = None
    company_tariff_discount: Optional[ModifierValue] = None
    company_tariff_enclosed_fee: Optional[ModifierValue] = None
    portal_wide_commission: Optional[ModifierValue] = None
    fixed_commission: Optional[ModifierValue] = None

    routes: list[RouteModifier] = Field(default_factory=list)
    states: dict[str, StateModifier] = Field(default_factory=dict)
    vehicles: list[VehicleModifier] = Field(default_factory=list)
    service_levels: list[ServiceLevelModifier] = Field(default_factory=list)

    @field_validator("states")
    @classmethod
    def _upper_state_codes(cls, v: dict) -> dict:
        return {code.strip().upper(): mod for code, mod in v.items()}


class ModifierSetOut(BaseModel):
    id: int
    portal_id: Optional[int] = None
    is_global: bool
    document: ModifierSetConfig

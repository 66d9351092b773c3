from decimal import Decimal
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.core.config import settings


class CustomRateBand(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str = ""
    min_miles: Decimal = Field(validation_alias=AliasChoices("min_miles", "min"))
    max_miles: Decimal = Field(validation_alias=AliasChoices("max_miles", "max"))
    rate: Decimal = Field(validation_alias=AliasChoices("rate", "value"))

    @property
    def is_white_glove(self) -> bool:
        return "white glove" in self.label.lower()

    def contains(self, miles) -> bool:
        return self.min_miles <= miles <= self.max_miles


class JKOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    tariff_percent: Decimal = Field(default_factory=lambda: settings.JK_TARIFF_PERCENT)
    enclosed_surcharge_over_1500: Decimal = Decimal("0")
    enclosed_surcharge_under_1500: Decimal = Decimal("0")
    enclosed_percent: Optional[Decimal] = None
    suv_surcharge: Decimal = Decimal("0")
    van_surcharge: Decimal = Decimal("0")
    pickup_4_door_surcharge: Decimal = Decimal("0")
    fixed_discount: Optional[Decimal] = None


class PortalOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    enable_custom_rates: bool = False
    enable_jk_pricing: bool = False
    is_premium: bool = False
    jk: JKOptions = Field(default_factory=JKOptions)


class Tenant(BaseModel):
    """Read-only view of a portal as the pricing engine needs it."""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    company_name: str = ""
    options: PortalOptions = Field(default_factory=PortalOptions)
    custom_rates: list[CustomRateBand] = Field(default_factory=list)
    jk_mileage_rates: dict[str, Optional[Decimal]] = Field(default_factory=dict)

from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, Field

from app.core.enums import RatingStrategyName, ServiceLevel, TrailerType
from app.schemas.vehicle import Location, VehicleIn


class PriceLeaf(BaseModel):
    total: Decimal = Decimal("0")
    company_tariff: Decimal = Decimal("0")
    commission: Decimal = Decimal("0")
    total_with_company_tariff_and_commission: Decimal = Decimal("0")


class TierTotals(BaseModel):
    open: PriceLeaf = Field(default_factory=PriceLeaf)
    enclosed: PriceLeaf = Field(default_factory=PriceLeaf)

    def leaf(self, trailer: TrailerType) -> PriceLeaf:
        return self.enclosed if trailer == TrailerType.ENCLOSED else self.open


class PricingTotals(BaseModel):
    white_glove: Decimal = Decimal("0")
    one: TierTotals = Field(default_factory=TierTotals)
    three: TierTotals = Field(default_factory=TierTotals)
    five: TierTotals = Field(default_factory=TierTotals)
    seven: TierTotals = Field(default_factory=TierTotals)

    def tier(self, level: ServiceLevel) -> TierTotals:
        return getattr(self, level.key)


class ServiceLevelCharge(BaseModel):
    tier: Union[str, int]
    value: Decimal = Decimal("0")


class CompanyTariffEntry(BaseModel):
    tier: Union[str, int]
    trailer_type: TrailerType = TrailerType.OPEN
    value: Decimal = Decimal("0")


class PricingModifiers(BaseModel):
    inoperable: Decimal = Decimal("0")
    routes: Decimal = Decimal("0")
    states: Decimal = Decimal("0")
    oversize: Decimal = Decimal("0")
    vehicles: Decimal = Decimal("0")
    global_discount: Decimal = Decimal("0")
    portal_discount: Decimal = Decimal("0")
    irr: Decimal = Decimal("0")
    fuel: Decimal = Decimal("0")
    enclosed_flat: Decimal = Decimal("0")
    enclosed_percent: Decimal = Decimal("0")
    commission: Decimal = Decimal("0")
    service_levels: list[ServiceLevelCharge] = Field(default_factory=list)
    company_tariffs: list[CompanyTariffEntry] = Field(default_factory=list)


class VehiclePricing(BaseModel):
    strategy: RatingStrategyName = RatingStrategyName.STANDARD
    base: Decimal = Decimal("0")
    modifiers: PricingModifiers = Field(default_factory=PricingModifiers)
    totals: PricingTotals = Field(default_factory=PricingTotals)


class QuoteTotalPricing(BaseModel):
    base: Decimal = Decimal("0")
    modifiers: PricingModifiers = Field(default_factory=PricingModifiers)
    totals: PricingTotals = Field(default_factory=PricingTotals)


class PricedVehicle(BaseModel):
    vehicle: VehicleIn
    pricing: VehiclePricing


class QuoteRequest(BaseModel):
    portal_id: int
    vehicles: list[VehicleIn]
    miles: Decimal = Field(ge=0)
    origin: Location
    destination: Location
    commission: Decimal = Decimal("0")


class QuoteResponse(BaseModel):
    portal_id: Optional[int] = None
    miles: Decimal
    vehicles: list[PricedVehicle]
    total_pricing: QuoteTotalPricing

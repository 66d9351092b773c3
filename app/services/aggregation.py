import logging
from typing import Iterable, Optional

from app.core.enums import ServiceLevel, TrailerType
from app.schemas.quote import (
    PriceLeaf,
    PricingModifiers,
    PricingTotals,
    QuoteTotalPricing,
    ServiceLevelCharge,
    VehiclePricing,
)
from app.utils.money import ZERO, round_currency

logger = logging.getLogger(__name__)

_SUMMED_MODIFIERS = (
    "inoperable",
    "routes",
    "states",
    "oversize",
    "vehicles",
    "global_discount",
    "portal_discount",
    "enclosed_flat",
    "enclosed_percent",
    "commission",
)

_LEAF_FIELDS = ("total", "company_tariff", "commission", "total_with_company_tariff_and_commission")


def _add_leaf(target: PriceLeaf, source: PriceLeaf) -> None:
    for field in _LEAF_FIELDS:
        setattr(target, field, round_currency(getattr(target, field) + getattr(source, field)))


def _scaled_service_levels(first: VehiclePricing, count: int) -> list[ServiceLevelCharge]:
    charges = []
    for entry in first.modifiers.service_levels:
        level = ServiceLevel.parse(entry.tier)
        if level is None:
            logger.warning(f"Skipping service level entry with unrecognised tier {entry.tier!r}")
            continue
        charges.append(ServiceLevelCharge(tier=level.value, value=round_currency(entry.value * count)))
    return charges


def aggregate(pricings: Iterable[Optional[VehiclePricing]]) -> QuoteTotalPricing:
    """Sum per-vehicle pricing into quote totals.

    Unpriced (None) entries are ignored. White glove is summed per vehicle,
    so a multi-vehicle quote carries one white-glove figure per vehicle.
    """
    priced = [pricing for pricing in pricings if pricing is not None]
    result = QuoteTotalPricing()
    if not priced:
        return result

    totals = PricingTotals()
    modifiers = PricingModifiers()
    base = ZERO

    for pricing in priced:
        base += pricing.base
        totals.white_glove = round_currency(totals.white_glove + pricing.totals.white_glove)
        for level in ServiceLevel:
            for trailer in TrailerType:
                _add_leaf(
                    totals.tier(level).leaf(trailer),
                    pricing.totals.tier(level).leaf(trailer),
                )
        for name in _SUMMED_MODIFIERS:
            setattr(modifiers, name, getattr(modifiers, name) + getattr(pricing.modifiers, name))

    first = priced[0]
    modifiers.irr = ZERO
    modifiers.fuel = ZERO
    modifiers.service_levels = _scaled_service_levels(first, len(priced))
    modifiers.company_tariffs = [entry.model_copy() for entry in first.modifiers.company_tariffs]

    result.base = round_currency(base)
    result.modifiers = modifiers
    result.totals = totals
    return result

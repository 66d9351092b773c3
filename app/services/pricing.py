"""Per-vehicle pricing.

Two rating strategies share one output shape (``VehiclePricing``):

``StandardRating``
    base carrier rate plus layered global/portal modifiers, priced per
    service level and trailer type, with company tariff and commission
    stacked on top.

``JKSplitRating``
    mileage-table base split into company tariff and carrier share
    (default 30/70); every service level gets the same price.

The strategy is chosen once per quote by ``select_strategy``.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from app.core.enums import (
    ModifierKind,
    RatingStrategyName,
    ServiceLevel,
    TrailerType,
    VehicleClass,
)
from app.core.metrics import vehicles_priced
from app.schemas.modifier_set import (
    ModifierSetConfig,
    ModifierValue,
    WhiteGloveConfig,
    apply_modifier,
)
from app.schemas.portal import Tenant
from app.schemas.quote import (
    CompanyTariffEntry,
    PriceLeaf,
    PricingModifiers,
    PricingTotals,
    ServiceLevelCharge,
    TierTotals,
    VehiclePricing,
)
from app.schemas.vehicle import Location, VehicleIn
from app.services.modifier_sets import ModifierSnapshot
from app.services.rates import CarrierRateClient, resolve_base_rate, resolve_jk_base_rate
from app.utils.money import ZERO, floor_whole, round_currency, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricingContext:
    tenant: Tenant
    snapshot: ModifierSnapshot
    miles: Decimal
    origin: Location
    destination: Location
    commission: Decimal = ZERO
    carrier: Optional[CarrierRateClient] = None


def _modifier_sets(snapshot: ModifierSnapshot) -> list[ModifierSetConfig]:
    if snapshot.tenant_set is None:
        return [snapshot.global_set]
    return [snapshot.global_set, snapshot.tenant_set]


def route_charges(snapshot: ModifierSnapshot, origin_state: str, destination_state: str, base) -> Decimal:
    total = ZERO
    for modifier_set in _modifier_sets(snapshot):
        for route in modifier_set.routes:
            if route.origin_state == origin_state and route.destination_state == destination_state:
                total += route.modifier.apply(base)
    return total


def state_charges(snapshot: ModifierSnapshot, origin_state: str, destination_state: str, base) -> Decimal:
    total = ZERO
    for modifier_set in _modifier_sets(snapshot):
        outbound = modifier_set.states.get(origin_state)
        charged_origin = outbound is not None and outbound.applies_outbound()
        if charged_origin:
            total += outbound.modifier.apply(base)

        # an intrastate move pays a state's charge once
        if destination_state == origin_state and charged_origin:
            continue
        inbound = modifier_set.states.get(destination_state)
        if inbound is not None and inbound.applies_inbound():
            total += inbound.modifier.apply(base)
    return total


def vehicle_charges(snapshot: ModifierSnapshot, vehicle: VehicleIn, base) -> Decimal:
    total = ZERO
    for modifier_set in _modifier_sets(snapshot):
        for entry in modifier_set.vehicles:
            if entry.matches(vehicle.make, vehicle.model):
                total += entry.modifier.apply(base)
    return total


def oversize_charge(vehicle: VehicleIn, base, tenant: Tenant, snapshot: ModifierSnapshot) -> Decimal:
    table = snapshot.global_set.oversize
    if tenant.options.enable_custom_rates and snapshot.tenant_set and snapshot.tenant_set.oversize:
        table = snapshot.tenant_set.oversize
    if table is None:
        return ZERO

    amount = table.amount_for(vehicle.pricing_class)
    if not vehicle.is_oversize:
        # only an explicit sedan entry charges a vehicle not flagged oversize
        if vehicle.pricing_class not in (None, VehicleClass.SEDAN) or amount is None:
            return ZERO
    elif amount is None:
        amount = table.default

    if amount is None:
        return ZERO
    return ModifierValue(value=amount, kind=table.kind).apply(base)


def service_level_amounts(snapshot: ModifierSnapshot, base) -> dict[ServiceLevel, Decimal]:
    """Per-tier markup; portal entries replace global ones tier by tier."""
    amounts = {level: ZERO for level in ServiceLevel}
    for modifier_set in _modifier_sets(snapshot):
        for entry in modifier_set.service_levels:
            level = ServiceLevel.parse(entry.tier)
            if level is None:
                logger.warning(f"Skipping service level modifier with unrecognised tier {entry.tier!r}")
                continue
            amounts[level] = entry.modifier.apply(base)
    return amounts


def commission_charge(snapshot: ModifierSnapshot, commission, base) -> Decimal:
    portal = snapshot.tenant_set
    commission = to_decimal(commission)
    if portal is None:
        return commission
    if portal.portal_wide_commission is not None:
        return commission + portal.portal_wide_commission.apply(base)
    return commission + apply_modifier(portal.fixed_commission, base)


def company_tariff_charge(snapshot: ModifierSnapshot, base_with_modifiers, trailer: TrailerType) -> Decimal:
    portal = snapshot.tenant_set
    if portal is None or portal.company_tariff is None:
        return ZERO
    tariff_base = base_with_modifiers + apply_modifier(portal.company_tariff_discount, base_with_modifiers)
    tariff = portal.company_tariff.apply(tariff_base)
    if trailer == TrailerType.ENCLOSED:
        tariff += apply_modifier(portal.company_tariff_enclosed_fee, base_with_modifiers)
    return tariff


def white_glove_price(miles, tenant: Tenant, snapshot: ModifierSnapshot) -> Decimal:
    miles = to_decimal(miles)

    if tenant.options.is_premium:
        for band in tenant.custom_rates:
            if band.is_white_glove and band.contains(miles):
                return round_currency(band.rate)

    global_config = snapshot.global_set.white_glove or WhiteGloveConfig()
    multiplier = global_config.multiplier
    portal_config = snapshot.tenant_set.white_glove if snapshot.tenant_set is not None else None
    if portal_config is not None and "multiplier" in portal_config.model_fields_set:
        multiplier = portal_config.multiplier

    return round_currency(max(miles * multiplier, global_config.minimum))


def build_leaf(total, company_tariff, commission) -> PriceLeaf:
    return PriceLeaf(
        total=round_currency(total),
        company_tariff=round_currency(company_tariff),
        commission=round_currency(commission),
        total_with_company_tariff_and_commission=round_currency(total + company_tariff + commission),
    )


class RatingStrategy(ABC):
    name: RatingStrategyName

    @abstractmethod
    async def resolve_base(self, vehicle: VehicleIn, context: PricingContext) -> Decimal:
        ...

    @abstractmethod
    def calculate(self, vehicle: VehicleIn, base: Decimal, context: PricingContext) -> VehiclePricing:
        ...

    async def price_vehicle(self, vehicle: VehicleIn, context: PricingContext) -> VehiclePricing:
        base = await self.resolve_base(vehicle, context)
        pricing = self.calculate(vehicle, base, context)
        vehicles_priced.labels(strategy=str(self.name)).inc()
        return pricing


class StandardRating(RatingStrategy):
    name = RatingStrategyName.STANDARD

    async def resolve_base(self, vehicle: VehicleIn, context: PricingContext) -> Decimal:
        return await resolve_base_rate(
            vehicle,
            context.origin,
            context.destination,
            context.tenant,
            context.miles,
            context.carrier or CarrierRateClient(),
        )

    def calculate(self, vehicle: VehicleIn, base: Decimal, context: PricingContext) -> VehiclePricing:
        base = to_decimal(base)
        snapshot = context.snapshot
        global_set = snapshot.global_set
        portal_set = snapshot.tenant_set
        origin_state = context.origin.state
        destination_state = context.destination.state

        global_discount = apply_modifier(global_set.discount, base)
        portal_discount = apply_modifier(portal_set.discount if portal_set else None, base)
        inoperable = apply_modifier(global_set.inoperable, base) if vehicle.is_inoperable else ZERO
        oversize = oversize_charge(vehicle, base, context.tenant, snapshot)
        enclosed_flat = apply_modifier(global_set.enclosed_flat, base)
        enclosed_percent = apply_modifier(global_set.enclosed_percent, base)
        routes = route_charges(snapshot, origin_state, destination_state, base)
        states = state_charges(snapshot, origin_state, destination_state, base)
        vehicles = vehicle_charges(snapshot, vehicle, base)
        irr = apply_modifier(global_set.irr, base)
        fuel = apply_modifier(global_set.fuel, base)
        service_levels = service_level_amounts(snapshot, base)
        commission = commission_charge(snapshot, context.commission, base)

        shared = (
            base + inoperable + oversize + routes + states + vehicles
            + global_discount + portal_discount + irr + fuel
        )

        totals = PricingTotals(white_glove=white_glove_price(context.miles, context.tenant, snapshot))
        company_tariffs = []
        for level in ServiceLevel:
            tier = totals.tier(level)
            for trailer in TrailerType:
                base_with_modifiers = shared + service_levels[level]
                if trailer == TrailerType.ENCLOSED:
                    base_with_modifiers += enclosed_flat + enclosed_percent

                company_tariff = company_tariff_charge(snapshot, base_with_modifiers, trailer)
                setattr(tier, str(trailer), build_leaf(base_with_modifiers, company_tariff, commission))
                company_tariffs.append(
                    CompanyTariffEntry(
                        tier=level.value, trailer_type=trailer, value=round_currency(company_tariff)
                    )
                )

        modifiers = PricingModifiers(
            inoperable=inoperable,
            routes=routes,
            states=states,
            oversize=oversize,
            vehicles=vehicles,
            global_discount=global_discount,
            portal_discount=portal_discount,
            irr=irr,
            fuel=fuel,
            enclosed_flat=enclosed_flat,
            enclosed_percent=enclosed_percent,
            commission=round_currency(commission),
            service_levels=[
                ServiceLevelCharge(tier=level.value, value=amount)
                for level, amount in service_levels.items()
            ],
            company_tariffs=company_tariffs,
        )

        return VehiclePricing(strategy=self.name, base=base, modifiers=modifiers, totals=totals)


class JKSplitRating(RatingStrategy):
    name = RatingStrategyName.JK_SPLIT

    async def resolve_base(self, vehicle: VehicleIn, context: PricingContext) -> Decimal:
        return resolve_jk_base_rate(context.miles, context.tenant)

    def calculate(self, vehicle: VehicleIn, base: Decimal, context: PricingContext) -> VehiclePricing:
        base = to_decimal(base)
        options = context.tenant.options.jk
        snapshot = context.snapshot
        portal_set = snapshot.tenant_set

        company_tariff = floor_whole(base * options.tariff_percent)
        mc_base = base - company_tariff

        class_surcharge = {
            VehicleClass.SUV: options.suv_surcharge,
            VehicleClass.VAN: options.van_surcharge,
            VehicleClass.PICKUP_4_DOOR: options.pickup_4_door_surcharge,
        }.get(vehicle.pricing_class, ZERO)
        mc_base += class_surcharge

        inoperable = ZERO
        if vehicle.is_inoperable:
            inoperable = apply_modifier(snapshot.global_set.inoperable, mc_base)

        if to_decimal(context.miles) > 1500:
            enclosed_surcharge = options.enclosed_surcharge_over_1500
        else:
            enclosed_surcharge = options.enclosed_surcharge_under_1500

        # reported only; not part of the enclosed total
        enclosed_modifier = ZERO
        if options.enclosed_percent:
            enclosed_modifier = ModifierValue(
                value=options.enclosed_percent, kind=ModifierKind.PERCENTAGE
            ).apply(mc_base)

        if options.fixed_discount:
            company_tariff = max(ZERO, company_tariff - options.fixed_discount)

        commission = to_decimal(context.commission) + apply_modifier(
            portal_set.fixed_commission if portal_set else None, mc_base
        )

        open_total = mc_base + inoperable
        enclosed_total = open_total + enclosed_surcharge

        totals = PricingTotals(white_glove=white_glove_price(context.miles, context.tenant, snapshot))
        company_tariffs = []
        for level in ServiceLevel:
            setattr(
                totals,
                level.key,
                TierTotals(
                    open=build_leaf(open_total, company_tariff, commission),
                    enclosed=build_leaf(enclosed_total, company_tariff, commission),
                ),
            )
            for trailer in TrailerType:
                company_tariffs.append(
                    CompanyTariffEntry(
                        tier=level.value, trailer_type=trailer, value=round_currency(company_tariff)
                    )
                )

        modifiers = PricingModifiers(
            inoperable=inoperable,
            oversize=class_surcharge,
            enclosed_flat=enclosed_surcharge,
            enclosed_percent=enclosed_modifier,
            commission=round_currency(commission),
            service_levels=[ServiceLevelCharge(tier=level.value, value=ZERO) for level in ServiceLevel],
            company_tariffs=company_tariffs,
        )

        return VehiclePricing(strategy=self.name, base=base, modifiers=modifiers, totals=totals)


def select_strategy(tenant: Tenant) -> RatingStrategy:
    if tenant.options.enable_jk_pricing:
        return JKSplitRating()
    return StandardRating()

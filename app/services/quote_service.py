"""Quote pricing: snapshot, classify, price every vehicle, aggregate"""
import asyncio
import logging
from dataclasses import dataclass, field

from app.core.errors import PricingError
from app.core.metrics import quotes_priced
from app.schemas.portal import Tenant
from app.schemas.quote import QuoteTotalPricing, VehiclePricing
from app.schemas.vehicle import Location, VehicleIn
from app.services.aggregation import aggregate
from app.services.classifier import VehicleReference, classify_vehicle
from app.services.modifier_sets import ModifierSetStore, load_modifier_snapshot
from app.services.pricing import PricingContext, select_strategy
from app.services.rates import CarrierRateClient
from app.utils.money import to_decimal

logger = logging.getLogger(__name__)


async def _price_all(strategy, vehicles, context) -> list[VehiclePricing]:
    """Price vehicles concurrently; the first failure cancels the remaining lookups."""
    tasks = [asyncio.create_task(strategy.price_vehicle(vehicle, context)) for vehicle in vehicles]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


@dataclass
class QuoteResult:
    vehicles: list[VehicleIn] = field(default_factory=list)
    vehicle_pricings: list[VehiclePricing] = field(default_factory=list)
    quote_total_pricing: QuoteTotalPricing = field(default_factory=QuoteTotalPricing)


class QuoteService:
    def __init__(
        self,
        modifier_store: ModifierSetStore,
        vehicle_reference: VehicleReference,
        carrier: CarrierRateClient | None = None,
    ):
        self.modifier_store = modifier_store
        self.vehicle_reference = vehicle_reference
        self.carrier = carrier or CarrierRateClient()

    async def price(
        self,
        vehicles: list[VehicleIn],
        miles,
        origin: Location,
        destination: Location,
        tenant: Tenant,
        commission=0,
    ) -> QuoteResult:
        """Price a whole quote; any vehicle failure fails the quote."""
        strategy = select_strategy(tenant)

        try:
            snapshot = await load_modifier_snapshot(self.modifier_store, tenant.id)
            classified = await asyncio.gather(
                *(classify_vehicle(vehicle, self.vehicle_reference) for vehicle in vehicles)
            )
            context = PricingContext(
                tenant=tenant,
                snapshot=snapshot,
                miles=to_decimal(miles),
                origin=origin,
                destination=destination,
                commission=to_decimal(commission),
                carrier=self.carrier,
            )
            pricings = await _price_all(strategy, classified, context)
        except PricingError as e:
            quotes_priced.labels(strategy=str(strategy.name), status="error").inc()
            logger.warning(f"Quote for portal {tenant.id} failed: {e}")
            raise

        total = aggregate(pricings)
        quotes_priced.labels(strategy=str(strategy.name), status="success").inc()
        logger.info(
            f"Priced quote for portal {tenant.id}: {len(pricings)} vehicle(s), "
            f"{miles} miles, {origin} -> {destination}, strategy={strategy.name}"
        )
        return QuoteResult(
            vehicles=list(classified),
            vehicle_pricings=list(pricings),
            quote_total_pricing=total,
        )

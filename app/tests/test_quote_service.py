import asyncio
import json
import httpx
import pytest
from decimal import Decimal

from app.core.enums import RatingStrategyName, VehicleClass
from app.core.errors import MissingGlobalModifierSetError, NoRateAvailableError, RateLookupError
from app.schemas.modifier_set import ModifierSetConfig
from app.schemas.portal import Tenant
from app.schemas.vehicle import VehicleIn
from app.services.quote_service import QuoteService
from app.services.rates import CarrierRateClient

D = Decimal


class TestQuoteService:

    @pytest.mark.asyncio
    async def test_prices_every_vehicle(self, quote_service_factory, tenant, origin, destination, carrier_factory):
        requests = []
        global_set = ModifierSetConfig.model_validate({"oversize": {"suv": 150}})
        service = quote_service_factory(global_set=global_set, carrier=carrier_factory(price=1000, requests=requests))
        vehicles = [
            VehicleIn(make="Toyota", model="Camry"),
            VehicleIn(make="Chevrolet", model="Tahoe"),
        ]

        result = await service.price(vehicles, 1200, origin, destination, tenant, commission=50)

        assert len(requests) == 2
        assert [v.pricing_class for v in result.vehicles] == [VehicleClass.SEDAN, VehicleClass.SUV]
        assert [p.modifiers.oversize for p in result.vehicle_pricings] == [D(0), D(150)]
        assert result.quote_total_pricing.totals.one.open.total == D(2150)
        assert result.quote_total_pricing.totals.one.open.total_with_company_tariff_and_commission == D(2250)

    @pytest.mark.asyncio
    async def test_no_vehicles(self, quote_service_factory, tenant, origin, destination):
        result = await quote_service_factory().price([], 500, origin, destination, tenant)

        assert result.vehicle_pricings == []
        assert result.quote_total_pricing.totals.seven.enclosed.total == D(0)

    @pytest.mark.asyncio
    async def test_missing_global_set_aborts(self, vehicle_reference, modifier_store_factory, carrier,
                                             tenant, sedan, origin, destination):
        service = QuoteService(modifier_store_factory(global_set=None), vehicle_reference, carrier)

        with pytest.raises(MissingGlobalModifierSetError):
            await service.price([sedan], 500, origin, destination, tenant)

    @pytest.mark.asyncio
    async def test_carrier_failure_aborts_quote(self, quote_service_factory, carrier_factory,
                                                tenant, sedan, suv, origin, destination):
        service = quote_service_factory(carrier=carrier_factory(status_code=503, body=b"unavailable"))

        with pytest.raises(RateLookupError):
            await service.price([sedan, suv], 500, origin, destination, tenant)

    @pytest.mark.asyncio
    async def test_jk_portal(self, quote_service_factory, carrier_factory, sedan, origin, destination):
        requests = []
        tenant = Tenant(id=9, options={"enable_jk_pricing": True}, jk_mileage_rates={"751-1000": 2000})
        service = quote_service_factory(carrier=carrier_factory(requests=requests))

        result = await service.price([sedan, sedan], 900, origin, destination, tenant)

        assert requests == []
        assert all(p.strategy == RatingStrategyName.JK_SPLIT for p in result.vehicle_pricings)
        assert result.quote_total_pricing.totals.three.open.total == D(2800)
        assert result.quote_total_pricing.totals.three.open.company_tariff == D(1200)

    @pytest.mark.asyncio
    async def test_jk_portal_without_rate(self, quote_service_factory, sedan, origin, destination):
        tenant = Tenant(id=9, options={"enable_jk_pricing": True})

        with pytest.raises(NoRateAvailableError):
            await quote_service_factory().price([sedan], 900, origin, destination, tenant)

    @pytest.mark.asyncio
    async def test_portal_set_applied(self, quote_service_factory, tenant, sedan, origin, destination):
        portal_set = ModifierSetConfig.model_validate({"discount": {"value": -100, "kind": "flat"}})
        service = quote_service_factory(tenant_sets={tenant.id: portal_set})

        result = await service.price([sedan], 500, origin, destination, tenant)

        assert result.vehicle_pricings[0].modifiers.portal_discount == D(-100)
        assert result.quote_total_pricing.totals.one.open.total == D(900)

    @pytest.mark.asyncio
    async def test_failed_lookup_cancels_other_vehicles(self, quote_service_factory, tenant, origin, destination):
        completed = []

        async def handler(request):
            make = json.loads(request.content)["vehicles"][0]["make"]
            if make == "Broken":
                return httpx.Response(500, json={"error": "boom"})
            await asyncio.sleep(0.2)
            completed.append(make)
            return httpx.Response(200, json={"price": 1000})

        carrier = CarrierRateClient(url="https://carrier.test/", transport=httpx.MockTransport(handler))
        service = quote_service_factory(carrier=carrier)
        vehicles = [VehicleIn(make="Broken", model="Car", pricing_class="sedan")] + [
            VehicleIn(make=f"Slow{i}", model="Car", pricing_class="sedan") for i in range(3)
        ]

        with pytest.raises(RateLookupError):
            await service.price(vehicles, 500, origin, destination, tenant)
        await asyncio.sleep(0.4)

        assert completed == []

import inspect
import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_portal_loader, get_quote_service
from app.core.config import settings
from app.main import app
from app.schemas.modifier_set import ModifierSetConfig
from app.schemas.portal import Tenant
from app.schemas.vehicle import Location, VehicleIn
from app.services.classifier import StaticVehicleReference
from app.services.modifier_sets import ModifierSnapshot
from app.services.quote_service import QuoteService
from app.services.rates import CarrierRateClient

CARRIER_URL = "https://carrier.test/v1/price_prediction"


class FakeModifierStore:
    def __init__(self, global_set=None, tenant_sets=None):
        self.global_set = global_set
        self.tenant_sets = tenant_sets or {}
        self.calls = 0

    async def find_global(self):
        self.calls += 1
        return self.global_set

    async def find_for_tenant(self, tenant_id):
        self.calls += 1
        return self.tenant_sets.get(tenant_id)


class FakeRedis:
    def __init__(self, fail=False):
        self.data = {}
        self.fail = fail

    async def get(self, key):
        if self.fail:
            raise ConnectionError("redis down")
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        if self.fail:
            raise ConnectionError("redis down")
        self.data[key] = value.encode() if isinstance(value, str) else value

    async def delete(self, key):
        self.data.pop(key, None)


class FakePortalLoader:
    def __init__(self, tenants=None):
        self.tenants = {t.id: t for t in (tenants or [])}

    async def get(self, portal_id):
        return self.tenants.get(portal_id)


def make_carrier(price=1000, status_code=200, body=None, requests=None):
    """Carrier client backed by httpx.MockTransport; records requests into `requests`."""

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        if body is not None:
            return httpx.Response(status_code, content=body)
        return httpx.Response(status_code, json={"price": price})

    return CarrierRateClient(url=CARRIER_URL, token="test-token", transport=httpx.MockTransport(handler))


@pytest.fixture
def origin():
    return Location(city="Detroit", state="MI")


@pytest.fixture
def destination():
    return Location(city="Miami", state="FL")


@pytest.fixture
def sedan():
    return VehicleIn(make="Toyota", model="Camry", pricing_class="sedan", is_oversize=False)


@pytest.fixture
def suv():
    return VehicleIn(make="Chevrolet", model="Tahoe", pricing_class="suv", is_oversize=True)


@pytest.fixture
def tenant():
    return Tenant(id=1, company_name="Acme Auto")


@pytest.fixture
def empty_global_set():
    return ModifierSetConfig()


@pytest.fixture
def snapshot(empty_global_set):
    return ModifierSnapshot(global_set=empty_global_set)


@pytest.fixture
def carrier():
    return make_carrier(price=1000)


@pytest.fixture
def vehicle_reference():
    return StaticVehicleReference({
        ("Toyota", "Camry"): "sedan",
        ("Chevrolet", "Tahoe"): "SUV",
        ("Ford", "F-150"): "Pickup 4 Door",
    })


@pytest.fixture
def quote_service_factory(vehicle_reference):
    def _factory(global_set=None, tenant_sets=None, carrier=None):
        store = FakeModifierStore(
            global_set=global_set if global_set is not None else ModifierSetConfig(),
            tenant_sets=tenant_sets,
        )
        return QuoteService(store, vehicle_reference, carrier or make_carrier(price=1000))
    return _factory


@pytest.fixture
async def api_client():
    """ASGI client; tests install overrides via the returned `override` helper."""

    def override(service=None, tenants=None):
        if service is not None:
            app.dependency_overrides[get_quote_service] = lambda: service
        app.dependency_overrides[get_portal_loader] = lambda: FakePortalLoader(tenants)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        client.override = override
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def app_settings():
    """Return application settings"""
    return settings


@pytest.fixture
def quote_payload():
    return {
        "portal_id": 1,
        "miles": 1200,
        "origin": "Detroit, MI",
        "destination": {"city": "Miami", "state": "FL"},
        "commission": 50,
        "vehicles": [
            {"make": "Toyota", "model": "Camry", "pricing_class": "sedan"},
        ],
    }


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "pricing: marks tests related to pricing"
    )
    config.addinivalue_line(
        "markers", "rates: marks tests related to base rate resolution"
    )
    config.addinivalue_line(
        "markers", "cache: marks tests related to modifier set caching"
    )


def pytest_collection_modifyitems(config, items):
    """
    Modify test collection to handle asyncio tests
    """
    for item in items:
        if inspect.iscoroutinefunction(getattr(item, "function", None)):
            item.add_marker(pytest.mark.asyncio)


@pytest.fixture
def carrier_factory():
    return make_carrier


@pytest.fixture
def modifier_store_factory():
    return FakeModifierStore


@pytest.fixture
def fake_redis():
    return FakeRedis()

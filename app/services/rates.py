"""Base carrier rate resolution.

Three sources, chosen per portal:

- custom mileage bands held on the portal (first containing band wins)
- the fixed JK mileage table used by the split-tariff portals
- the carrier network's price prediction endpoint
"""
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Optional

import httpx

from app.core.config import settings
from app.core.enums import TrailerType
from app.core.errors import NoRateAvailableError, RateLookupError
from app.core.metrics import rate_lookups, track_rate_lookup
from app.schemas.portal import Tenant
from app.schemas.vehicle import Location, VehicleIn
from app.utils.money import ZERO, to_decimal

logger = logging.getLogger(__name__)

# (upper bound inclusive, key); anything above the last bound uses "3501"
JK_MILEAGE_BUCKETS = (
    (250, "1-250"),
    (500, "251-500"),
    (750, "501-750"),
    (1000, "751-1000"),
    (1250, "1001-1250"),
    (1500, "1251-1500"),
    (1750, "1501-1750"),
    (2000, "1751-2000"),
    (2500, "2001-2500"),
    (3000, "2501-3000"),
    (3500, "3001-3500"),
)
JK_TOP_BUCKET = "3501"

# carrier network mis-geocodes Midland, MI
_LOCATION_SUBSTITUTIONS = {("midland", "MI"): Location(city="Freeland", state="MI")}


def get_custom_base_rate(miles, tenant: Tenant) -> Optional[Decimal]:
    miles = to_decimal(miles)
    for band in tenant.custom_rates:
        if not band.is_white_glove and band.contains(miles):
            return band.rate
    return None


def jk_bucket(miles) -> str:
    miles = to_decimal(miles)
    for upper, key in JK_MILEAGE_BUCKETS:
        if miles <= upper:
            return key
    return JK_TOP_BUCKET


def get_jk_base_rate(miles, tenant: Tenant) -> Decimal:
    """Rate from the JK table; 0 when the bucket has no value."""
    table = tenant.jk_mileage_rates
    key = jk_bucket(miles)
    rate = table.get(key)
    if rate is None and key == "251-500":
        rate = table.get("1-500")
    return rate or ZERO


def resolve_jk_base_rate(miles, tenant: Tenant) -> Decimal:
    rate = get_jk_base_rate(miles, tenant)
    if rate <= 0:
        rate_lookups.labels(source="jk_table", status="missing").inc()
        raise NoRateAvailableError(miles, tenant.id)
    rate_lookups.labels(source="jk_table", status="success").inc()
    return rate


def carrier_location(location: Location) -> Location:
    city = re.sub(r"\d+", "", location.city).strip() or location.city
    substitute = _LOCATION_SUBSTITUTIONS.get((city.lower(), location.state))
    if substitute is not None:
        return substitute
    return Location(city=city, state=location.state)


class CarrierRateClient:
    """Price prediction lookups against the carrier network."""

    def __init__(
        self,
        url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url or settings.CARRIER_PRICE_URL
        self.token = token if token is not None else settings.CARRIER_API_TOKEN
        self.timeout = timeout or settings.CARRIER_TIMEOUT
        self.transport = transport

    def build_payload(
        self,
        vehicle: VehicleIn,
        origin: Location,
        destination: Location,
        trailer_type: TrailerType = TrailerType.OPEN,
    ) -> dict:
        pickup = carrier_location(origin)
        delivery = carrier_location(destination)
        return {
            "pickup": {"city": pickup.city, "state": pickup.state},
            "delivery": {"city": delivery.city, "state": delivery.state},
            "trailer_type": str(trailer_type),
            "vehicles": [
                {
                    "type": str(vehicle.pricing_class) if vehicle.pricing_class else "other",
                    "is_inoperable": vehicle.is_inoperable,
                    "make": vehicle.make,
                    "model": vehicle.model,
                }
            ],
        }

    @track_rate_lookup
    async def get_base_rate(
        self,
        vehicle: VehicleIn,
        origin: Location,
        destination: Location,
        trailer_type: TrailerType = TrailerType.OPEN,
    ) -> Decimal:
        payload = self.build_payload(vehicle, origin, destination, trailer_type)
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            logger.error(f"Carrier price prediction timed out for {origin} -> {destination}")
            raise RateLookupError("Carrier price prediction timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"Carrier price prediction request failed: {e}")
            raise RateLookupError(f"Carrier price prediction request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            logger.error(
                f"Carrier price prediction returned {response.status_code} "
                f"for {origin} -> {destination}"
            )
            raise RateLookupError(f"Carrier price prediction returned status {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise RateLookupError("Carrier price prediction returned a malformed body") from e

        return _extract_price(body)


def _extract_price(body) -> Decimal:
    if not isinstance(body, dict):
        raise RateLookupError("Carrier price prediction returned a malformed body")
    data = body.get("data")
    price = body.get("price")
    if price is None and isinstance(data, dict):
        price = data.get("price")
    if price is None:
        raise RateLookupError("Carrier price prediction response has no price")
    try:
        price = Decimal(str(price))
    except InvalidOperation as e:
        raise RateLookupError(f"Carrier price prediction returned invalid price {price!r}") from e
    if not price.is_finite() or price < 0:
        raise RateLookupError(f"Carrier price prediction returned invalid price {price}")
    return price


async def resolve_base_rate(
    vehicle: VehicleIn,
    origin: Location,
    destination: Location,
    tenant: Tenant,
    miles,
    carrier: CarrierRateClient,
) -> Decimal:
    """Unmodified base rate for one vehicle on the standard path."""
    if tenant.options.enable_jk_pricing:
        return resolve_jk_base_rate(miles, tenant)

    if tenant.options.enable_custom_rates:
        rate = get_custom_base_rate(miles, tenant)
        if rate is not None:
            rate_lookups.labels(source="custom", status="success").inc()
            return rate
        rate_lookups.labels(source="custom", status="missing").inc()
        logger.warning(
            f"Portal {tenant.id} has no custom rate band for {miles} miles, "
            f"falling back to carrier price prediction"
        )

    return await carrier.get_base_rate(vehicle, origin, destination)

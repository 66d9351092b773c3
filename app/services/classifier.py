"""Resolve a vehicle's pricing class and oversize flag from the make/model reference table"""
import logging
from typing import Optional, Protocol

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.enums import VehicleClass
from app.models.vehicle_model import VehicleModel
from app.schemas.vehicle import VehicleIn, normalize_pricing_class

logger = logging.getLogger(__name__)


class VehicleReference(Protocol):
    async def lookup(self, make: str, model: str) -> Optional[VehicleClass]:
        ...


class SqlVehicleReference:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def lookup(self, make: str, model: str) -> Optional[VehicleClass]:
        res = await self.db.execute(
            select(VehicleModel.pricing_class).where(
                func.lower(VehicleModel.make) == make.strip().lower(),
                func.lower(VehicleModel.model) == model.strip().lower(),
            )
        )
        return normalize_pricing_class(res.scalars().first())


class StaticVehicleReference:
    """In-memory reference table keyed by (make, model), case-insensitive."""

    def __init__(self, table: dict[tuple[str, str], str] | None = None):
        self.table = {
            (make.strip().lower(), model.strip().lower()): pricing_class
            for (make, model), pricing_class in (table or {}).items()
        }

    async def lookup(self, make: str, model: str) -> Optional[VehicleClass]:
        raw = self.table.get((make.strip().lower(), model.strip().lower()))
        return normalize_pricing_class(raw)


def is_oversize_class(pricing_class: Optional[VehicleClass]) -> bool:
    return pricing_class is not None and pricing_class != VehicleClass.SEDAN


async def classify_vehicle(vehicle: VehicleIn, reference: VehicleReference) -> VehicleIn:
    pricing_class = vehicle.pricing_class

    if pricing_class is None:
        try:
            pricing_class = await reference.lookup(vehicle.make, vehicle.model)
        except Exception as e:
            logger.warning(f"Vehicle reference lookup failed for {vehicle.make} {vehicle.model}: {e}")
            pricing_class = None
        if pricing_class is None:
            logger.info(f"No pricing class for {vehicle.make} {vehicle.model}, defaulting to sedan")
            pricing_class = VehicleClass.SEDAN

    is_oversize = vehicle.is_oversize
    if is_oversize is None:
        is_oversize = is_oversize_class(pricing_class)

    return vehicle.model_copy(update={"pricing_class": pricing_class, "is_oversize": is_oversize})

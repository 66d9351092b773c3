"""Shared request dependencies"""
from typing import Optional

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.db.session import get_db
from app.models.portal import Portal
from app.schemas.portal import Tenant
from app.services.classifier import SqlVehicleReference
from app.services.modifier_sets import CachedModifierSetStore, SqlModifierSetStore
from app.services.quote_service import QuoteService
from app.services.rates import CarrierRateClient


def check_not_found(item, resource_name: str = "Resource", resource_id: Optional[int] = None) -> None:

    if item is None:
        if resource_id is not None:
            raise HTTPException(status_code=404, detail=f"{resource_name} {resource_id} not found")
        raise HTTPException(status_code=404, detail=f"{resource_name} not found")


def get_modifier_store(db: AsyncSession = Depends(get_db)) -> CachedModifierSetStore:
    return CachedModifierSetStore(SqlModifierSetStore(db))


def get_quote_service(
    db: AsyncSession = Depends(get_db),
    modifier_store: CachedModifierSetStore = Depends(get_modifier_store),
) -> QuoteService:
    return QuoteService(
        modifier_store=modifier_store,
        vehicle_reference=SqlVehicleReference(db),
        carrier=CarrierRateClient(),
    )


class PortalLoader:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, portal_id: int) -> Optional[Tenant]:
        res = await self.db.execute(select(Portal).where(Portal.id == portal_id))
        portal = res.scalars().first()
        if portal is None:
            return None
        return Tenant.model_validate(portal)


def get_portal_loader(db: AsyncSession = Depends(get_db)) -> PortalLoader:
    return PortalLoader(db)

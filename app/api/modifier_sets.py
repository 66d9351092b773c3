from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.api.deps import check_not_found
from app.db.session import get_db
from app.models.modifier_set import ModifierSet
from app.schemas.modifier_set import ModifierSetConfig, ModifierSetOut

router = APIRouter(prefix="/modifier-sets", tags=["modifier-sets"])


def _to_out(row: ModifierSet) -> ModifierSetOut:
    return ModifierSetOut(
        id=row.id,
        portal_id=row.portal_id,
        is_global=row.is_global,
        document=ModifierSetConfig.model_validate(row.document or {}),
    )


@router.get("/global", response_model=ModifierSetOut)
async def get_global_modifier_set(db: AsyncSession = Depends(get_db)):
    res = await db.execute(select(ModifierSet).where(ModifierSet.is_global.is_(True)))
    row = res.scalars().first()
    check_not_found(row, "Global modifier set")
    return _to_out(row)


@router.get("/portal/{portal_id}", response_model=ModifierSetOut)
async def get_portal_modifier_set(portal_id: int, db: AsyncSession = Depends(get_db)):
    res = await db.execute(
        select(ModifierSet).where(
            ModifierSet.portal_id == portal_id,
            ModifierSet.is_global.is_(False),
        )
    )
    row = res.scalars().first()
    check_not_found(row, "Modifier set for portal", portal_id)
    return _to_out(row)

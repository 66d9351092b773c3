from sqlalchemy import Column, Boolean, ForeignKey, JSON
from app.models.base import BaseModel


class ModifierSet(BaseModel):
    __tablename__ = "modifier_sets"

    portal_id = Column(ForeignKey("portals.id"), nullable=True, index=True)
    is_global = Column(Boolean, default=False, nullable=False, index=True)

    # ModifierSetConfig serialised with model_dump(mode="json")
    document = Column(JSON, nullable=False, default=dict)

from sqlalchemy import Column, String, JSON
from app.models.base import BaseModel


class Portal(BaseModel):
    __tablename__ = "portals"

    company_name = Column(String(200), nullable=False)
    status = Column(String(20), nullable=False, default="active")
    options = Column(JSON, nullable=False, default=dict)
    custom_rates = Column(JSON, nullable=False, default=list)
    jk_mileage_rates = Column(JSON, nullable=False, default=dict)

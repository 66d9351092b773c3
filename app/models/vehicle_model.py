from sqlalchemy import Column, String, UniqueConstraint
from app.models.base import BaseModel


class VehicleModel(BaseModel):
    __tablename__ = "vehicle_models"
    __table_args__ = (UniqueConstraint("make", "model", name="uq_vehicle_models_make_model"),)

    make = Column(String(80), nullable=False, index=True)
    model = Column(String(120), nullable=False)
    pricing_class = Column(String(40), nullable=False)

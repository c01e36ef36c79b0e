from sqlalchemy import Column, String, DateTime, JSON
from app.core.database import Base
from app.models.base import TimestampMixin


class DataPlanCache(Base, TimestampMixin):
    __tablename__ = "data_plan_cache"

    provider = Column(String(32), primary_key=True)
    plans = Column(JSON, nullable=False, default=list)
    last_updated = Column(DateTime(timezone=True), nullable=False)

from datetime import datetime
from sqlalchemy import Column, Integer, String, Date, DateTime, Text, ForeignKey, Numeric, JSON
from core.db import Base


class DistributionTrip(Base):
    __tablename__ = "distribution_trips"
    id = Column(Integer, primary_key=True, index=True)
    trip_number = Column(String(30), unique=True, nullable=False, index=True)  # TRIP-YYYYMMDD-XXXX
    trip_date = Column(Date, nullable=False, index=True)
    distributor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    distributor_name = Column(String(100), nullable=False)
    planned_start_time = Column(String(8), nullable=False, default="08:00:00")
    order_ids = Column(JSON, nullable=False, default=list)
    total_orders = Column(Integer, nullable=False, default=0)
    total_stores = Column(Integer, nullable=False, default=0)
    total_amount_eur = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    total_amount_syp = Column(Numeric(16, 2, asdecimal=False), nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pending", index=True)
    notes = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

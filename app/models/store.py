from datetime import datetime
from typing import Optional
from sqlalchemy import Column, Integer, String, Float, DateTime, Text, ForeignKey, Numeric
from sqlalchemy.orm import relationship
from core.db import Base
from core.geo import haversine_km


class Store(Base):
    __tablename__ = "stores"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    owner_name = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    store_type = Column(String(20), nullable=False, default="retail")
    category = Column(String(20), nullable=False, default="grocery")
    size_category = Column(String(20), nullable=False, default="small")
    payment_terms = Column(String(20), nullable=False, default="cash")
    status = Column(String(20), nullable=False, default="active", index=True)

    credit_limit_eur = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    credit_limit_syp = Column(Numeric(16, 2, asdecimal=False), nullable=False, default=0)
    current_balance_eur = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    current_balance_syp = Column(Numeric(16, 2, asdecimal=False), nullable=False, default=0)
    total_purchases_eur = Column(Numeric(14, 2, asdecimal=False), nullable=False, default=0)
    total_purchases_syp = Column(Numeric(18, 2, asdecimal=False), nullable=False, default=0)
    total_orders = Column(Integer, nullable=False, default=0)
    completed_orders = Column(Integer, nullable=False, default=0)
    last_order_date = Column(DateTime, nullable=True)

    delivery_zone = Column(String(50), nullable=True)
    preferred_delivery_time = Column(String(20), nullable=True)
    assigned_distributor_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    special_instructions = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    assigned_distributor = relationship("User", foreign_keys=[assigned_distributor_id], lazy="selectin")

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def distance_to(self, latitude: float, longitude: float) -> Optional[float]:
        if not self.has_location:
            return None
        return haversine_km(self.latitude, self.longitude, latitude, longitude)

    @property
    def is_within_credit_limit(self) -> bool:
        """No limit set means unlimited credit."""
        if not self.credit_limit_eur:
            return True
        return (self.current_balance_eur or 0) <= self.credit_limit_eur

from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, DateTime
from core.db import Base


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String, nullable=False)  # bcrypt hash
    full_name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=True)
    role = Column(String(20), nullable=False, default="distributor")  # admin | manager | distributor | viewer
    status = Column(String(20), nullable=False, default="active")
    last_login = Column(DateTime, nullable=True)

    # Distributor profile, read by the scheduling engine
    delivery_zone = Column(String(50), nullable=True)  # None or 'all' serve every zone
    performance_rating = Column(Float, nullable=False, default=85)
    total_deliveries = Column(Integer, nullable=False, default=0)
    successful_deliveries = Column(Integer, nullable=False, default=0)
    max_daily_capacity = Column(Integer, nullable=False, default=5)
    home_latitude = Column(Float, nullable=True)
    home_longitude = Column(Float, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def success_rate(self) -> float:
        """Percentage of successful deliveries, 85 when there is no history yet"""
        if not self.total_deliveries:
            return 85.0
        return (self.successful_deliveries or 0) / self.total_deliveries * 100

from datetime import datetime
from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean, Text, ForeignKey, Numeric
from core.db import Base


class Product(Base):
    __tablename__ = "products"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String(20), nullable=False, default="bread", index=True)
    unit = Column(String(20), nullable=False)

    price_eur = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    price_syp = Column(Numeric(16, 2, asdecimal=False), nullable=False, default=0)
    cost_eur = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    cost_syp = Column(Numeric(16, 2, asdecimal=False), nullable=False, default=0)

    stock_quantity = Column(Integer, nullable=False, default=0)
    minimum_stock = Column(Integer, nullable=False, default=0)
    barcode = Column(String(50), unique=True, nullable=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    status = Column(String(20), nullable=False, default="active", index=True)

    total_sold = Column(Integer, nullable=False, default=0)
    total_revenue_eur = Column(Numeric(14, 2, asdecimal=False), nullable=False, default=0)
    total_revenue_syp = Column(Numeric(18, 2, asdecimal=False), nullable=False, default=0)

    expiry_date = Column(Date, nullable=True)
    shelf_life_days = Column(Integer, nullable=True)
    weight_grams = Column(Integer, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    @property
    def is_low_stock(self) -> bool:
        return (self.stock_quantity or 0) <= (self.minimum_stock or 0)

    @property
    def profit_margin_eur(self) -> float:
        return round((self.price_eur or 0) - (self.cost_eur or 0), 2)

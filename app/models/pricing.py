from datetime import date, datetime
from typing import Optional
from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean, Text, ForeignKey, Numeric, JSON
from core.db import Base


class PricingRule(Base):
    __tablename__ = "pricing_rules"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    rule_type = Column(String(30), nullable=False)  # percentage_discount | fixed_discount | fixed_price
    value = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    min_quantity = Column(Integer, nullable=False, default=1)
    product_ids = Column(JSON, nullable=True)  # None matches every product
    store_ids = Column(JSON, nullable=True)
    category = Column(String(20), nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    priority = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    exclusive = Column(Boolean, nullable=False, default=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    def applies_to(
        self,
        product_id: int,
        category: str,
        quantity: int,
        store_id: Optional[int],
        on_date: date,
    ) -> bool:
        if not self.is_active:
            return False
        if self.start_date and on_date < self.start_date:
            return False
        if self.end_date and on_date > self.end_date:
            return False
        if quantity < (self.min_quantity or 1):
            return False
        if self.product_ids and product_id not in self.product_ids:
            return False
        if self.category and self.category != category:
            return False
        if self.store_ids and store_id not in self.store_ids:
            return False
        return True


class PriceHistory(Base):
    __tablename__ = "price_history"
    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    old_price_eur = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    new_price_eur = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    old_price_syp = Column(Numeric(16, 2, asdecimal=False), nullable=False, default=0)
    new_price_syp = Column(Numeric(16, 2, asdecimal=False), nullable=False, default=0)
    change_reason = Column(String(255), nullable=True)
    changed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now, index=True)

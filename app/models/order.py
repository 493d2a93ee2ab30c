from datetime import datetime
from sqlalchemy import Column, Integer, String, Date, DateTime, Text, ForeignKey, Numeric
from sqlalchemy.orm import relationship
from core.db import Base


class Order(Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(30), unique=True, nullable=False, index=True)  # ORD-YYYYMMDD-NNNN
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False, index=True)
    store_name = Column(String(100), nullable=False)
    order_date = Column(Date, nullable=False)
    delivery_date = Column(Date, nullable=True)

    total_amount_eur = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    total_amount_syp = Column(Numeric(16, 2, asdecimal=False), nullable=False, default=0)
    discount_amount_eur = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    discount_amount_syp = Column(Numeric(16, 2, asdecimal=False), nullable=False, default=0)
    final_amount_eur = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    final_amount_syp = Column(Numeric(16, 2, asdecimal=False), nullable=False, default=0)
    total_cost_eur = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    total_cost_syp = Column(Numeric(16, 2, asdecimal=False), nullable=False, default=0)
    commission_eur = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    commission_syp = Column(Numeric(16, 2, asdecimal=False), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="EUR")

    status = Column(String(20), nullable=False, default="draft", index=True)
    payment_status = Column(String(20), nullable=False, default="pending")
    priority = Column(String(20), nullable=False, default="normal")
    scheduling_status = Column(String(20), nullable=False, default="unscheduled")
    assigned_distributor_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    notes = Column(Text, nullable=True)
    special_instructions = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    created_by_name = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    store = relationship("Store", lazy="selectin")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id",
    )


class OrderItem(Base):
    __tablename__ = "order_items"
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    product_name = Column(String(100), nullable=False)
    unit = Column(String(20), nullable=True)
    quantity = Column(Integer, nullable=False)
    gift_quantity = Column(Integer, nullable=False, default=0)

    unit_price_eur = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    unit_price_syp = Column(Numeric(16, 2, asdecimal=False), nullable=False, default=0)
    total_price_eur = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    total_price_syp = Column(Numeric(16, 2, asdecimal=False), nullable=False, default=0)
    discount_amount_eur = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    discount_amount_syp = Column(Numeric(16, 2, asdecimal=False), nullable=False, default=0)
    final_price_eur = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    final_price_syp = Column(Numeric(16, 2, asdecimal=False), nullable=False, default=0)
    notes = Column(Text, nullable=True)

    order = relationship("Order", back_populates="items")

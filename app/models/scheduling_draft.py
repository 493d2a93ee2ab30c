from datetime import datetime
from sqlalchemy import Column, Integer, String, Date, DateTime, Text, ForeignKey, JSON
from sqlalchemy.orm import relationship
from core.db import Base


class SchedulingDraft(Base):
    """Scheduling suggestion for one order, waiting for an admin decision"""
    __tablename__ = "scheduling_drafts"
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), unique=True, nullable=False)
    suggested_distributor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    suggested_distributor_name = Column(String(100), nullable=False)
    confidence_score = Column(Integer, nullable=False)  # 0..100
    suggested_delivery_date = Column(Date, nullable=False)
    suggested_priority = Column(String(20), nullable=False, default="normal")

    reasoning = Column(JSON, nullable=True)
    alternative_suggestions = Column(JSON, nullable=True)
    route_optimization = Column(JSON, nullable=True)
    estimated_delivery_time = Column(String(8), nullable=True)  # HH:MM:SS
    estimated_duration = Column(Integer, nullable=True)  # minutes

    status = Column(String(20), nullable=False, default="pending_review", index=True)
    admin_notes = Column(Text, nullable=True)
    modifications = Column(JSON, nullable=True)
    approved_distributor_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_delivery_date = Column(Date, nullable=True)
    approved_priority = Column(String(20), nullable=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    order = relationship("Order", lazy="selectin")
    suggested_distributor = relationship("User", foreign_keys=[suggested_distributor_id], lazy="selectin")

    @property
    def reasoning_text(self) -> str:
        if not self.reasoning:
            return "لا توجد معلومات"

        r = self.reasoning
        reasons = []
        if r.get("zone_match"):
            reasons.append("يخدم المنطقة المطلوبة")
        if r.get("capacity_available"):
            reasons.append("لديه سعة متاحة")
        if r.get("performance_score"):
            reasons.append(f"أداء ممتاز ({r['performance_score']}%)")
        if r.get("distance_optimal"):
            reasons.append("أقرب مسار ممكن")
        if r.get("experience"):
            reasons.append("خبرة في التعامل مع هذا المحل")

        return "، ".join(reasons) if reasons else "تحليل النظام الذكي"

    @property
    def is_pending(self) -> bool:
        return self.status == "pending_review"

from datetime import date, datetime, timedelta
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Boolean, Text, ForeignKey, Numeric
from sqlalchemy.orm import relationship
from core.db import Base

VEHICLE_TYPE_INFO = {
    "car": {"label": "سيارة", "icon": "🚗", "capacity": "صغيرة", "description": "مناسبة للتوزيع السريع والمساحات الضيقة"},
    "van": {"label": "فان", "icon": "🚐", "capacity": "متوسطة", "description": "الخيار الأمثل لتوزيع المخبوزات"},
    "truck": {"label": "شاحنة", "icon": "🚚", "capacity": "كبيرة", "description": "للطلبات الكبيرة والمسافات الطويلة"},
    "motorcycle": {"label": "دراجة نارية", "icon": "🏍️", "capacity": "محدودة جداً", "description": "للتوصيل السريع والطرق الضيقة"},
}

VEHICLE_STATUS_INFO = {
    "active": {"label": "نشطة", "description": "جاهزة للعمل"},
    "maintenance": {"label": "صيانة", "description": "تحت الصيانة"},
    "inactive": {"label": "غير نشطة", "description": "متوقفة مؤقتاً"},
    "retired": {"label": "متقاعدة", "description": "خارج الخدمة نهائياً"},
}

FUEL_TYPE_INFO = {
    "gasoline": {"label": "بنزين"},
    "diesel": {"label": "ديزل"},
    "electric": {"label": "كهربائي"},
    "hybrid": {"label": "هجين"},
}

DEFAULT_LOAD_CAPACITY_EUR = 1000.0
EXPIRY_WARNING_DAYS = 30


def _expires_within(expiry: date, days: int) -> bool:
    return expiry is not None and expiry <= date.today() + timedelta(days=days)


class Vehicle(Base):
    __tablename__ = "vehicles"
    id = Column(Integer, primary_key=True, index=True)
    vehicle_type = Column(String(20), nullable=False, default="van")
    vehicle_model = Column(String(100), nullable=False)
    vehicle_plate = Column(String(20), unique=True, nullable=False, index=True)
    vehicle_year = Column(Integer, nullable=False)
    vehicle_color = Column(String(30), nullable=True)
    status = Column(String(20), nullable=False, default="active", index=True)
    assigned_distributor_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    insurance_company = Column(String(100), nullable=True)
    insurance_expiry_date = Column(Date, nullable=True)
    registration_expiry_date = Column(Date, nullable=True)
    fuel_type = Column(String(20), nullable=False, default="gasoline")
    transmission_type = Column(String(20), nullable=False, default="manual")
    engine_capacity = Column(Float, nullable=True)

    last_maintenance_date = Column(Date, nullable=True)
    last_maintenance_km = Column(Integer, nullable=True)
    next_maintenance_km = Column(Integer, nullable=True)
    current_km = Column(Integer, nullable=True, default=0)

    purchase_date = Column(Date, nullable=True)
    purchase_price_eur = Column(Numeric(12, 2, asdecimal=False), nullable=True)
    purchase_price_syp = Column(Numeric(16, 2, asdecimal=False), nullable=True)
    load_capacity_eur = Column(Numeric(12, 2, asdecimal=False), nullable=True)  # order value it can carry

    notes = Column(Text, nullable=True)
    is_company_owned = Column(Boolean, nullable=False, default=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_by_name = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    assigned_distributor = relationship("User", foreign_keys=[assigned_distributor_id], lazy="selectin")

    @property
    def vehicle_type_info(self) -> dict:
        return VEHICLE_TYPE_INFO.get(
            self.vehicle_type,
            {"label": self.vehicle_type, "icon": "🚙", "capacity": "غير محدد", "description": "نوع مركبة غير معروف"},
        )

    @property
    def status_info(self) -> dict:
        return VEHICLE_STATUS_INFO.get(self.status, {"label": self.status, "description": "حالة غير معروفة"})

    @property
    def fuel_type_info(self) -> dict:
        return FUEL_TYPE_INFO.get(self.fuel_type, {"label": self.fuel_type})

    @property
    def is_maintenance_due(self) -> bool:
        if self.current_km is None or self.next_maintenance_km is None:
            return False
        return self.current_km >= self.next_maintenance_km

    @property
    def age(self) -> int:
        return date.today().year - self.vehicle_year

    @property
    def can_be_assigned(self) -> bool:
        return self.status == "active" and self.assigned_distributor_id is None

    @property
    def effective_load_capacity_eur(self) -> float:
        return float(self.load_capacity_eur or DEFAULT_LOAD_CAPACITY_EUR)

    @property
    def is_insurance_expiring(self) -> bool:
        return _expires_within(self.insurance_expiry_date, EXPIRY_WARNING_DAYS)

    @property
    def is_registration_expiring(self) -> bool:
        return _expires_within(self.registration_expiry_date, EXPIRY_WARNING_DAYS)

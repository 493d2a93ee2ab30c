from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    DISTRIBUTOR = "distributor"
    VIEWER = "viewer"


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    PENDING = "pending"


class VehicleType(str, Enum):
    CAR = "car"
    VAN = "van"
    TRUCK = "truck"
    MOTORCYCLE = "motorcycle"


class VehicleStatus(str, Enum):
    ACTIVE = "active"
    MAINTENANCE = "maintenance"
    INACTIVE = "inactive"
    RETIRED = "retired"


class FuelType(str, Enum):
    GASOLINE = "gasoline"
    DIESEL = "diesel"
    ELECTRIC = "electric"
    HYBRID = "hybrid"


class TransmissionType(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"


class StoreType(str, Enum):
    RETAIL = "retail"
    WHOLESALE = "wholesale"
    RESTAURANT = "restaurant"


class StoreCategory(str, Enum):
    SUPERMARKET = "supermarket"
    GROCERY = "grocery"
    CAFE = "cafe"
    RESTAURANT = "restaurant"
    BAKERY = "bakery"
    HOTEL = "hotel"
    OTHER = "other"


class StoreSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    ENTERPRISE = "enterprise"


class PaymentTerms(str, Enum):
    CASH = "cash"
    CREDIT_7_DAYS = "credit_7_days"
    CREDIT_15_DAYS = "credit_15_days"
    CREDIT_30_DAYS = "credit_30_days"


class StoreStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class ProductCategory(str, Enum):
    BREAD = "bread"
    PASTRY = "pastry"
    CAKE = "cake"
    DRINK = "drink"
    SNACK = "snack"
    SEASONAL = "seasonal"
    OTHER = "other"


class ProductStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DISCONTINUED = "discontinued"


class Currency(str, Enum):
    EUR = "EUR"
    SYP = "SYP"


class OrderStatus(str, Enum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"


class Priority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class SchedulingStatus(str, Enum):
    UNSCHEDULED = "unscheduled"
    PENDING_REVIEW = "pending_review"
    SCHEDULED = "scheduled"
    MANUAL_REQUIRED = "manual_required"


class DraftStatus(str, Enum):
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    MODIFIED = "modified"


class TripStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PricingRuleType(str, Enum):
    PERCENTAGE_DISCOUNT = "percentage_discount"
    FIXED_DISCOUNT = "fixed_discount"
    FIXED_PRICE = "fixed_price"


FINAL_ORDER_STATUSES = (OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value)

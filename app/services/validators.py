from typing import Optional

from services.exceptions import BusinessRuleError, InvalidStateTransitionError

ORDER_STATUS_TRANSITIONS = {
    "draft": {"confirmed", "cancelled"},
    "confirmed": {"in_progress", "cancelled"},
    "in_progress": {"delivered", "cancelled"},
    "delivered": set(),
    "cancelled": set(),
}

TRIP_STATUS_TRANSITIONS = {
    "pending": {"in_progress", "cancelled"},
    "in_progress": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}


class BusinessRules:
    MIN_SEARCH_LENGTH = 2
    MAX_PAGE_SIZE = 100
    COMMISSION_RATE = 0.10

    @staticmethod
    def validate_order_transition(current: str, new: str):
        """Same-status updates are accepted as no-ops."""
        if current == new:
            return
        if new not in ORDER_STATUS_TRANSITIONS.get(current, set()):
            raise InvalidStateTransitionError(f"لا يمكن تغيير حالة الطلب من {current} إلى {new}")

    @staticmethod
    def validate_trip_transition(current: str, new: str):
        if current == new:
            return
        if new not in TRIP_STATUS_TRANSITIONS.get(current, set()):
            raise InvalidStateTransitionError(f"لا يمكن تغيير حالة الرحلة من {current} إلى {new}")

    @staticmethod
    def validate_coordinates(latitude: Optional[float], longitude: Optional[float]):
        if latitude is not None and not -90 <= latitude <= 90:
            raise BusinessRuleError("خط العرض يجب أن يكون بين -90 و 90")
        if longitude is not None and not -180 <= longitude <= 180:
            raise BusinessRuleError("خط الطول يجب أن يكون بين -180 و 180")

    @staticmethod
    def validate_search_term(term: str):
        if not term or len(term.strip()) < BusinessRules.MIN_SEARCH_LENGTH:
            raise BusinessRuleError("يجب أن يكون البحث أكثر من حرفين")

    @staticmethod
    def clamp_pagination(page: int, limit: int) -> tuple[int, int]:
        page = max(int(page or 1), 1)
        limit = min(max(int(limit or 10), 1), BusinessRules.MAX_PAGE_SIZE)
        return page, limit

    @staticmethod
    def commission(total_eur: float, cost_eur: float) -> float:
        """Commission is a share of the order margin, never negative."""
        return round(max(total_eur - cost_eur, 0) * BusinessRules.COMMISSION_RATE, 2)

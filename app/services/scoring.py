"""
Distributor scoring for order scheduling.

Pure functions: callers load the order, store and distributor facts and this
module turns them into a ranked list of candidates with a confidence score.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional

from core.geo import haversine_km

WEIGHTS = {
    "location_score": 0.25,
    "availability_score": 0.20,
    "performance_score": 0.20,
    "experience_score": 0.15,
    "capacity_score": 0.15,
    "priority_match_score": 0.05,
}

HIGH_VALUE_EUR = 500
MEDIUM_VALUE_EUR = 200
DEFAULT_ZONE = "default"
DEFAULT_DAILY_CAPACITY = 5
DEFAULT_LOAD_CAPACITY_EUR = 1000
DEFAULT_RATING = 85
ALTERNATIVES = 2


@dataclass
class OrderRequirements:
    store_id: int
    order_value: float
    priority: str
    complexity: str
    delivery_date: date
    days_until_delivery: int
    delivery_zone: str
    store_distributor_id: Optional[int] = None
    store_latitude: Optional[float] = None
    store_longitude: Optional[float] = None
    preferred_delivery_time: Optional[str] = None


@dataclass
class DistributorCandidate:
    id: int
    full_name: str
    delivery_zone: Optional[str]
    performance_rating: Optional[float]
    total_deliveries: int
    success_rate: float
    max_daily_capacity: Optional[int]
    trips_on_date: int = 0
    store_deliveries: int = 0
    load_capacity_eur: Optional[float] = None
    home_latitude: Optional[float] = None
    home_longitude: Optional[float] = None


@dataclass
class ScoredCandidate:
    distributor: DistributorCandidate
    confidence_score: int
    scores: Dict[str, int]
    reasoning: Dict = field(default_factory=dict)

    def as_alternative(self) -> Dict:
        return {
            "distributor_id": self.distributor.id,
            "distributor_name": self.distributor.full_name,
            "confidence_score": self.confidence_score,
            "reasoning": self.reasoning,
        }


def analyze_requirements(
    store_id: int,
    order_value: float,
    order_date: date,
    delivery_date: Optional[date],
    delivery_zone: Optional[str],
    store_distributor_id: Optional[int] = None,
    store_latitude: Optional[float] = None,
    store_longitude: Optional[float] = None,
    preferred_delivery_time: Optional[str] = None,
    order_priority: Optional[str] = None,
    today: Optional[date] = None,
) -> OrderRequirements:
    """Derive priority and complexity from order value and how soon it is due."""
    today = today or date.today()
    # low is raised to normal
    priority = order_priority if order_priority in ("high", "urgent") else "normal"
    complexity = "low"

    if order_value > HIGH_VALUE_EUR:
        complexity = "high"
        if priority != "urgent":
            priority = "high"
    elif order_value > MEDIUM_VALUE_EUR:
        complexity = "medium"

    target = delivery_date or order_date
    days_until = (target - today).days
    if days_until <= 1:
        priority = "urgent"

    return OrderRequirements(
        store_id=store_id,
        order_value=order_value,
        priority=priority,
        complexity=complexity,
        delivery_date=target,
        days_until_delivery=days_until,
        delivery_zone=delivery_zone or DEFAULT_ZONE,
        store_distributor_id=store_distributor_id,
        store_latitude=store_latitude,
        store_longitude=store_longitude,
        preferred_delivery_time=preferred_delivery_time,
    )


def location_score(req: OrderRequirements, d: DistributorCandidate) -> int:
    score = 50
    if d.delivery_zone == req.delivery_zone or d.delivery_zone == "all":
        score += 30
    if req.store_distributor_id == d.id:
        score += 20

    if None not in (req.store_latitude, req.store_longitude, d.home_latitude, d.home_longitude):
        distance = haversine_km(req.store_latitude, req.store_longitude, d.home_latitude, d.home_longitude)
        if distance < 5:
            score += 15
        elif distance < 10:
            score += 10
        elif distance < 20:
            score += 5

    return min(score, 100)


def availability_score(d: DistributorCandidate) -> int:
    capacity = d.max_daily_capacity or DEFAULT_DAILY_CAPACITY
    load = d.trips_on_date or 0
    if load == 0:
        return 100
    if load >= capacity:
        return 0
    return round((1 - load / capacity) * 100)


def performance_score(d: DistributorCandidate) -> int:
    rating = d.performance_rating or DEFAULT_RATING
    success_rate = d.success_rate or DEFAULT_RATING
    return round(rating * 0.6 + success_rate * 0.4)


def experience_score(d: DistributorCandidate) -> int:
    score = 50
    if d.store_deliveries > 0:
        score += min(d.store_deliveries * 5, 30)

    total = d.total_deliveries or 0
    if total > 100:
        score += 20
    elif total > 50:
        score += 15
    elif total > 20:
        score += 10
    elif total > 5:
        score += 5

    return min(score, 100)


def capacity_score(req: OrderRequirements, d: DistributorCandidate) -> int:
    capacity = d.load_capacity_eur or DEFAULT_LOAD_CAPACITY_EUR
    if req.order_value > capacity * 0.8:
        return 40
    if req.order_value > capacity * 0.6:
        return 60
    if req.order_value > capacity * 0.4:
        return 80
    return 100


def priority_match_score(req: OrderRequirements, d: DistributorCandidate) -> int:
    rating = d.performance_rating or DEFAULT_RATING
    if req.priority == "urgent" and rating > 90:
        return 100
    if req.priority == "high" and rating > 85:
        return 90
    return 80


def build_reasoning(scores: Dict[str, int]) -> Dict:
    reasoning = {
        "zone_match": scores["location_score"] > 70,
        "capacity_available": scores["availability_score"] > 60,
        "performance_score": scores["performance_score"],
        "distance_optimal": scores["location_score"] > 80,
        "experience": scores["experience_score"] > 70,
        "main_factors": [],
    }
    if scores["location_score"] > 80:
        reasoning["main_factors"].append("موقع مثالي للتسليم")
    if scores["availability_score"] > 80:
        reasoning["main_factors"].append("متاح بشكل كامل")
    if scores["performance_score"] > 90:
        reasoning["main_factors"].append("أداء ممتاز")
    if scores["experience_score"] > 80:
        reasoning["main_factors"].append("خبرة سابقة مع المحل")
    return reasoning


def score_candidate(req: OrderRequirements, d: DistributorCandidate) -> ScoredCandidate:
    scores = {
        "location_score": location_score(req, d),
        "availability_score": availability_score(d),
        "performance_score": performance_score(d),
        "experience_score": experience_score(d),
        "capacity_score": capacity_score(req, d),
        "priority_match_score": priority_match_score(req, d),
    }
    weighted = sum(scores[key] * weight for key, weight in WEIGHTS.items())
    return ScoredCandidate(
        distributor=d,
        confidence_score=min(round(weighted), 100),
        scores=scores,
        reasoning=build_reasoning(scores),
    )


def rank_candidates(req: OrderRequirements, candidates: List[DistributorCandidate]) -> List[ScoredCandidate]:
    """Highest confidence first; ties keep the incoming order."""
    scored = [score_candidate(req, d) for d in candidates]
    return sorted(scored, key=lambda s: s.confidence_score, reverse=True)


def is_zone_eligible(req: OrderRequirements, d: DistributorCandidate) -> bool:
    return d.delivery_zone in (None, "all", req.delivery_zone)


def has_capacity(d: DistributorCandidate) -> bool:
    return (d.trips_on_date or 0) < (d.max_daily_capacity or DEFAULT_DAILY_CAPACITY)


def plan_logistics(req: OrderRequirements, order_date: date, best: ScoredCandidate) -> Dict:
    """Suggested date is the requested one, pushed a day when it falls on the order date."""
    suggested = req.delivery_date
    if suggested == order_date:
        suggested = suggested + timedelta(days=1)

    d = best.distributor
    route = {"suggested_route": "سيتم تحديده لاحقاً", "estimated_distance": "غير محدد"}
    if None not in (req.store_latitude, req.store_longitude, d.home_latitude, d.home_longitude):
        distance = haversine_km(req.store_latitude, req.store_longitude, d.home_latitude, d.home_longitude)
        route = {
            "suggested_route": "الطريق الرئيسي",
            "estimated_distance_km": round(distance, 1),
            # 40 km/h average in town
            "estimated_travel_minutes": max(round(distance / 40 * 60), 5),
        }

    return {
        "suggested_delivery_date": suggested,
        "estimated_delivery_time": "10:00:00",
        "estimated_duration": 30,
        "route_optimization": route,
    }

# Importing here registers every table on Base.metadata
from .user import User
from .vehicle import Vehicle
from .store import Store
from .product import Product
from .order import Order, OrderItem
from .scheduling_draft import SchedulingDraft
from .distribution_trip import DistributionTrip
from .pricing import PricingRule, PriceHistory

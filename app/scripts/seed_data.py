import os
import sys
import asyncio
import logging

# Run as a script: make the app root importable
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from auth.passwords_handler import hash_password_async
from core.currency import eur_to_syp
from core.db import AsyncSessionLocal, init_models
from core.logging import setup_logging
from models import Product, Store, User, Vehicle

logger = logging.getLogger("seed")

DEFAULT_PASSWORD = os.getenv("SEED_PASSWORD", "admin123")


async def seed():
    await init_models()
    password = await hash_password_async(DEFAULT_PASSWORD)

    async with AsyncSessionLocal() as db:
        admin = User(username="admin", email="admin@bakery.local", password=password,
                     full_name="مدير النظام", role="admin")
        manager = User(username="manager", email="manager@bakery.local", password=password,
                       full_name="مدير التوزيع", role="manager")
        distributors = [
            User(username="dist_north", email="north@bakery.local", password=password,
                 full_name="أحمد الشمالي", role="distributor", delivery_zone="north",
                 performance_rating=92, home_latitude=33.53, home_longitude=36.30),
            User(username="dist_south", email="south@bakery.local", password=password,
                 full_name="محمد الجنوبي", role="distributor", delivery_zone="south",
                 performance_rating=88, home_latitude=33.48, home_longitude=36.28),
            User(username="dist_all", email="all@bakery.local", password=password,
                 full_name="خالد المتنقل", role="distributor", delivery_zone="all",
                 performance_rating=80, max_daily_capacity=8),
        ]
        db.add_all([admin, manager, *distributors])
        await db.flush()

        db.add_all([
            Vehicle(vehicle_type="van", vehicle_model="Hyundai H100", vehicle_plate="DAM-1001",
                    vehicle_year=2019, load_capacity_eur=1500, assigned_distributor_id=distributors[0].id,
                    created_by=admin.id, created_by_name=admin.full_name),
            Vehicle(vehicle_type="car", vehicle_model="Kia Picanto", vehicle_plate="DAM-1002",
                    vehicle_year=2021, load_capacity_eur=600, assigned_distributor_id=distributors[1].id,
                    created_by=admin.id, created_by_name=admin.full_name),
            Vehicle(vehicle_type="truck", vehicle_model="Isuzu NPR", vehicle_plate="DAM-1003",
                    vehicle_year=2017, load_capacity_eur=4000,
                    created_by=admin.id, created_by_name=admin.full_name),
        ])

        db.add_all([
            Store(name="سوبرماركت الشام", owner_name="سامر", phone="+963911000001",
                  latitude=33.52, longitude=36.29, category="supermarket", delivery_zone="north",
                  assigned_distributor_id=distributors[0].id, created_by=admin.id),
            Store(name="مقهى الياسمين", owner_name="رنا", phone="+963911000002",
                  latitude=33.49, longitude=36.27, category="cafe", delivery_zone="south", created_by=admin.id),
            Store(name="بقالية الحي", owner_name="وليد", phone="+963911000003",
                  category="grocery", created_by=admin.id),
        ])

        for name, category, unit, price, cost in (
            ("خبز عربي", "bread", "ربطة", 0.50, 0.30),
            ("كرواسون", "pastry", "قطعة", 0.80, 0.40),
            ("كعكة شوكولا", "cake", "قطعة", 12.00, 7.00),
            ("معمول", "seasonal", "كيلو", 9.50, 5.00),
        ):
            db.add(Product(
                name=name, category=category, unit=unit,
                price_eur=price, price_syp=eur_to_syp(price),
                cost_eur=cost, cost_syp=eur_to_syp(cost),
                stock_quantity=200, minimum_stock=20, created_by=admin.id,
            ))

        await db.commit()
        logger.info("Seed data inserted")


if __name__ == "__main__":
    setup_logging()
    asyncio.run(seed())

#!/usr/bin/env python3
"""Setup script for the PlayZone booking API."""

import asyncio
import logging
import os
import sys
from datetime import date, time
from decimal import Decimal
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command
from alembic.config import Config
from sqlalchemy import func, select

from playzone.core.config import settings
from playzone.core.database import async_session_factory, close_db, init_db
from playzone.models import (
    DiscountVoucher,
    HolidayCalendar,
    Package,
    TimeSlot,
    User,
    UserRole,
    default_permissions,
)
from playzone.services.identity_service import hash_password

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PACKAGES = [
    ("Walk-in Play", "walk_in", "299.00", 2, 1, ["2 hours of play", "Access to all play areas"]),
    ("Weekend Special", "weekend", "399.00", 3, 1, ["3 hours of play", "Weekend activities", "Snack included"]),
    ("Monthly Pass", "monthly", "2999.00", 720, 1, ["Unlimited visits for 30 days", "Priority slot booking"]),
    ("Birthday Party", "birthday", "4999.00", 3, 15, ["Private party area", "Decorations", "Up to 15 children"]),
]

HOLIDAYS = [
    (1, 26, "Republic Day"),
    (8, 15, "Independence Day"),
    (10, 2, "Gandhi Jayanti"),
    (12, 25, "Christmas"),
    (1, 1, "New Year's Day"),
]


async def setup_database():
    """Setup the database with initial schema."""
    logger.info("Setting up database...")

    try:
        if settings.database_url.startswith("sqlite"):
            # Migrations target PostgreSQL; SQLite gets the schema from the models
            await init_db()
            logger.info("SQLite schema created from models")
        else:
            alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
            alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))

            logger.info("Running database migrations...")
            await asyncio.to_thread(command.upgrade, alembic_cfg, "head")
            logger.info("Database migrations completed")

        logger.info("Database setup completed successfully!")

    except Exception as e:
        logger.error(f"Database setup failed: {e}")
        raise


async def create_sample_data():
    """Create the standard packages, slots, holidays and the welcome voucher."""
    logger.info("Creating sample data...")

    async with async_session_factory() as db:
        try:
            existing = (await db.execute(select(func.count(Package.id)))).scalar_one()
            if existing > 0:
                logger.info("Sample data already exists, skipping...")
                return

            for name, package_type, price, duration, max_children, features in PACKAGES:
                db.add(Package(
                    name=name,
                    type=package_type,
                    price=Decimal(price),
                    duration=duration,
                    max_children=max_children,
                    features=features,
                ))

            # Two-hour slots from 10:00 to 20:00
            for hour in range(10, 20, 2):
                db.add(TimeSlot(
                    start_time=time(hour, 0),
                    end_time=time(hour + 2, 0),
                    max_capacity=settings.default_slot_capacity,
                ))

            year = date.today().year
            for month, day, name in HOLIDAYS:
                holiday_year = year + 1 if (month, day) == (1, 1) else year
                db.add(HolidayCalendar(holiday_date=date(holiday_year, month, day), name=name))

            db.add(DiscountVoucher(
                code="WELCOME20",
                discount_type="percentage",
                discount_value=Decimal("20"),
                min_amount=Decimal("200"),
                max_discount=Decimal("100"),
                valid_from=date(year, 1, 1),
                valid_till=date(year, 12, 31),
            ))

            await db.commit()
            logger.info("Sample data created successfully!")

        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to create sample data: {e}")
            raise


async def create_admin():
    """Create the first admin account from PLAYZONE_ADMIN_EMAIL and PLAYZONE_ADMIN_PASSWORD."""
    email = os.environ.get("PLAYZONE_ADMIN_EMAIL")
    password = os.environ.get("PLAYZONE_ADMIN_PASSWORD")
    if not email or not password:
        logger.info("PLAYZONE_ADMIN_EMAIL/PLAYZONE_ADMIN_PASSWORD not set, skipping admin account")
        return

    async with async_session_factory() as db:
        existing = (await db.execute(select(User).where(User.email == email.lower()))).scalar_one_or_none()
        if existing is not None:
            logger.info(f"Admin account {email} already exists, skipping...")
            return

        db.add(User(
            email=email.lower(),
            first_name="Admin",
            role=UserRole.ADMIN.value,
            is_admin=True,
            permissions=default_permissions(UserRole.ADMIN),
            password_hash=hash_password(password),
            registration_source="setup",
        ))
        await db.commit()
        logger.info(f"Admin account {email} created")


async def main():
    """Main setup function."""
    logger.info("Starting PlayZone booking API setup...")

    await setup_database()
    await create_sample_data()
    await create_admin()
    await close_db()

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn playzone.main:app --reload")


if __name__ == "__main__":
    asyncio.run(main())

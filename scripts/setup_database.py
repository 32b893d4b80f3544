#!/usr/bin/env python3
"""
Clinic Database Setup Script
============================

Creates the database tables and an initial admin account.
Run this script before starting the FastAPI server.

Usage:
    python scripts/setup_database.py [--check-only] [--admin-email EMAIL]

The admin password is read from ADMIN_PASSWORD or prompted for.
"""

import argparse
import getpass
import logging
import os
import sys

from sqlalchemy import inspect, text

from clinic.db.session import engine, SessionLocal
from clinic.db.base import Base

# Registers every model with Base.metadata
from clinic import models  # noqa: F401
from clinic import crud
from clinic.models.enums import UserRole
from clinic.models.user import User
from clinic.schemas.user import UserCreate

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def test_connection() -> bool:
    logger.info("🔌 Testing database connection...")
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("✅ Database connection successful")
        return True
    except Exception as e:
        logger.error(f"❌ Database connection failed: {e}")
        return False


def missing_tables() -> list:
    existing = inspect(engine).get_table_names()
    return [name for name in Base.metadata.tables if name not in existing]


def create_tables() -> None:
    logger.info("🏗️ Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info(f"✅ Tables present: {', '.join(inspect(engine).get_table_names())}")


def create_admin(email: str, password: str) -> None:
    with SessionLocal() as db:
        existing = db.query(User).filter(User.email == email).first()
        if existing:
            logger.info(f"ℹ️ User {email} already exists (role: {existing.role})")
            return
        crud.user.create(
            db,
            obj_in=UserCreate(email=email, full_name="Clinic Admin", password=password, role=UserRole.ADMIN.value),
        )
        logger.info(f"✅ Created admin user: {email}")


def main():
    parser = argparse.ArgumentParser(description="Clinic Database Setup")
    parser.add_argument("--check-only", action="store_true", help="Only check if tables exist, do not create")
    parser.add_argument("--admin-email", default=os.getenv("ADMIN_EMAIL"), help="Create this admin account")
    args = parser.parse_args()

    logger.info("🚀 Clinic Database Setup")
    logger.info("=" * 40)

    if not test_connection():
        logger.error("❌ Cannot proceed without database connection")
        sys.exit(1)

    missing = missing_tables()
    if args.check_only:
        if missing:
            logger.error(f"❌ Database check failed - missing tables: {missing}")
            sys.exit(1)
        logger.info("✅ Database check passed - all tables exist")
        sys.exit(0)

    if missing:
        create_tables()

    if args.admin_email:
        password = os.getenv("ADMIN_PASSWORD") or getpass.getpass("Admin password: ")
        if not password:
            logger.error("❌ Password is required")
            sys.exit(1)
        create_admin(args.admin_email, password)

    logger.info("🎉 Database setup completed successfully!")
    logger.info("You can now start the server with:")
    logger.info("  python -m uvicorn clinic.main:app --host 0.0.0.0 --port 8000")


if __name__ == "__main__":
    main()

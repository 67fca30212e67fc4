# backend/classbook/init_db.py
"""
Create database tables and optionally load the sample schedule.

Usage:
    python -m classbook.init_db
    python -m classbook.init_db --seed
"""

from datetime import date, time, timedelta
from decimal import Decimal
import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from .core.constants import PAYMENT_TYPE_FULL
from .database import SessionLocal, create_tables
from .repositories.factory import RepositoryFactory
from .services.capacity_ledger import CapacityLedger
from .services.payment_amounts import calculate_amounts

logger = logging.getLogger(__name__)

SAMPLE_CLASSES: List[Dict[str, Any]] = [
    {
        "title": {"ru": "Итальянская паста", "lv": "Itāļu pasta"},
        "description": {
            "ru": "Научитесь готовить настоящую пасту карбонара и альо олио с секретами итальянских шефов",
            "lv": "Iemācieties gatavot īstu karbonāras un alio olio pastu ar itāļu pavāru noslēpumiem",
        },
        "instructor": {"ru": "Марко Росси", "lv": "Marko Rossi"},
        "days_ahead": 14,
        "start_time": time(18, 0),
        "duration": "3 часа",
        "price": Decimal("45.00"),
        "capacity": 12,
    },
    {
        "title": {"ru": "Французские десерты", "lv": "Franču deserti"},
        "description": {
            "ru": "Мастер-класс по приготовлению классических французских десертов",
            "lv": "Meistarklase klasisko franču desertu gatavošanā",
        },
        "instructor": {"ru": "Софи Дюпон", "lv": "Sofija Dipona"},
        "days_ahead": 19,
        "start_time": time(14, 0),
        "duration": "4 часа",
        "price": Decimal("55.00"),
        "capacity": 10,
    },
    {
        "title": {"ru": "Суши-мастерская", "lv": "Suši meistarklase"},
        "description": {
            "ru": "Изучите искусство приготовления суши и роллов с японским мастером",
            "lv": "Apgūstiet suši un rullīšu gatavošanas mākslu ar japāņu meistaru",
        },
        "instructor": {"ru": "Такеши Ямамото", "lv": "Takeshi Yamamoto"},
        "days_ahead": 24,
        "start_time": time(17, 0),
        "duration": "3.5 часа",
        "price": Decimal("60.00"),
        "capacity": 8,
    },
]

# Demo bookings against the first sample class
SAMPLE_BOOKINGS: List[Dict[str, Any]] = [
    {"customer_name": "Анна Петрова", "email": "anna.petrova@example.com", "phone": "+371 29123456", "participants": 2, "payment_intent_id": "pi_test_123456"},
    {"customer_name": "Иван Сидоров", "email": "ivan.sidorov@example.com", "phone": "+371 29234567", "participants": 1, "payment_intent_id": "pi_test_234567"},
    {"customer_name": "Мария Козлова", "email": "maria.kozlova@example.com", "phone": "+371 29345678", "participants": 2, "payment_intent_id": "pi_test_345678"},
]


def seed_sample_data(db: Session, today: date) -> int:
    """
    Insert the sample schedule unless classes already exist.

    Demo bookings take their spots through the capacity ledger so the
    booked counters match the bookings.

    Returns:
        Number of classes created
    """
    class_repository = RepositoryFactory.create_class_repository(db)
    booking_repository = RepositoryFactory.create_booking_repository(db)
    ledger = CapacityLedger(db)

    if class_repository.count() > 0:
        logger.info("Classes already present, skipping seed")
        return 0

    created = []
    for sample in SAMPLE_CLASSES:
        created.append(
            class_repository.create(
                title=sample["title"],
                description=sample["description"],
                instructor=sample["instructor"],
                languages=["ru", "lv"],
                class_date=today + timedelta(days=sample["days_ahead"]),
                start_time=sample["start_time"],
                duration=sample["duration"],
                price=sample["price"],
                capacity=sample["capacity"],
                booked=0,
            )
        )

    first = created[0]
    for sample in SAMPLE_BOOKINGS:
        amounts = calculate_amounts(first.price, sample["participants"], PAYMENT_TYPE_FULL)
        ledger.reserve(first.id, sample["participants"])
        booking_repository.create(
            class_id=first.id,
            class_title=dict(first.title),
            payment_type=amounts.payment_type,
            total_price=amounts.total_price,
            paid_amount=amounts.paid_amount,
            remaining_amount=amounts.remaining_amount,
            **sample,
        )

    db.commit()
    logger.info(f"Seeded {len(created)} classes and {len(SAMPLE_BOOKINGS)} bookings")
    return len(created)


def main() -> None:
    import argparse

    parser = argparse.ArgumentParser(description="Create tables and optionally seed sample data")
    parser.add_argument("--seed", action="store_true", help="Load the sample class schedule")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    create_tables()
    logger.info("Database tables created")

    if args.seed:
        db = SessionLocal()
        try:
            seed_sample_data(db, date.today())
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


if __name__ == "__main__":
    main()

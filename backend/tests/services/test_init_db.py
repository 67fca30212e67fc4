from datetime import date

from classbook.init_db import SAMPLE_BOOKINGS, SAMPLE_CLASSES, seed_sample_data
from classbook.repositories.factory import RepositoryFactory


def test_seed_creates_schedule_with_consistent_counters(db, confirmed_participants):
    created = seed_sample_data(db, date(2030, 1, 1))

    assert created == len(SAMPLE_CLASSES)
    classes = RepositoryFactory.create_class_repository(db).list_scheduled()
    first = classes[0]
    booked = sum(sample["participants"] for sample in SAMPLE_BOOKINGS)
    assert first.booked == booked
    assert confirmed_participants(first.id) == booked


def test_seed_is_skipped_when_classes_exist(db):
    seed_sample_data(db, date(2030, 1, 1))
    assert seed_sample_data(db, date(2030, 1, 1)) == 0

import pytest

from classbook.repositories.factory import RepositoryFactory


@pytest.fixture
def repository(db):
    return RepositoryFactory.create_class_repository(db)


def test_increment_respects_capacity(db, repository, make_class):
    group_class = make_class(capacity=5)

    assert repository.try_increment_booked(group_class.id, 5) is True
    assert repository.try_increment_booked(group_class.id, 1) is False
    assert repository.get_counters(group_class.id) == (5, 5)


def test_decrement_never_goes_negative(db, repository, make_class):
    group_class = make_class(capacity=5)
    repository.try_increment_booked(group_class.id, 2)

    assert repository.try_decrement_booked(group_class.id, 3) is False
    assert repository.try_decrement_booked(group_class.id, 2) is True
    assert repository.get_counters(group_class.id) == (5, 0)


def test_counter_writes_refresh_cached_instance(db, repository, make_class):
    group_class = make_class(capacity=5)

    repository.try_increment_booked(group_class.id, 3)

    assert group_class.booked == 3


def test_delete_only_when_unbooked(db, repository, make_class):
    group_class = make_class()
    repository.try_increment_booked(group_class.id, 1)

    assert repository.delete_if_unbooked(group_class.id) is False

    repository.try_decrement_booked(group_class.id, 1)
    assert repository.delete_if_unbooked(group_class.id) is True
    assert repository.get_by_id(group_class.id) is None


def test_unknown_class_counters(repository):
    assert repository.get_counters("missing") is None

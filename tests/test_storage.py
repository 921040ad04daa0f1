from datetime import datetime, timedelta, timezone

import pytest

from sketchbox.storage import DrawingRepository


class SteppingClock:
    def __init__(self, start: datetime) -> None:
        self.current = start

    def advance(self, seconds: float) -> None:
        self.current = self.current + timedelta(seconds=seconds)

    def __call__(self) -> datetime:
        return self.current


@pytest.fixture
def clock():
    return SteppingClock(datetime(2026, 2, 6, 10, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def repository(tmp_path, clock):
    repo = DrawingRepository(tmp_path / "drawings.db", now=clock)
    assert repo.init_schema()
    return repo


def test_create_and_get(repository, clock):
    drawing_id = repository.create("Cat", b"strokes", b"png")
    assert drawing_id is not None

    record = repository.get(drawing_id)
    assert record is not None
    assert record.title == "Cat"
    assert record.drawing_data == b"strokes"
    assert record.thumbnail == b"png"
    assert record.created_date == clock.current
    assert record.modified_date == record.created_date


def test_fetch_all_orders_by_modified_descending(repository, clock):
    first = repository.create("A", b"a")
    clock.advance(5)
    second = repository.create("B", b"b")

    assert [record.id for record in repository.fetch_all()] == [second, first]

    clock.advance(5)
    assert repository.update(first, b"a2")
    assert [record.id for record in repository.fetch_all()] == [first, second]


def test_update_refreshes_data_and_timestamp(repository, clock):
    drawing_id = repository.create("Dog", b"v1", b"thumb-1")
    clock.advance(60)

    assert repository.update(drawing_id, b"v2", b"thumb-2")

    record = repository.get(drawing_id)
    assert record.drawing_data == b"v2"
    assert record.thumbnail == b"thumb-2"
    assert record.modified_date == clock.current
    assert record.modified_date >= record.created_date


def test_update_without_thumbnail_keeps_previous_preview(repository):
    drawing_id = repository.create("Dog", b"v1", b"thumb-1")
    assert repository.update(drawing_id, b"v2")
    assert repository.get(drawing_id).thumbnail == b"thumb-1"
    assert repository.get(drawing_id).title == "Dog"


def test_update_with_title_renames_record(repository):
    drawing_id = repository.create("Dog", b"v1")
    assert repository.update(drawing_id, b"v2", title="Puppy")

    record = repository.get(drawing_id)
    assert record.title == "Puppy"
    assert record.drawing_data == b"v2"


def test_update_never_moves_modified_before_created(repository, clock):
    drawing_id = repository.create("Skew", b"v1")
    created = repository.get(drawing_id).created_date
    clock.advance(-3600)

    assert repository.update(drawing_id, b"v2")
    assert repository.get(drawing_id).modified_date == created


def test_update_unknown_id_is_a_no_op(repository):
    assert repository.update("missing", b"data") is False
    assert repository.fetch_all() == []


def test_delete_removes_record(repository):
    drawing_id = repository.create("Gone", b"x")
    assert repository.delete(drawing_id)
    assert repository.get(drawing_id) is None


def test_delete_missing_id_does_not_raise(repository):
    assert repository.delete("never-existed") is False


def test_naive_clock_is_treated_as_utc(tmp_path):
    repo = DrawingRepository(tmp_path / "drawings.db", now=lambda: datetime(2026, 1, 1, 12, 0, 0))
    repo.init_schema()
    record = repo.get(repo.create("Naive", b"x"))
    assert record.created_date == datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def test_is_available_requires_schema(tmp_path):
    repo = DrawingRepository(tmp_path / "drawings.db")
    assert not repo.is_available()
    assert repo.init_schema()
    assert repo.is_available()


def test_unusable_store_reports_empty_results(tmp_path):
    repo = DrawingRepository(tmp_path / "missing-dir" / "drawings.db")
    assert repo.init_schema() is False
    assert repo.is_available() is False
    assert repo.create("A", b"a") is None
    assert repo.fetch_all() == []
    assert repo.get("x") is None
    assert repo.delete("x") is False

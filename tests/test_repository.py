"""Tests for the SQLModel-backed entry store."""
import pytest
from sqlalchemy.exc import OperationalError

from domain import EntryValidationError
from repository import StoreError, TimeEntryRepository, UserRepository, init_db
from tests.conftest import make_entry


@pytest.fixture
def engine(tmp_path):
    return init_db(f"sqlite:///{(tmp_path / 'test.db').as_posix()}")


@pytest.fixture
def users(engine):
    return UserRepository(engine)


@pytest.fixture
def entries(engine):
    return TimeEntryRepository(engine)


@pytest.fixture
def ana(users):
    return users.create(name="Ana Souza", email="Ana@Example.com", department="TI")


def test_create_and_find_profile(users, ana):
    assert ana.email == "ana@example.com"
    assert users.get(ana.id) == ana
    assert users.get_by_email(" ANA@example.com ").id == ana.id
    assert users.get_by_email("nobody@example.com") is None


def test_create_profile_requires_name(users):
    with pytest.raises(ValueError):
        users.create(name=" ", email="x@example.com", department="TI")


def test_update_profile(users, ana):
    updated = users.update(ana.id, department="RH", phone="1199999")
    assert updated.department == "RH"
    assert updated.phone == "1199999"
    with pytest.raises(ValueError):
        users.update(ana.id, email="other@example.com")


def test_add_and_list_entries_scoped_by_owner(entries, users, ana):
    bob = users.create(name="Bob", email="bob@example.com", department="TI")
    entries.add(make_entry("2024-03-01", 60, id="", user_id=ana.id, start_time="08:00"))
    entries.add(make_entry("2024-03-02", 30, id="", user_id=ana.id, start_time="9:15"))
    entries.add(make_entry("2024-03-02", 45, id="", user_id=bob.id))

    listed = entries.list_entries(ana.id)

    assert [e.date for e in listed] == ["2024-03-02", "2024-03-01"]
    assert listed[0].start_time == "09:15"
    assert all(e.id for e in listed)
    assert entries.list_entries("nobody") == []


def test_add_rejects_invalid_minutes(entries, ana):
    with pytest.raises(EntryValidationError):
        entries.add(make_entry(minutes=0, id="", user_id=ana.id))


def test_update_entry(entries, ana):
    saved = entries.add(make_entry("2024-03-01", 60, id="", user_id=ana.id, project_name="Alpha"))

    updated = entries.update(saved.id, minutes=90, project_name="  ", description="Revisão")

    assert updated.minutes == 90
    assert updated.project_name is None
    assert updated.description == "Revisão"
    assert updated.date == "2024-03-01"
    assert entries.update("missing", minutes=10) is None


def test_update_validates(entries, ana):
    saved = entries.add(make_entry(id="", user_id=ana.id))
    with pytest.raises(EntryValidationError):
        entries.update(saved.id, minutes=2000)
    with pytest.raises(ValueError):
        entries.update(saved.id, user_id="someone-else")


def test_approve_and_revoke(entries, ana):
    saved = entries.add(make_entry(id="", user_id=ana.id))

    approved = entries.approve(saved.id, approver="Gestor")
    assert approved.is_approved
    assert approved.approved_by == "Gestor"
    assert approved.approved_at is not None

    revoked = entries.approve(saved.id, approver="Gestor", approved=False)
    assert not revoked.is_approved
    assert revoked.approved_by is None


def test_delete_entry(entries, ana):
    saved = entries.add(make_entry(id="", user_id=ana.id))
    assert entries.delete(saved.id) is True
    assert entries.get(saved.id) is None
    assert entries.delete(saved.id) is False


def test_import_records_skips_invalid_and_duplicates(entries, ana):
    records = [
        {"id": "v1a", "userId": "legacy", "date": "2024-03-01", "startTime": "08:00", "minutes": 60,
         "createdAt": "2024-03-01T12:00:00Z"},
        {"id": "v2a", "user_id": "legacy", "date": "2024-03-02", "start_time": "10:00", "minutes": 5000},
        {"id": "v2b", "user_id": "legacy", "date": "2024-03-03", "start_time": "10:00", "minutes": 30,
         "project_name": "Alpha"},
    ]

    imported, errors = entries.import_records(records, owner_id=ana.id)
    again, _ = entries.import_records(records, owner_id=ana.id)

    assert imported == 2
    assert len(errors) == 1 and "Registro 2" in errors[0]
    assert again == 0
    assert {e.id for e in entries.list_entries(ana.id)} == {"v1a", "v2b"}


def test_import_records_keeps_only_legacy_owners(entries, ana):
    records = [
        {"id": "mine", "userId": "old-ana", "date": "2024-03-01", "startTime": "08:00", "minutes": 60},
        {"id": "other", "userId": "old-bruno", "date": "2024-03-01", "startTime": "09:00", "minutes": 30},
        {"id": "flags", "user_id": "old-ana", "date": "2024-03-02", "start_time": "10:00:00", "minutes": 45,
         "is_billable": "false", "is_approved": "false"},
    ]

    imported, errors = entries.import_records(records, owner_id=ana.id, legacy_owner_ids={"old-ana"})

    assert imported == 2 and errors == []
    stored = {e.id: e for e in entries.list_entries(ana.id)}
    assert set(stored) == {"mine", "flags"}
    assert stored["flags"].is_billable is False
    assert stored["flags"].is_approved is False
    assert entries.get("other") is None


def test_store_failure_is_wrapped(entries, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("select", {}, Exception("database is locked"))

    monkeypatch.setattr("repository.Session.exec", broken)
    with pytest.raises(StoreError):
        entries.list_entries("u1")

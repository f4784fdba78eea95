# repository.py
from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, time, timezone
from typing import Any, Iterable, Iterator, List, Mapping

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool
from sqlmodel import Field, Session, SQLModel, create_engine, select

from domain import EntryValidationError, TimeEntry, User
from records import entry_from_record, validate_entry_fields

logger = logging.getLogger(__name__)

EDITABLE_ENTRY_FIELDS = {
    "date", "start_time", "minutes", "ticket_id", "description",
    "project_name", "activity_type", "is_billable",
}
EDITABLE_PROFILE_FIELDS = {"name", "department", "phone", "timezone", "is_active"}


class StoreError(RuntimeError):
    """The database could not be reached or the query failed."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class ProfileDB(SQLModel, table=True):
    id: str = Field(primary_key=True)
    name: str
    email: str = Field(index=True, unique=True)
    department: str = ""
    phone: str | None = None
    timezone: str | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class TimeEntryDB(SQLModel, table=True):
    id: str = Field(primary_key=True)
    user_id: str = Field(index=True, foreign_key="profiledb.id")
    work_date: date = Field(index=True)
    start_time: time
    minutes: int
    ticket_id: str | None = None
    description: str | None = None
    project_name: str | None = None
    activity_type: str | None = None
    is_billable: bool = True
    is_approved: bool = False
    approved_by: str | None = None
    approved_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


def build_engine(db_url: str, echo: bool = False):
    is_sqlite = db_url.startswith("sqlite")
    kwargs = {
        "echo": echo,
        "pool_pre_ping": True,
        "connect_args": {},
    }
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        # Serverless PG (Neon/Supabase): no local pool, connect timeout
        kwargs["poolclass"] = NullPool
        kwargs["connect_args"] = {"connect_timeout": 10}
        if "sslmode=" not in db_url:
            db_url += ("&" if "?" in db_url else "?") + "sslmode=require"
    return create_engine(db_url, **kwargs)


def init_db(url: str, echo: bool = False):
    """Builds the engine and creates tables. Postgres must answer or this fails fast."""
    engine = build_engine(url, echo=echo)
    if not url.startswith("sqlite"):
        try:
            with engine.connect() as conn:
                conn.execute(text("select 1"))
        except SQLAlchemyError as e:
            raise RuntimeError(f"Não foi possível conectar ao Postgres: {e}") from e
    SQLModel.metadata.create_all(engine)
    logger.info("Database ready (%s)", engine.url.get_backend_name())
    return engine


@contextmanager
def _session(engine) -> Iterator[Session]:
    try:
        with Session(engine) as session:
            yield session
    except SQLAlchemyError as e:
        logger.exception("Database operation failed")
        raise StoreError(str(e)) from e


def _to_entry(r: TimeEntryDB) -> TimeEntry:
    return TimeEntry(
        id=r.id,
        user_id=r.user_id,
        date=r.work_date.isoformat(),
        start_time=r.start_time.strftime("%H:%M"),
        minutes=r.minutes,
        ticket_id=r.ticket_id,
        description=r.description,
        project_name=r.project_name,
        activity_type=r.activity_type,
        is_billable=r.is_billable,
        is_approved=r.is_approved,
        approved_by=r.approved_by,
        approved_at=r.approved_at,
        created_at=r.created_at,
        updated_at=r.updated_at,
    )


def _to_user(r: ProfileDB) -> User:
    return User(
        id=r.id,
        name=r.name,
        email=r.email,
        department=r.department,
        phone=r.phone,
        timezone=r.timezone,
        is_active=r.is_active,
        created_at=r.created_at,
        updated_at=r.updated_at,
    )


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip() or None
    return value


class TimeEntryRepository:
    """CRUD for time entries, always scoped by owner when listing."""
    def __init__(self, engine):
        self.engine = engine

    def add(self, entry: TimeEntry) -> TimeEntry:
        entry_date, start, minutes = validate_entry_fields(entry.date, entry.start_time, entry.minutes)
        now = _utcnow()
        row = TimeEntryDB(
            id=entry.id or _new_id(),
            user_id=entry.user_id,
            work_date=date.fromisoformat(entry_date),
            start_time=time.fromisoformat(start),
            minutes=minutes,
            ticket_id=_clean(entry.ticket_id),
            description=_clean(entry.description),
            project_name=_clean(entry.project_name),
            activity_type=_clean(entry.activity_type),
            is_billable=entry.is_billable,
            is_approved=entry.is_approved,
            approved_by=entry.approved_by,
            approved_at=entry.approved_at,
            created_at=entry.created_at or now,
            updated_at=entry.updated_at or now,
        )
        with _session(self.engine) as session:
            session.add(row)
            session.commit()
            session.refresh(row)
            logger.debug("Saved entry %s for %s", row.id, row.user_id)
            return _to_entry(row)

    def get(self, entry_id: str) -> TimeEntry | None:
        with _session(self.engine) as session:
            row = session.get(TimeEntryDB, entry_id)
            return _to_entry(row) if row else None

    def list_entries(self, owner_id: str) -> List[TimeEntry]:
        """Every entry of one owner, most recent date first."""
        with _session(self.engine) as session:
            rows = session.exec(
                select(TimeEntryDB)
                .where(TimeEntryDB.user_id == owner_id)
                .order_by(TimeEntryDB.work_date.desc(), TimeEntryDB.start_time.desc())
            ).all()
            return [_to_entry(r) for r in rows]

    def update(self, entry_id: str, **changes: Any) -> TimeEntry | None:
        unknown = set(changes) - EDITABLE_ENTRY_FIELDS
        if unknown:
            raise ValueError(f"Campos não editáveis: {sorted(unknown)}")
        with _session(self.engine) as session:
            row = session.get(TimeEntryDB, entry_id)
            if row is None:
                return None
            entry_date, start, minutes = validate_entry_fields(
                changes.get("date", row.work_date.isoformat()),
                changes.get("start_time", row.start_time.strftime("%H:%M")),
                changes.get("minutes", row.minutes),
            )
            row.work_date = date.fromisoformat(entry_date)
            row.start_time = time.fromisoformat(start)
            row.minutes = minutes
            for k in ("ticket_id", "description", "project_name", "activity_type"):
                if k in changes:
                    setattr(row, k, _clean(changes[k]))
            if "is_billable" in changes:
                row.is_billable = bool(changes["is_billable"])
            row.updated_at = _utcnow()
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_entry(row)

    def approve(self, entry_id: str, approver: str, approved: bool = True) -> TimeEntry | None:
        with _session(self.engine) as session:
            row = session.get(TimeEntryDB, entry_id)
            if row is None:
                return None
            row.is_approved = approved
            row.approved_by = approver if approved else None
            row.approved_at = _utcnow() if approved else None
            row.updated_at = _utcnow()
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_entry(row)

    def delete(self, entry_id: str) -> bool:
        with _session(self.engine) as session:
            row = session.get(TimeEntryDB, entry_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

    def import_records(
        self,
        records: Iterable[Mapping[str, Any]],
        owner_id: str | None = None,
        legacy_owner_ids: set[str] | None = None,
    ) -> tuple[int, list[str]]:
        """
        Imports raw records of either schema version (e.g. a local-storage
        JSON export). Invalid records are skipped and reported; entries whose
        id already exists are left untouched.

        `legacy_owner_ids` keeps only records whose original owner is in the
        set; `owner_id` then becomes the owner of everything imported.
        Returns (imported count, error messages).
        """
        imported, errors = 0, []
        for i, rec in enumerate(records, start=1):
            try:
                entry = entry_from_record(rec)
            except EntryValidationError as e:
                errors.append(f"Registro {i}: {e}")
                continue
            if legacy_owner_ids is not None and entry.user_id not in legacy_owner_ids:
                continue
            if owner_id:
                entry = replace(entry, user_id=owner_id)
            if self.get(entry.id) is not None:
                continue
            self.add(entry)
            imported += 1
        logger.info("Imported %d entries (%d rejected)", imported, len(errors))
        return imported, errors


class UserRepository:
    def __init__(self, engine):
        self.engine = engine

    def create(self, name: str, email: str, department: str, **extra: Any) -> User:
        name, email = name.strip(), email.strip().lower()
        if not name or not email:
            raise ValueError("Nome e e-mail são obrigatórios.")
        row = ProfileDB(id=_new_id(), name=name, email=email, department=department,
                        **{k: v for k, v in extra.items() if k in EDITABLE_PROFILE_FIELDS})
        with _session(self.engine) as session:
            session.add(row)
            session.commit()
            session.refresh(row)
            logger.info("Created profile %s", row.id)
            return _to_user(row)

    def get(self, user_id: str) -> User | None:
        with _session(self.engine) as session:
            row = session.get(ProfileDB, user_id)
            return _to_user(row) if row else None

    def get_by_email(self, email: str) -> User | None:
        with _session(self.engine) as session:
            row = session.exec(select(ProfileDB).where(ProfileDB.email == email.strip().lower())).first()
            return _to_user(row) if row else None

    def update(self, user_id: str, **changes: Any) -> User | None:
        unknown = set(changes) - EDITABLE_PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Campos não editáveis: {sorted(unknown)}")
        with _session(self.engine) as session:
            row = session.get(ProfileDB, user_id)
            if row is None:
                return None
            for k, v in changes.items():
                setattr(row, k, v)
            row.updated_at = _utcnow()
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_user(row)


__all__ = [
    "ProfileDB", "TimeEntryDB", "TimeEntryRepository", "UserRepository",
    "StoreError", "build_engine", "init_db",
]

# domain.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime

MAX_MINUTES_PER_ENTRY = 1440

NO_PROJECT_LABEL = "Sem Projeto"
NO_ACTIVITY_LABEL = "Não Especificado"

ACTIVITY_TYPES = [
    "Desenvolvimento", "Reunião", "Análise", "Testes",
    "Documentação", "Suporte", "Treinamento", "Outros",
]

DEPARTMENTS = {
    "TI": "Tecnologia da Informação",
    "RH": "Recursos Humanos",
    "Financeiro": "Financeiro",
    "Marketing": "Marketing",
    "Vendas": "Vendas",
    "Operações": "Operações",
}


class EntryValidationError(ValueError):
    """Raised when a time entry is rejected before it reaches the store."""


@dataclass(frozen=True)
class TimeEntry:
    """A single block of minutes worked on a given day."""
    id: str
    user_id: str
    date: str
    start_time: str
    minutes: int
    ticket_id: str | None = None
    description: str | None = None
    project_name: str | None = None
    activity_type: str | None = None
    is_billable: bool = True
    is_approved: bool = False
    approved_by: str | None = None
    approved_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def day(self) -> date:
        return date.fromisoformat(self.date)


@dataclass
class User:
    id: str
    name: str
    email: str
    department: str
    phone: str | None = None
    timezone: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class Bucket:
    """Minutes and entry count for one aggregation key."""
    total_minutes: int = 0
    entry_count: int = 0

    def add(self, minutes: int) -> "Bucket":
        return Bucket(self.total_minutes + minutes, self.entry_count + 1)

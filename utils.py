import re
from datetime import date, datetime, time
from typing import Iterable

import pandas as pd

from domain import TimeEntry
from services import resolve_activity, resolve_project

MONTHS_PT = ["janeiro", "fevereiro", "março", "abril", "maio", "junho", "julho",
             "agosto", "setembro", "outubro", "novembro", "dezembro"]
WEEKDAYS_PT = ["segunda-feira", "terça-feira", "quarta-feira", "quinta-feira",
               "sexta-feira", "sábado", "domingo"]

_HOURS_RE = re.compile(r"^\s*(\d+)h\s+(\d+)m\s*$")


def format_minutes(minutes: int) -> str:
    """125 -> '2h 5m'. No zero padding."""
    h, m = divmod(int(minutes), 60)
    return f"{h}h {m}m"


def parse_formatted_minutes(text: str) -> int:
    """'2h 5m' -> 125. Inverse of format_minutes."""
    match = _HOURS_RE.match(text)
    if not match:
        raise ValueError(f"Not an 'Xh Ym' duration: {text!r}")
    return int(match.group(1)) * 60 + int(match.group(2))


def parse_hhmm(s: str) -> time | None:
    """'9:05', '09:05' or '09:05:00' -> time(9, 5). None when not a clock time."""
    try:
        parts = s.strip().split(":")
        if len(parts) not in (2, 3):
            return None
        return time(int(parts[0]), int(parts[1]))
    except (AttributeError, ValueError):
        return None


def hhmm(t: datetime | time) -> str:
    return f"{t.hour:02d}:{t.minute:02d}"


def format_date_long(d: date) -> str:
    """date(2024, 3, 15) -> 'sexta-feira, 15 de março de 2024'."""
    return f"{WEEKDAYS_PT[d.weekday()]}, {d.day} de {MONTHS_PT[d.month - 1]} de {d.year}"


def format_date_short(d: date) -> str:
    return d.strftime("%d/%m/%Y")


def entries_to_dataframe(entries: Iterable[TimeEntry]) -> pd.DataFrame:
    rows = []
    for e in entries:
        rows.append({
            "ID": e.id,
            "Data": e.date,
            "Início": e.start_time,
            "Minutos": e.minutes,
            "Horas": format_minutes(e.minutes),
            "Ticket": e.ticket_id or "",
            "Projeto": resolve_project(e),
            "Atividade": resolve_activity(e),
            "Descrição": e.description or "",
            "Faturável": e.is_billable,
            "Aprovado": e.is_approved,
        })
    df = pd.DataFrame(rows)
    if not df.empty:
        df = df.sort_values(["Data", "Início"], ascending=False, kind="stable").reset_index(drop=True)
    return df

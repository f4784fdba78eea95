# reports.py
from __future__ import annotations

import io
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List
from xml.sax.saxutils import escape

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from domain import Bucket, TimeEntry
from services import (
    aggregate_by_activity,
    aggregate_by_date,
    aggregate_by_project,
    average_minutes_per_day,
    billable_minutes,
    distinct_days,
    total_minutes,
)
from utils import format_date_long, format_minutes

EXPORT_COLUMNS = [
    "Data",
    "Horário de Início",
    "Minutos",
    "Horas Formatadas",
    "Ticket ID",
    "Projeto",
    "Tipo de Atividade",
    "Descrição",
    "Faturável",
    "Aprovado",
]


@dataclass(frozen=True)
class DateRow:
    date: str
    total_minutes: int
    billable_minutes: int
    entries: List[TimeEntry]


@dataclass(frozen=True)
class CategoryRow:
    key: str
    entry_count: int
    total_minutes: int


@dataclass
class Report:
    total_minutes: int = 0
    billable_minutes: int = 0
    distinct_days: int = 0
    average_minutes_per_day: float = 0.0
    date_rows: List[DateRow] = field(default_factory=list)
    project_rows: List[CategoryRow] = field(default_factory=list)
    activity_rows: List[CategoryRow] = field(default_factory=list)


def _category_rows(buckets: Dict[str, Bucket]) -> List[CategoryRow]:
    # sorted() is stable, so equal totals keep first-encountered order
    rows = [CategoryRow(k, b.entry_count, b.total_minutes) for k, b in buckets.items()]
    return sorted(rows, key=lambda r: r.total_minutes, reverse=True)


def _date_rows(entries: List[TimeEntry]) -> List[DateRow]:
    members: Dict[str, List[TimeEntry]] = {}
    for e in entries:
        members.setdefault(e.date, []).append(e)
    totals = aggregate_by_date(entries)
    rows = [DateRow(d, totals[d].total_minutes, billable_minutes(items), items) for d, items in members.items()]
    return sorted(rows, key=lambda r: r.date, reverse=True)


def date_row_label(row: DateRow) -> str:
    """Header of a day group: long date, total and, when any, billable minutes."""
    label = f"{format_date_long(date.fromisoformat(row.date))} · {format_minutes(row.total_minutes)}"
    if row.billable_minutes > 0:
        label += f" · {format_minutes(row.billable_minutes)} faturáveis"
    return label


def build_report(entries: Iterable[TimeEntry]) -> Report:
    """
    Summary totals, date rows (most recent first) and project/activity
    breakdowns (largest first) for an already filtered set of entries.
    """
    entries = list(entries)
    return Report(
        total_minutes=total_minutes(entries),
        billable_minutes=billable_minutes(entries),
        distinct_days=distinct_days(entries),
        average_minutes_per_day=average_minutes_per_day(entries),
        date_rows=_date_rows(entries),
        project_rows=_category_rows(aggregate_by_project(entries)),
        activity_rows=_category_rows(aggregate_by_activity(entries)),
    )


# =========================
# CSV
# =========================
def _free_text(value: str | None) -> str:
    # lone CRs are not quoted by the writer; keep line breaks as \n only
    return (value or "").replace("\r\n", "\n").replace("\r", "\n")


def _yes_no(flag: bool) -> str:
    return "Sim" if flag else "Não"


def export_rows(entries: Iterable[TimeEntry]) -> pd.DataFrame:
    """One row per entry, in EXPORT_COLUMNS order."""
    rows = []
    for e in entries:
        rows.append([
            e.date,
            e.start_time,
            e.minutes,
            format_minutes(e.minutes),
            _free_text(e.ticket_id),
            _free_text(e.project_name),
            _free_text(e.activity_type),
            _free_text(e.description),
            _yes_no(e.is_billable),
            _yes_no(e.is_approved),
        ])
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def export_csv(entries: Iterable[TimeEntry]) -> str:
    """
    Comma separated export with a header row. Fields holding a comma, a
    quote or a newline are wrapped in quotes, inner quotes doubled.
    """
    return export_rows(entries).to_csv(index=False, lineterminator="\n")


def export_filename(user_name: str, export_date: date, ext: str = "csv") -> str:
    slug = re.sub(r"\s+", "-", user_name.strip())
    return f"relatorio-horas-{slug}-{export_date.isoformat()}.{ext}"


# =========================
# PDF
# =========================
def summary_lines(report: Report) -> list[str]:
    return [
        f"Total: {format_minutes(report.total_minutes)} · "
        f"Faturável: {format_minutes(report.billable_minutes)}",
        f"Dias trabalhados: {report.distinct_days} · "
        f"Média por dia: {format_minutes(round(report.average_minutes_per_day))}",
    ]


def export_pdf(entries: Iterable[TimeEntry], title: str) -> bytes:
    """Landscape A4 table of the export rows plus a boxed summary."""
    entries = list(entries)
    report = build_report(entries)
    df = export_rows(entries).drop(columns=["Minutos"])

    buf = io.BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=landscape(A4), topMargin=24, bottomMargin=24, leftMargin=24, rightMargin=24)
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(name="TitleCentered", parent=styles["Title"], alignment=TA_CENTER)
    cell_style = ParagraphStyle(name="Cell", parent=styles["Normal"], fontSize=8, leading=10)
    summary_style = ParagraphStyle(
        name="Summary", parent=styles["Normal"], alignment=TA_CENTER,
        textColor=colors.black, fontSize=11, leading=13, spaceBefore=4, spaceAfter=2
    )

    story = [Paragraph(escape(title), title_style), Spacer(1, 8)]
    if df.empty:
        story.append(Paragraph("Sem dados para mostrar.", styles["Normal"]))
    else:
        body = [[Paragraph(escape(str(v)), cell_style) if col == "Descrição" else v
                 for col, v in zip(df.columns, row)] for row in df.values.tolist()]
        table = Table([list(df.columns)] + body, repeatRows=1, hAlign="CENTER")
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#F5F5F7")),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.black),
            ("ALIGN", (0, 0), (-1, -1), "CENTER"),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 8),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#E0E0E0")),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.whitesmoke, colors.white]),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ]))
        story.append(table)

    story.append(Spacer(1, 12))
    cells = [[Paragraph(line, summary_style)] for line in summary_lines(report)]
    summary_box = Table(cells, colWidths=[min(520, 0.65 * doc.width)], hAlign="CENTER")
    summary_box.setStyle(TableStyle([
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("BACKGROUND", (0, 0), (-1, -1), colors.white),
        ("BOX", (0, 0), (-1, -1), 0.6, colors.HexColor("#C7CCD6")),
    ]))
    story.append(summary_box)

    def draw_page_border(canvas, doc_obj):
        canvas.saveState()
        w, h = doc_obj.pagesize
        canvas.setStrokeColor(colors.HexColor("#C7CCD6"))
        canvas.setLineWidth(0.8)
        margin = 12
        canvas.rect(margin, margin, w - 2*margin, h - 2*margin)
        canvas.restoreState()

    doc.build(story, onFirstPage=draw_page_border, onLaterPages=draw_page_border)
    return buf.getvalue()

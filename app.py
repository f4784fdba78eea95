# app.py
# -----------------------------------------------
# ⏱️ Registro de horas (Streamlit)
# -----------------------------------------------
# Requires: streamlit, sqlmodel, pandas, reportlab, psycopg2-binary (for Postgres)
# Dashboard, calendar and filtered reports (CSV/PDF) over the user's time entries.

import json
import logging
from datetime import time

import pandas as pd
import streamlit as st

import config
from calendar_grid import (
    WEEKDAY_HEADERS, build_calendar, entries_for_day, month_title, next_month, previous_month,
)
from domain import ACTIVITY_TYPES, DEPARTMENTS, EntryValidationError, TimeEntry, User
from preferences import Preferences, load_preferences, save_preferences
from records import profile_ids_for_email
from reports import build_report, date_row_label, export_csv, export_filename, export_pdf
from repository import StoreError, TimeEntryRepository, UserRepository, init_db
from services import PERIODS, dashboard_totals, filter_period
from utils import entries_to_dataframe, format_date_long, format_date_short, format_minutes, hhmm

config.configure_logging()
logger = logging.getLogger("app")

st.set_page_config(page_title=config.APP_TITLE, page_icon="⏱️", layout="wide")

# Postgres is mandatory when hosted
if config.is_hosted() and config.DB_URL.startswith("sqlite"):
    st.error("Falta DATABASE_URL (Postgres). Configure a variável de ambiente no hosting.")


@st.cache_resource
def get_engine(url: str):
    return init_db(url, echo=False)


engine = get_engine(config.DB_URL)
entries_repo = TimeEntryRepository(engine)
users_repo = UserRepository(engine)

# =========================
# Preferences (read once per session, written on change)
# =========================
if "prefs" not in st.session_state:
    st.session_state["prefs"] = load_preferences(config.PREFERENCES_FILE)
prefs: Preferences = st.session_state["prefs"]

DARK_CSS = """
<style>
.stApp { background-color: #111827; color: #F9FAFB; }
.stApp h1, .stApp h2, .stApp h3, .stApp p, .stApp label { color: #F9FAFB !important; }
</style>
"""


def apply_theme(p: Preferences):
    st.markdown("""
<style>
.app-header { font-weight: 600; font-size: 1.5rem; line-height: 1.2; margin: 0.2rem 0 0.6rem 0; }
</style>
""", unsafe_allow_html=True)
    if p.dark_theme:
        st.markdown(DARK_CSS, unsafe_allow_html=True)


def set_preference(**changes):
    for k, v in changes.items():
        setattr(prefs, k, v)
    save_preferences(config.PREFERENCES_FILE, prefs)


apply_theme(prefs)

# =========================
# State helpers
# =========================
def _flash_success_if_any():
    msg = st.session_state.pop("_flash_success", None)
    if msg:
        st.success(msg)


def current_user() -> User | None:
    return st.session_state.get("user")


def load_entries(user_id: str) -> list[TimeEntry]:
    """Snapshot of the user's entries. A store failure shows an error and yields []."""
    try:
        return entries_repo.list_entries(user_id)
    except StoreError as e:
        logger.error("Could not load entries for %s: %s", user_id, e)
        st.error("Erro ao carregar registros. Tente novamente mais tarde.")
        return []


# =========================
# 🔐 Profile (login / register)
# =========================
def page_login():
    st.markdown(f'<div class="app-header">⏱️ {config.APP_TITLE}</div>', unsafe_allow_html=True)
    tab_in, tab_new = st.tabs(["Entrar", "Criar perfil"])

    with tab_in:
        with st.form("login"):
            email = st.text_input("E-mail", value=prefs.last_email or "", key="login_email")
            ok = st.form_submit_button("Entrar", use_container_width=True)
        if ok:
            try:
                user = users_repo.get_by_email(email)
            except StoreError:
                st.error("Erro ao conectar. Tente novamente.")
                return
            if user is None:
                st.warning("Perfil não encontrado. Crie um perfil na outra aba.")
            else:
                st.session_state["user"] = user
                set_preference(last_email=user.email)
                st.rerun()

    with tab_new:
        with st.form("register"):
            name = st.text_input("Nome completo")
            email = st.text_input("E-mail", key="register_email")
            dept = st.selectbox("Departamento", options=list(DEPARTMENTS), format_func=DEPARTMENTS.get)
            ok = st.form_submit_button("Criar perfil", use_container_width=True)
        if ok:
            try:
                if users_repo.get_by_email(email) is not None:
                    st.warning("Já existe um perfil com este e-mail.")
                    return
                user = users_repo.create(name=name, email=email, department=dept)
            except ValueError as e:
                st.warning(str(e))
                return
            except StoreError:
                st.error("Erro ao criar perfil. Tente novamente.")
                return
            st.session_state["user"] = user
            set_preference(last_email=user.email)
            st.rerun()


# =========================
# 📊 Dashboard
# =========================
def page_dashboard(user: User, entries: list[TimeEntry]):
    st.subheader(f"Olá, {user.name.split()[0]}!")
    st.caption(format_date_long(config.today_local()))
    totals = dashboard_totals(entries, config.today_local())
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Hoje", format_minutes(totals.today_minutes))
    c2.metric("Esta Semana", format_minutes(totals.week_minutes))
    c3.metric("Este Mês", format_minutes(totals.month_minutes))
    c4.metric("Total de Entradas", str(totals.entry_count))

    st.markdown("**Registros recentes**")
    df = entries_to_dataframe(entries)
    if df.empty:
        st.info("Nenhum registro ainda. Comece registrando seu tempo.")
    else:
        st.dataframe(df.drop(columns=["ID"]).head(5), use_container_width=True, hide_index=True)


# =========================
# ➕ Register entry
# =========================
def page_register(user: User):
    st.subheader("➕ Registrar Tempo")
    _flash_success_if_any()
    now = config.now_local()
    with st.form("new_entry", clear_on_submit=True):
        c1, c2, c3 = st.columns(3)
        entry_date = c1.date_input("Data", value=now.date(), format="DD/MM/YYYY")
        start = c2.time_input("Horário de início", value=time(now.hour, now.minute), step=300)
        minutes = c3.number_input("Minutos trabalhados", min_value=1, max_value=1440, step=1, value=60)
        c4, c5 = st.columns(2)
        ticket = c4.text_input("Ticket ID", placeholder="Ex: PROJ-123")
        project = c5.text_input("Projeto")
        activity = st.selectbox("Tipo de atividade", options=[""] + ACTIVITY_TYPES,
                                format_func=lambda v: v or "Selecione o tipo")
        description = st.text_area("Descrição")
        billable = st.checkbox("Faturável", value=True)
        ok = st.form_submit_button("Salvar registro", use_container_width=True)

    if ok:
        entry = TimeEntry(
            id="",
            user_id=user.id,
            date=entry_date.isoformat(),
            start_time=hhmm(start),
            minutes=int(minutes),
            ticket_id=ticket or None,
            description=description or None,
            project_name=project or None,
            activity_type=activity or None,
            is_billable=billable,
        )
        try:
            saved = entries_repo.add(entry)
        except EntryValidationError as e:
            st.warning(str(e))
            return
        except StoreError:
            st.error("Erro ao salvar registro. Tente novamente.")
            return
        st.session_state["_flash_success"] = (
            f"Registro salvo: {format_date_short(saved.day)} · {format_minutes(saved.minutes)}"
        )
        st.rerun()


# =========================
# 🗓️ Calendar
# =========================
def page_calendar(entries: list[TimeEntry]):
    today = config.today_local()
    if "cal_year" not in st.session_state:
        st.session_state["cal_year"], st.session_state["cal_month0"] = today.year, today.month - 1
    year, month0 = st.session_state["cal_year"], st.session_state["cal_month0"]

    c_prev, c_title, c_next = st.columns([1, 4, 1])
    if c_prev.button("◀", use_container_width=True):
        st.session_state["cal_year"], st.session_state["cal_month0"] = previous_month(year, month0)
        st.rerun()
    c_title.markdown(f"### 🗓️ {month_title(year, month0).capitalize()}")
    if c_next.button("▶", use_container_width=True):
        st.session_state["cal_year"], st.session_state["cal_month0"] = next_month(year, month0)
        st.rerun()

    selected = st.session_state.get("cal_selected")
    days = build_calendar(entries, year, month0, today, selected=selected)

    for col, name in zip(st.columns(7), WEEKDAY_HEADERS):
        col.markdown(f"**{name}**")
    for week in range(6):
        for col, day in zip(st.columns(7), days[week * 7:(week + 1) * 7]):
            label = f"{day.date.day}"
            if day.is_today:
                label = f"**{label}** •"
            if day.total_minutes:
                label += f"  \n{format_minutes(day.total_minutes)}"
            kind = "primary" if day.is_selected else "secondary"
            if col.button(label, key=f"cal_{day.date.isoformat()}", type=kind,
                          disabled=not day.is_current_month, use_container_width=True):
                st.session_state["cal_selected"] = day.date
                st.rerun()

    if selected:
        day_entries = entries_for_day(entries, selected)
        st.markdown(f"**{format_date_long(selected)}**")
        if not day_entries:
            st.caption("Nenhum registro neste dia.")
        for e in day_entries:
            st.markdown(f"- {e.start_time} · {format_minutes(e.minutes)} · "
                        f"{e.ticket_id or '-'} · {e.description or ''}")


# =========================
# 📈 Reports
# =========================
def _edit_entry_form(user: User, entry: TimeEntry):
    with st.form(f"edit_{entry.id}"):
        c1, c2, c3 = st.columns(3)
        new_date = c1.date_input("Data", value=entry.day, format="DD/MM/YYYY")
        new_start = c2.text_input("Início (HH:MM)", value=entry.start_time)
        new_minutes = c3.number_input("Minutos", min_value=1, max_value=1440, value=entry.minutes)
        c4, c5 = st.columns(2)
        new_ticket = c4.text_input("Ticket ID", value=entry.ticket_id or "")
        new_project = c5.text_input("Projeto", value=entry.project_name or "")
        options = [""] + ACTIVITY_TYPES
        new_activity = st.selectbox(
            "Tipo de atividade", options=options,
            index=options.index(entry.activity_type) if entry.activity_type in options else 0,
        )
        new_desc = st.text_area("Descrição", value=entry.description or "")
        new_billable = st.checkbox("Faturável", value=entry.is_billable)
        new_approved = st.checkbox("Aprovado", value=entry.is_approved)
        c_save, c_del = st.columns(2)
        save = c_save.form_submit_button("Salvar alterações", use_container_width=True)
        delete = c_del.form_submit_button("Excluir registro", use_container_width=True)

    try:
        if save:
            entries_repo.update(
                entry.id, date=new_date.isoformat(), start_time=new_start, minutes=int(new_minutes),
                ticket_id=new_ticket, project_name=new_project, activity_type=new_activity,
                description=new_desc, is_billable=new_billable,
            )
            if new_approved != entry.is_approved:
                entries_repo.approve(entry.id, approver=user.name, approved=new_approved)
            st.toast("Registro atualizado.", icon="✅")
            st.rerun()
        if delete:
            entries_repo.delete(entry.id)
            st.toast("Registro excluído.", icon="🗑️")
            st.rerun()
    except EntryValidationError as e:
        st.warning(str(e))
    except StoreError:
        st.error("Erro ao atualizar registro. Tente novamente.")


def page_reports(user: User, entries: list[TimeEntry]):
    st.subheader("📈 Relatórios")
    today = config.today_local()

    c1, c2, c3 = st.columns(3)
    period = c1.selectbox("Período", options=list(PERIODS), index=1, format_func=PERIODS.get)
    start = end = None
    if period == "custom":
        start = c2.date_input("Data inicial", value=None, format="DD/MM/YYYY")
        end = c3.date_input("Data final", value=None, format="DD/MM/YYYY")
    filtered = filter_period(entries, period, today, start, end)
    report = build_report(filtered)

    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Total de Horas", format_minutes(report.total_minutes))
    m2.metric("Horas Faturáveis", format_minutes(report.billable_minutes))
    m3.metric("Dias Trabalhados", str(report.distinct_days))
    m4.metric("Média por Dia", format_minutes(round(report.average_minutes_per_day)))

    d1, d2 = st.columns(2)
    d1.download_button(
        "⬇️ Exportar CSV",
        data=export_csv(filtered).encode("utf-8"),
        file_name=export_filename(user.name, today),
        mime="text/csv",
        disabled=not filtered,
        use_container_width=True,
    )
    d2.download_button(
        "⬇️ Exportar PDF",
        data=export_pdf(filtered, title=f"Relatório de Horas · {user.name}") if filtered else b"",
        file_name=export_filename(user.name, today, ext="pdf"),
        mime="application/pdf",
        disabled=not filtered,
        use_container_width=True,
    )

    b1, b2 = st.columns(2)
    with b1:
        st.markdown("**Por projeto**")
        st.dataframe(pd.DataFrame(
            [{"Projeto": r.key, "Registros": r.entry_count, "Horas": format_minutes(r.total_minutes)}
             for r in report.project_rows]
        ), use_container_width=True, hide_index=True)
    with b2:
        st.markdown("**Por tipo de atividade**")
        st.dataframe(pd.DataFrame(
            [{"Atividade": r.key, "Registros": r.entry_count, "Horas": format_minutes(r.total_minutes)}
             for r in report.activity_rows]
        ), use_container_width=True, hide_index=True)

    st.markdown("**Registros por dia**")
    if not report.date_rows:
        st.info("Nenhum registro no período selecionado.")
    for row in report.date_rows:
        with st.expander(date_row_label(row)):
            for e in row.entries:
                flags = ("💲" if e.is_billable else "") + ("✅" if e.is_approved else "")
                st.markdown(f"**{e.start_time}** · {format_minutes(e.minutes)} · "
                            f"{e.project_name or '-'} · {e.activity_type or '-'} {flags}  \n"
                            f"{e.ticket_id or ''} {e.description or ''}")
                if st.toggle("Editar", key=f"toggle_{e.id}"):
                    _edit_entry_form(user, e)


# =========================
# 👤 Profile + import
# =========================
def page_profile(user: User):
    st.subheader("👤 Perfil")
    with st.form("profile"):
        name = st.text_input("Nome", value=user.name)
        depts = list(DEPARTMENTS)
        dept = st.selectbox("Departamento", options=depts, format_func=DEPARTMENTS.get,
                            index=depts.index(user.department) if user.department in depts else 0)
        phone = st.text_input("Telefone", value=user.phone or "")
        ok = st.form_submit_button("Salvar", use_container_width=True)
    if ok:
        try:
            updated = users_repo.update(user.id, name=name.strip() or user.name, department=dept,
                                        phone=phone.strip() or None)
        except StoreError:
            st.error("Erro ao atualizar perfil.")
        else:
            st.session_state["user"] = updated
            st.toast("Perfil atualizado.", icon="✅")
            st.rerun()

    st.markdown("**Importar registros (JSON)**")
    st.caption("Aceita a exportação do armazenamento local da versão anterior.")
    upload = st.file_uploader("Arquivo JSON", type=["json"])
    if upload is not None and st.button("Importar", use_container_width=True):
        try:
            records = json.loads(upload.getvalue().decode("utf-8"))
        except ValueError:
            st.warning("Arquivo JSON inválido.")
            return
        legacy_owners = None
        if isinstance(records, dict):
            # full local-storage dump: keep only this user's entries
            profiles = records.get("clt_tracking_users") or []
            if profiles:
                legacy_owners = profile_ids_for_email(profiles, user.email)
            records = records.get("clt_tracking_entries", [])
        try:
            imported, errors = entries_repo.import_records(
                records, owner_id=user.id, legacy_owner_ids=legacy_owners,
            )
        except StoreError:
            st.error("Erro ao importar registros.")
            return
        st.success(f"{imported} registro(s) importado(s).")
        for msg in errors:
            st.warning(msg)


# =========================
# Main
# =========================
user = current_user()
if user is None:
    page_login()
    st.stop()

with st.sidebar:
    st.markdown(f'<div class="app-header">⏱️ {config.APP_TITLE}</div>', unsafe_allow_html=True)
    st.caption(f"{user.name} · {DEPARTMENTS.get(user.department, user.department)}")
    page = st.radio("Navegação", ["Dashboard", "Registrar Tempo", "Calendário", "Relatórios", "Perfil"],
                    label_visibility="collapsed")
    dark = st.toggle("Tema escuro", value=prefs.dark_theme)
    if dark != prefs.dark_theme:
        set_preference(dark_theme=dark)
        st.rerun()
    if st.button("Sair", use_container_width=True):
        st.session_state.pop("user", None)
        st.rerun()

entries = load_entries(user.id)

if page == "Dashboard":
    page_dashboard(user, entries)
elif page == "Registrar Tempo":
    page_register(user)
elif page == "Calendário":
    page_calendar(entries)
elif page == "Relatórios":
    page_reports(user, entries)
else:
    page_profile(user)

# config.py
# -----------------------------------------------
# Environment-driven settings. Read once at import.
# -----------------------------------------------
import logging
import os
from datetime import date, datetime
from pathlib import Path
from zoneinfo import ZoneInfo

APP_TITLE = "Registro de Horas"

# =========================
# Time zone
# =========================
TZ = ZoneInfo(os.getenv("APP_TZ", "America/Sao_Paulo"))


def today_local() -> date:
    return datetime.now(TZ).date()


def now_local() -> datetime:
    return datetime.now(TZ)


# =========================
# Persistence (local fallback for development only)
# =========================
def pick_data_dir() -> Path:
    candidates = []
    env = os.getenv("DATA_DIR")
    if env:
        candidates.append(Path(env))
    candidates += [Path("/data"), Path.cwd() / "data"]

    for p in candidates:
        try:
            p.mkdir(parents=True, exist_ok=True)
            t = p / ".rwtest"
            t.write_text("ok")
            t.unlink(missing_ok=True)
            return p
        except OSError:
            continue
    return Path.cwd()


DATA_DIR = pick_data_dir()
DEFAULT_SQLITE = f"sqlite:///{(DATA_DIR / 'timeentries.db').as_posix()}"
DB_URL = os.getenv("DATABASE_URL", DEFAULT_SQLITE)
PREFERENCES_FILE = DATA_DIR / "preferences.json"


def is_hosted() -> bool:
    """Render / HF Spaces / Streamlit Cloud."""
    return "RENDER" in os.environ or "SPACE_ID" in os.environ or os.getenv("STREAMLIT_RUNTIME") == "cloud"


# =========================
# Logging
# =========================
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

# preferences.py
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class Preferences:
    """UI state kept on this machine only: theme and last profile used."""
    dark_theme: bool = False
    last_email: str | None = None


def load_preferences(path: Path) -> Preferences:
    """Reads preferences at launch. Missing or unreadable files give defaults."""
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return Preferences()
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable preferences file %s: %s", path, e)
        return Preferences()
    if not isinstance(raw, dict):
        return Preferences()
    last_email = raw.get("last_email")
    return Preferences(
        dark_theme=bool(raw.get("dark_theme", False)),
        last_email=last_email if isinstance(last_email, str) and last_email else None,
    )


def save_preferences(path: Path, prefs: Preferences) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(asdict(prefs)), encoding="utf-8")
    except OSError as e:
        logger.warning("Could not save preferences to %s: %s", path, e)

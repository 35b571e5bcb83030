from __future__ import annotations

from pathlib import Path

from forms_demo import config


def data_dir() -> Path:
    p = Path(config.data_dir())
    p.mkdir(parents=True, exist_ok=True)
    return p


def db_path() -> Path:
    return data_dir() / "forms_demo.sqlite3"

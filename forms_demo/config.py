from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional


def config_path() -> str:
    return os.getenv("FORMS_DEMO_CONFIG", "forms_demo.json")


@lru_cache(maxsize=4)
def _load(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    return _load(path or config_path())


def reload_config() -> None:
    """
    Drop cached config. Use this when the file or FORMS_DEMO_CONFIG changed while running.
    """
    _load.cache_clear()


def _get(cfg: Dict[str, Any], *path: str, default: Any = None) -> Any:
    cur: Any = cfg
    for k in path:
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur


def _env_or(name: str, value: Any) -> Optional[str]:
    env = os.getenv(name)
    if env:
        return env
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def server_host() -> str:
    cfg = load_config()
    return str(_get(cfg, "server", "host", default="127.0.0.1"))


def server_port() -> int:
    cfg = load_config()
    try:
        return int(_get(cfg, "server", "port", default=8080))
    except Exception:
        return 8080


def data_dir() -> str:
    cfg = load_config()
    return _env_or("DATA_DIR", _get(cfg, "data", "dir", default=None)) or "./data"


def admin_username() -> Optional[str]:
    cfg = load_config()
    return _env_or("FORMS_ADMIN_USERNAME", _get(cfg, "auth", "username", default=None))


def admin_app_password() -> Optional[str]:
    cfg = load_config()
    return _env_or("FORMS_ADMIN_APP_PASSWORD", _get(cfg, "auth", "app_password", default=None))


def abilities_enabled() -> bool:
    cfg = load_config()
    return bool(_get(cfg, "abilities", "enabled", default=True))


def bridge_timeout_s() -> float:
    cfg = load_config()
    try:
        return float(_get(cfg, "bridge", "timeout_s", default=30))
    except Exception:
        return 30.0

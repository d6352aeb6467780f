from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv


load_dotenv(override=False)

HOME_ENV = "WFIMPORT_HOME"


def _is_frozen() -> bool:
    return getattr(sys, "frozen", False) and hasattr(sys, "_MEIPASS")


def _project_root() -> Path:
    # When frozen (PyInstaller onefile), resources are under sys._MEIPASS
    if _is_frozen():
        return Path(getattr(sys, "_MEIPASS"))  # type: ignore[arg-type]
    # In source layout, this file is under <root>/wfimport/core
    return Path(__file__).resolve().parents[2]


def _app_dir_writable_base() -> Path:
    """Writable base for runtime files (work/logs).

    - Frozen: alongside the executable
    - Source: repository root
    """
    if _is_frozen():
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[2]


def _config_dir() -> Path:
    return _project_root() / "wfimport" / "config"


def _work_dir() -> Path:
    env = os.getenv(HOME_ENV)
    if env:
        return Path(env).expanduser()
    # Always use a writable location outside of bundled resources
    return _app_dir_writable_base() / "wfimport" / "work"


def resolve_config_path(path: str | Path) -> Path:
    p = Path(path)
    if p.is_absolute():
        return p
    if p.exists():
        return p.resolve()
    # Support paths with or without leading 'wfimport/'
    parts = p.parts
    if parts and parts[0] == "wfimport":
        return _project_root() / p
    return _config_dir() / p

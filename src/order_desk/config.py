import os
from dataclasses import dataclass
from typing import Dict, Optional

from dotenv import dotenv_values

from .logging import get_logger
from .paths import expand_abs, find_project_root, var_dir

log = get_logger("config")

DEFAULT_DB_FOLDER = "orderdb"
DEFAULT_DB_FILENAME = "orders.sqlite3"
DEFAULT_INIT_ATTEMPTS = 3
DEFAULT_INIT_DELAY = 1.0
DEFAULT_PASSWORD_ITERATIONS = 200_000


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir.

    This makes running tools from subdirectories (e.g., `src/`) still find
    repository-level config files like `.env`.
    """
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Return key/value pairs from the nearest .env; does not mutate environment."""
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return {}
    try:
        env = {k: v.strip() for k, v in dotenv_values(path).items() if v is not None}
    except (OSError, UnicodeDecodeError) as e:
        log.warning(f"Failed reading .env: {e}")
        return {}
    log.debug(f"Loaded {len(env)} key(s) from .env at {path}")
    return env


def _lookup(name: str, env: Dict[str, str]) -> Optional[str]:
    v = os.environ.get(name)
    if v is not None and v.strip():
        return v.strip()
    v = env.get(name)
    return v if v else None


def _int_setting(name: str, env: Dict[str, str], default: int, minimum: int = 1) -> int:
    raw = _lookup(name, env)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        log.warning(f"{name}={raw!r} is not an integer; using {default}")
        return default
    if value < minimum:
        log.warning(f"{name}={value} is below {minimum}; using {default}")
        return default
    return value


def _float_setting(name: str, env: Dict[str, str], default: float) -> float:
    raw = _lookup(name, env)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        log.warning(f"{name}={raw!r} is not a number; using {default}")
        return default
    if value < 0:
        log.warning(f"{name}={value} is negative; using {default}")
        return default
    return value


@dataclass(frozen=True)
class Settings:
    db_path: str
    init_attempts: int = DEFAULT_INIT_ATTEMPTS
    init_delay: float = DEFAULT_INIT_DELAY
    password_iterations: int = DEFAULT_PASSWORD_ITERATIONS


def default_db_path(root_dir: Optional[str] = None) -> str:
    """Return `<project-root>/var/orderdb/orders.sqlite3`."""
    root = find_project_root(root_dir)
    return os.path.join(var_dir(root), DEFAULT_DB_FOLDER, DEFAULT_DB_FILENAME)


def load_settings(start_dir: Optional[str] = None, *, db_path: Optional[str] = None) -> Settings:
    """Resolve settings from arguments, environment, then the nearest .env.

    - ORDER_DESK_DB: path to the SQLite file (":memory:" allowed)
    - ORDER_DESK_INIT_ATTEMPTS / ORDER_DESK_INIT_DELAY: store-open retry policy
    - ORDER_DESK_PASSWORD_ITERATIONS: PBKDF2 work factor for new hashes
    """
    start = start_dir or os.getcwd()
    env = _read_dotenv(start)

    path = db_path or _lookup("ORDER_DESK_DB", env)
    if path is None:
        path = default_db_path(start)
    elif path != ":memory:":
        path = expand_abs(path)

    settings = Settings(
        db_path=path,
        init_attempts=_int_setting("ORDER_DESK_INIT_ATTEMPTS", env, DEFAULT_INIT_ATTEMPTS),
        init_delay=_float_setting("ORDER_DESK_INIT_DELAY", env, DEFAULT_INIT_DELAY),
        password_iterations=_int_setting(
            "ORDER_DESK_PASSWORD_ITERATIONS", env, DEFAULT_PASSWORD_ITERATIONS
        ),
    )
    log.debug(f"Settings resolved: db_path={settings.db_path}")
    return settings

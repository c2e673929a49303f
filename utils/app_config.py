"""Pre-DB bootstrap configuration. Zero imports from the rest of the app.

Stores user preferences that must be known before opening the DB (db_folder,
default owner). Config lives in ~/.cashflow/config.json; CASHFLOW_DB_PATH in
the environment wins over anything in the file.
"""
import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(os.getenv("CASHFLOW_CONFIG_DIR", Path.home() / ".cashflow"))
CONFIG_FILE = CONFIG_DIR / "config.json"


def load_config() -> dict:
    """Returns {} on missing or corrupt file — never raises."""
    try:
        with open(CONFIG_FILE, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", CONFIG_FILE, exc)
        return {}


def save_config(config: dict) -> None:
    """Creates the config dir if needed; atomic write via .tmp + os.replace()."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    tmp = CONFIG_FILE.with_suffix(".tmp")
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
        os.replace(tmp, CONFIG_FILE)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


def get_db_path(default_name: str) -> str:
    """CASHFLOW_DB_PATH, else <db_folder>/<default_name>, else ./<default_name>."""
    env_path = os.getenv("CASHFLOW_DB_PATH")
    if env_path:
        return env_path
    folder = load_config().get("db_folder")
    if folder:
        return os.path.join(folder, default_name)
    return default_name


def get_default_owner() -> int | None:
    value = load_config().get("default_owner_id")
    return int(value) if value is not None else None


def set_db_folder(path: str | None) -> None:
    """Update db_folder in config and save."""
    config = load_config()
    if path is None:
        config.pop("db_folder", None)
    else:
        config["db_folder"] = path
    save_config(config)

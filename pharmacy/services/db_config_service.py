"""Persisted MySQL connection settings (``config.json``) edited from the UI."""
import json
import logging
import os
import threading
from pathlib import Path
from typing import Optional
from urllib.parse import quote_plus

from pydantic import ValidationError

from pharmacy.config import Settings, get_settings
from pharmacy.core.constants import PASSWORD_MASK
from pharmacy.schemas.system import DatabaseConfig

logger = logging.getLogger(__name__)

_CONFIG_LOCK = threading.Lock()


def _config_path(path=None) -> Path:
    return Path(path or get_settings().DB_CONFIG_PATH)


def default_config() -> DatabaseConfig:
    return DatabaseConfig(host="mysql", port=3306, user="root", password="root", database="pharma_db")


def load_config(path=None) -> Optional[DatabaseConfig]:
    """Return the saved config, or ``None`` when nothing has been saved yet."""
    config_path = _config_path(path)
    with _CONFIG_LOCK:
        try:
            raw = config_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
    try:
        payload = json.loads(raw)
        return DatabaseConfig.model_validate(payload.get("database") or {})
    except (ValueError, AttributeError, ValidationError) as exc:
        raise ValueError(f"Invalid database config in {config_path}: {exc}") from exc


def save_config(config: DatabaseConfig, path=None) -> Path:
    config_path = _config_path(path)
    data = json.dumps({"database": config.model_dump()}, indent=2)
    with _CONFIG_LOCK:
        if config_path.parent and not config_path.parent.exists():
            config_path.parent.mkdir(parents=True, exist_ok=True)
        # The file holds a password: create it owner-only.
        fd = os.open(config_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
        os.chmod(config_path, 0o600)
    logger.info("Saved database config to %s", config_path)
    return config_path


def masked(config: DatabaseConfig) -> dict:
    payload = config.model_dump()
    payload["password"] = PASSWORD_MASK
    return payload


def build_database_url(config: DatabaseConfig, driver: Optional[str] = None) -> str:
    driver = driver or get_settings().DB_DRIVER
    return (
        f"mysql+{driver}://{quote_plus(config.user)}:{quote_plus(config.password)}"
        f"@{config.host}:{config.port}/{config.database}?charset=utf8mb4"
    )


def resolve_database_url(settings: Optional[Settings] = None) -> str:
    """Saved config wins over ``DATABASE_URL``; an unreadable file is ignored."""
    settings = settings or get_settings()
    try:
        config = load_config(settings.DB_CONFIG_PATH)
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring database config file: %s", exc)
        config = None
    if config is not None:
        return build_database_url(config, settings.DB_DRIVER)
    return settings.DATABASE_URL


__all__ = [
    "build_database_url",
    "default_config",
    "load_config",
    "masked",
    "resolve_database_url",
    "save_config",
]

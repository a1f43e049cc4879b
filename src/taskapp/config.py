"""Configuration management for TaskApp."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

TASKAPP_HOME = Path(os.environ.get("TASKAPP_HOME", Path.home() / "taskapp"))
CONFIG_FILE = TASKAPP_HOME / "config" / "taskapp.conf"
DATA_DIR = TASKAPP_HOME / "data"


@dataclass
class Config:
    """TaskApp configuration."""

    user_id: str = "local"
    timezone: str = "UTC"
    store_backend: str = "file"
    data_dir: str = ""
    # Firestore settings
    firestore_project_id: str = ""
    firestore_id_token: str = ""
    # Auto-urgent monitor
    auto_urgent_interval_minutes: int = 5
    # Azure OpenAI settings
    azure_openai_endpoint: str = field(default_factory=lambda: os.environ.get("AZURE_OPENAI_ENDPOINT", ""))
    azure_openai_api_key: str = field(default_factory=lambda: os.environ.get("AZURE_OPENAI_API_KEY", ""))
    azure_openai_deployment: str = field(default_factory=lambda: os.environ.get("AZURE_OPENAI_DEPLOYMENT", ""))
    azure_openai_api_version: str = field(
        default_factory=lambda: os.environ.get("AZURE_OPENAI_API_VERSION", "2024-02-15-preview")
    )
    # Telegram bot settings
    telegram_bot_token: str = ""
    telegram_allowed_users: list[int] = field(default_factory=list)

    def resolved_data_dir(self) -> Path:
        if self.data_dir:
            return Path(self.data_dir).expanduser()
        return DATA_DIR


def _unquote(value: str) -> str:
    """Strip quotes, or an inline comment from unquoted values."""
    if value.startswith('"') or value.startswith("'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        if end_quote != -1:
            return value[1:end_quote]
        return value[1:]
    # Unquoted: strip inline comments
    if "#" in value:
        return value.split("#")[0].strip()
    return value


def _parse_int(key: str, value: str, default: int) -> int:
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid integer for {key.upper()}: {value!r}, keeping {default}")
        return default


def load_config(path: Path | None = None) -> Config:
    """Load configuration from taskapp.conf file."""
    config = Config()
    path = path or CONFIG_FILE

    if not path.exists():
        return config

    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _unquote(value.strip())

        match key:
            case "user_id":
                config.user_id = value
            case "timezone":
                config.timezone = value
            case "store_backend":
                config.store_backend = value.lower()
            case "data_dir":
                config.data_dir = value
            case "firestore_project_id":
                config.firestore_project_id = value
            case "firestore_id_token":
                config.firestore_id_token = value
            case "auto_urgent_interval_minutes":
                config.auto_urgent_interval_minutes = _parse_int(
                    key, value, config.auto_urgent_interval_minutes
                )
            case "azure_openai_endpoint":
                config.azure_openai_endpoint = value
            case "azure_openai_api_key":
                config.azure_openai_api_key = value
            case "azure_openai_deployment":
                config.azure_openai_deployment = value
            case "azure_openai_api_version":
                config.azure_openai_api_version = value
            case "telegram_bot_token":
                config.telegram_bot_token = value
            case "telegram_allowed_users":
                users = []
                for u in value.split(","):
                    u = u.strip()
                    if not u:
                        continue
                    try:
                        users.append(int(u))
                    except ValueError:
                        logger.warning(f"Ignoring invalid Telegram user id: {u!r}")
                config.telegram_allowed_users = users
            case _:
                logger.debug(f"Unknown config key: {key}")

    return config

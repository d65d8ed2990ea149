import os
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from numberdesk.errors import ConfigError

load_dotenv()

DEFAULT_API_URL = "http://localhost:8100"
DEFAULT_STATE_DIR = os.path.join(os.path.expanduser("~"), ".numberdesk")
CONFIG_FILENAME = "numberdesk.yaml"

# Operator-facing paths. Anything under the prefix is an authenticated view.
OPERATOR_PREFIX = "/admin"
LOGIN_PATH = "/admin/login"

CATEGORIES = ("favorites", "recents", "special")

TIMER_DEFAULT_MINUTES = 2
TIMER_MIN_MINUTES = 1
TIMER_MAX_MINUTES = 60

# Env var -> (settings field, parser)
ENV_OVERRIDES = {
    "NUMBERDESK_API_URL": ("api_url", str),
    "NUMBERDESK_TIMEOUT": ("request_timeout", float),
    "NUMBERDESK_STATE_DIR": ("state_dir", str),
    "NUMBERDESK_POLL_INTERVAL": ("poll_interval_seconds", float),
    "NUMBERDESK_SESSION_TTL_HOURS": ("session_ttl_hours", float),
}


class Settings(BaseModel):
    api_url: str = DEFAULT_API_URL
    request_timeout: float = Field(default=10.0, gt=0)
    session_ttl_hours: float = Field(default=24.0, gt=0)
    poll_interval_seconds: float = Field(default=30.0, gt=0)
    state_dir: str = DEFAULT_STATE_DIR

    @field_validator("api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"api_url must be an http(s) URL, got '{value}'")
        return value.rstrip("/")

    @field_validator("state_dir")
    @classmethod
    def _expand_state_dir(cls, value: str) -> str:
        return os.path.abspath(os.path.expanduser(value))

    @property
    def db_path(self) -> str:
        return os.path.join(self.state_dir, "state.db")

    @property
    def key_path(self) -> str:
        return os.path.join(self.state_dir, "master.key")


def _read_yaml(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def load_settings(path: Optional[str] = None) -> Settings:
    """
    Build Settings from defaults, an optional YAML file and NUMBERDESK_* env vars.

    The YAML file is looked up in this order: explicit `path`, NUMBERDESK_CONFIG,
    then numberdesk.yaml inside the state directory.
    """
    state_dir = os.environ.get("NUMBERDESK_STATE_DIR", DEFAULT_STATE_DIR)
    config_path = path or os.environ.get("NUMBERDESK_CONFIG") or os.path.join(
        os.path.expanduser(state_dir), CONFIG_FILENAME
    )

    data = _read_yaml(config_path)
    for env_var, (field, parse) in ENV_OVERRIDES.items():
        raw = os.environ.get(env_var)
        if raw is None or raw == "":
            continue
        try:
            data[field] = parse(raw)
        except ValueError as e:
            raise ConfigError(f"Invalid value for {env_var}: {raw!r}") from e

    try:
        return Settings(**data)
    except ValueError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

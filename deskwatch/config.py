"""Configuration management with Pydantic Settings + optional YAML."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from deskwatch.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_TAG_PATTERNS = ["#sd", "#service-desk", "#servicedesk"]
DEFAULT_TAGS_FILE = Path("config") / "monitored-tags.json"


class LinearConfig(BaseModel):
    api_key: str = ""
    webhook_secret: str = ""
    team_id: str = ""
    api_url: str = "https://api.linear.app/graphql"
    timeout: float = 15.0
    # Bulk fetch ceiling; keeps the tickets endpoint inside hosting time limits
    max_pages: int = Field(default=2, ge=1)
    page_size: int = Field(default=250, ge=1, le=250)


class SlackConfig(BaseModel):
    webhook_url: str = ""
    timeout: float = 10.0


class ServerConfig(BaseModel):
    bind: str = "0.0.0.0"
    port: int = 8080
    webhook_path: str = "/api/webhooks/linear"
    timestamp_window_seconds: int = 300
    dedupe_window_seconds: int = 600


class DashboardConfig(BaseModel):
    days_back: int = Field(default=14, ge=1)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DESKWATCH_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    linear: LinearConfig = Field(default_factory=LinearConfig)
    slack: SlackConfig = Field(default_factory=SlackConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    dashboard: DashboardConfig = Field(default_factory=DashboardConfig)
    tags_file: str = str(DEFAULT_TAGS_FILE)
    log_level: str = "INFO"
    log_json: bool = False


# Conventional variable names used by Linear/Slack deployments
_PLAIN_ENV_VARS: dict[str, tuple[str, str]] = {
    "LINEAR_API_KEY": ("linear", "api_key"),
    "LINEAR_WEBHOOK_SECRET": ("linear", "webhook_secret"),
    "LINEAR_TEAM_ID": ("linear", "team_id"),
    "SLACK_WEBHOOK_URL": ("slack", "webhook_url"),
}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_settings(
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from env vars, optionally overlaying a YAML config.

    Precedence, highest first: plain ``LINEAR_*``/``SLACK_*`` variables,
    values from the YAML file, ``DESKWATCH_*`` variables, defaults.
    """
    env = os.environ if environ is None else environ
    data: dict[str, Any] = {}

    if config_path is None:
        config_path = env.get("DESKWATCH_CONFIG")

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        else:
            log.warning("config_file_missing", path=str(path))

    overrides: dict[str, Any] = {}
    for var, (section, key) in _PLAIN_ENV_VARS.items():
        value = env.get(var)
        if value:
            overrides.setdefault(section, {})[key] = value

    return Settings(**_deep_merge(data, overrides))


# ---------------------------------------------------------------------------
# Monitored tag patterns
# ---------------------------------------------------------------------------

class TagConfig(BaseModel):
    """Monitored hashtag patterns, loaded once at startup."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_TAG_PATTERNS))
    case_sensitive: bool = Field(default=False, alias="caseSensitive")


TagSource = Callable[[], "TagConfig | None"]


def _env_tag_source(env: Mapping[str, str]) -> TagSource:
    def load() -> TagConfig | None:
        raw = env.get("MONITORED_TAGS")
        if not raw:
            return None
        patterns = [tag.strip() for tag in raw.split(",") if tag.strip()]
        if not patterns:
            raise ValueError("MONITORED_TAGS contains no patterns")
        return TagConfig(patterns=patterns, case_sensitive=False)

    return load


def _file_tag_source(path: Path) -> TagSource:
    def load() -> TagConfig:
        with open(path, encoding="utf-8") as f:
            return TagConfig.model_validate(json.load(f))

    return load


def resolve_tag_config(
    tags_file: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> TagConfig:
    """Resolve the monitored patterns: env override, then JSON file, then defaults.

    A source that is absent or fails to load is skipped with a warning.
    """
    env = os.environ if environ is None else environ
    path = Path(tags_file) if tags_file is not None else DEFAULT_TAGS_FILE

    sources: list[tuple[str, TagSource]] = [
        ("env", _env_tag_source(env)),
        ("file", _file_tag_source(path)),
    ]

    for name, source in sources:
        try:
            config = source()
        except Exception as exc:
            log.warning("tag_source_failed", source=name, error=str(exc))
            continue
        if config is not None:
            log.info(
                "tag_config_loaded",
                source=name,
                patterns=config.patterns,
                case_sensitive=config.case_sensitive,
            )
            return config

    log.warning("tag_config_default", patterns=DEFAULT_TAG_PATTERNS)
    return TagConfig()

"""Configuration for the workspace module.

Loads from YAML config file with environment variable overrides.
Pattern: CONFIG__{SECTION}__{KEY} overrides nested YAML keys.
Example: CONFIG__WORKFLOW__STRICT_TRANSITIONS=true
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class DatabaseConfig(BaseModel):
    url: str = "sqlite:///data/workspace.db"
    echo: bool = False


class WorkflowConfig(BaseModel):
    # False keeps last-write-wins milestone updates from any current status
    strict_transitions: bool = False


class AdminConfig(BaseModel):
    users_page_size: int = Field(default=20, ge=1, le=200)
    projects_page_size: int = Field(default=20, ge=1, le=200)
    audit_page_size: int = Field(default=30, ge=1, le=200)


class PortalConfig(BaseModel):
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]


class WorkspaceConfig(BaseModel):
    database: DatabaseConfig = DatabaseConfig()
    workflow: WorkflowConfig = WorkflowConfig()
    admin: AdminConfig = AdminConfig()
    portal: PortalConfig = PortalConfig()


def _apply_env_overrides(config_dict: dict, prefix: str = "CONFIG") -> dict:
    """Apply environment variable overrides to config dict.

    Pattern: CONFIG__SECTION__KEY=value maps to config[section][key] = value
    """
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}__"):
            continue
        parts = key[len(prefix) + 2 :].lower().split("__")
        target = config_dict
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        if value.lower() in ("true", "false"):
            value = value.lower() == "true"
        elif value.isdigit():
            value = int(value)
        target[parts[-1]] = value
    return config_dict


def load_config(config_path: Optional[str] = None) -> WorkspaceConfig:
    """Load configuration from YAML file with env overrides.

    Priority: env vars > YAML file > defaults
    """
    config_dict = {}

    if config_path is None:
        config_path = os.getenv("WORKSPACE_CONFIG_PATH", "config/workspace.yml")
    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            config_dict = yaml.safe_load(f) or {}

    config_dict = _apply_env_overrides(config_dict)

    # Dedicated env var wins, same as DATABASE_URL in the services
    db_url = os.getenv("WORKSPACE_DATABASE_URL")
    if db_url:
        config_dict.setdefault("database", {})["url"] = db_url

    return WorkspaceConfig(**config_dict)


_config: Optional[WorkspaceConfig] = None


def get_config() -> WorkspaceConfig:
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(config_path: Optional[str] = None) -> WorkspaceConfig:
    global _config
    _config = load_config(config_path)
    return _config

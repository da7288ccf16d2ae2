from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml

from jql_to_plan.core.errors import ConfigError
from jql_to_plan.logging import get_logger


CONFIG_FILE_NAME = ".jql-to-plan.yaml"
ENV_PREFIX = "APP_"

CONFIG_TEMPLATE = """\
# Jira Configuration
jira_url: "https://your-domain.atlassian.net"
jira_pat: "your-personal-access-token"

# Optional: Custom Field ID for Effort (e.g. customfield_10105)
# This is required for accurate effort estimation in the Gantt chart.
# effort_custom_field_id: "10105"

# Optional: Custom Field ID for Epic Link (e.g. customfield_11000)
# This is required for grouping tasks by Epic.
# epic_link_custom_field_id: "11000"
"""

logger = get_logger("config")


@dataclass(frozen=True)
class Config:
    jira_url: str = ""
    jira_pat: str = ""
    effort_custom_field_id: str = ""
    epic_link_custom_field_id: str = ""


def config_path() -> Path:
    """Where the `config` command creates the file."""
    return Path.home() / CONFIG_FILE_NAME


def find_config_file(search_dirs: Optional[list[Path]] = None) -> Optional[Path]:
    dirs = search_dirs if search_dirs is not None else [Path.cwd(), Path.home()]
    for d in dirs:
        p = d / CONFIG_FILE_NAME
        if p.is_file():
            return p
    return None


def load_config(
    path: str | Path | None = None,
    *,
    env: Optional[dict[str, str]] = None,
    search_dirs: Optional[list[Path]] = None,
) -> Config:
    """Load configuration from YAML plus environment overrides.

    Precedence (highest first): JIRA_URL / JIRA_PAT, APP_<KEY>, config file.
    Without a config file, JIRA_URL and JIRA_PAT must both be set.
    """

    env = dict(os.environ) if env is None else env

    if path is not None:
        cfg_file: Optional[Path] = Path(path)
        if not cfg_file.is_file():
            raise ConfigError(
                code="E_CONFIG_NOT_FOUND",
                message="configuration file does not exist",
                file=str(cfg_file),
            )
    else:
        cfg_file = find_config_file(search_dirs)

    data: dict[str, Any] = {}
    if cfg_file is not None:
        data = _read_yaml(cfg_file)
    elif not (env.get("JIRA_URL") and env.get("JIRA_PAT")):
        raise ConfigError(
            code="E_CONFIG_NOT_FOUND",
            message=f"no {CONFIG_FILE_NAME} found and JIRA_URL/JIRA_PAT are not set; "
            "run 'jql-to-plan config' to create one",
        )

    values: dict[str, str] = {}
    for f in fields(Config):
        v = data.get(f.name)
        if v is not None:
            values[f.name] = str(v)
        env_v = env.get(ENV_PREFIX + f.name.upper())
        if env_v:
            values[f.name] = env_v

    if env.get("JIRA_URL"):
        values["jira_url"] = env["JIRA_URL"]
    if env.get("JIRA_PAT"):
        values["jira_pat"] = env["JIRA_PAT"]

    cfg = Config(**values)
    if not cfg.jira_url or not cfg.jira_pat:
        logger.warning("JIRA_URL or JIRA_PAT not found in config or environment")
    return cfg


def write_config_template(path: Path) -> bool:
    """Create the config file from the template. Returns False if it already exists."""
    if path.exists():
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(CONFIG_TEMPLATE, encoding="utf-8")
    path.chmod(0o600)
    return True


def _read_yaml(p: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(code="E_YAML_PARSE", message=str(e), file=str(p)) from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(
            code="E_INVALID_TOP_LEVEL",
            message="configuration must be a mapping",
            file=str(p),
        )
    return raw

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any

import yaml

from jql_to_plan.core.errors import PlanLoadError
from jql_to_plan.core.model import Ticket


def load_tickets(path: str) -> tuple[list[Ticket], dict[str, Ticket]]:
    """Load a YAML/JSON ticket export.

    Expected shape::

      tickets: [{key, summary, link, assignee, status, effort_days, epic_key, dependency_keys}]
      epics:   [{key, summary, link, status}]   # optional

    Only shape is checked; values are passed to the builder as-is.
    """

    p = Path(path)
    if not p.exists():
        raise PlanLoadError(
            code="E_FILE_NOT_FOUND",
            message="file does not exist",
            file=str(p),
        )

    suffix = p.suffix.lower()
    if suffix not in {".yaml", ".yml", ".json"}:
        raise PlanLoadError(
            code="E_UNSUPPORTED_FORMAT",
            message="supported formats are .yaml/.yml and .json",
            file=str(p),
        )

    raw_text = p.read_text(encoding="utf-8")
    try:
        if suffix == ".json":
            data = json.loads(raw_text)
        else:
            data = yaml.safe_load(raw_text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        code = "E_JSON_PARSE" if suffix == ".json" else "E_YAML_PARSE"
        raise PlanLoadError(code=code, message=str(e), file=str(p)) from e

    if not isinstance(data, dict):
        raise PlanLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="top-level document must be a mapping/object",
            file=str(p),
        )

    tickets = _parse_list(data.get("tickets"), "tickets", str(p), required=True)
    epic_list = _parse_list(data.get("epics"), "epics", str(p), required=False)
    return tickets, {e.key: e for e in epic_list}


def _parse_list(raw: Any, name: str, file: str, *, required: bool) -> list[Ticket]:
    if raw is None and not required:
        return []
    if not isinstance(raw, list):
        raise PlanLoadError(
            code="E_INVALID_TYPE" if raw is not None else "E_REQUIRED_FIELD",
            message=f"{name} must be an array",
            file=file,
            path=name,
        )
    return [_parse_ticket(item, f"{name}[{i}]", file) for i, item in enumerate(raw)]


def _parse_ticket(raw: Any, path: str, file: str) -> Ticket:
    if not isinstance(raw, dict):
        raise PlanLoadError(code="E_INVALID_TYPE", message="ticket must be an object", file=file, path=path)

    key = raw.get("key")
    if not isinstance(key, str) or not key.strip():
        raise PlanLoadError(
            code="E_REQUIRED_FIELD",
            message="key is required and must be a non-empty string",
            file=file,
            path=f"{path}.key",
        )

    effort = raw.get("effort_days")
    if effort is None:
        effort = 0.0
    elif (
        isinstance(effort, bool)
        or not isinstance(effort, (int, float))
        or not math.isfinite(effort)
    ):
        raise PlanLoadError(
            code="E_INVALID_TYPE",
            message="effort_days must be a finite number",
            file=file,
            path=f"{path}.effort_days",
        )

    deps = raw.get("dependency_keys") or []
    if not isinstance(deps, list) or not all(isinstance(d, str) for d in deps):
        raise PlanLoadError(
            code="E_INVALID_TYPE",
            message="dependency_keys must be an array of strings",
            file=file,
            path=f"{path}.dependency_keys",
        )

    return Ticket(
        key=key,
        summary=_str(raw.get("summary")),
        link=_str(raw.get("link")),
        assignee=_str(raw.get("assignee")) or None,
        status=_str(raw.get("status")),
        effort_days=float(effort),
        epic_key=_str(raw.get("epic_key")) or None,
        dependency_keys=list(deps),
    )


def _str(v: Any) -> str:
    return "" if v is None else str(v)

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional


TaskType = Literal["", "group", "milestone"]

SECONDS_PER_DAY = 8 * 3600


@dataclass(frozen=True)
class Ticket:
    """A tracker work item. Epics use the same shape."""

    key: str
    summary: str = ""
    link: str = ""
    assignee: Optional[str] = None
    status: str = ""
    effort_days: float = 0.0
    epic_key: Optional[str] = None
    dependency_keys: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class BuildOptions:
    group_by_epic: bool = False
    add_done_milestone: bool = False
    project_name: str = ""


@dataclass(frozen=True)
class Reference:
    idref: str


@dataclass(frozen=True)
class Prerequisite:
    idref: str
    kind: Optional[str] = None


@dataclass(frozen=True)
class UserDataItem:
    key: str
    value: str


@dataclass(frozen=True)
class Note:
    paragraphs: list[str]


@dataclass
class Resource:
    id: str
    name: str = ""
    type: str = ""
    child_resources: list[Reference] = field(default_factory=list)


@dataclass
class Task:
    id: str
    title: str = ""
    type: TaskType = ""
    leveled_start: str = ""
    effort: int = 0  # seconds
    recalculate: str = ""
    static_cost: int = 0
    child_tasks: list[Reference] = field(default_factory=list)
    user_data: list[UserDataItem] = field(default_factory=list)
    prerequisites: list[Prerequisite] = field(default_factory=list)
    assignments: list[Reference] = field(default_factory=list)
    note: Optional[Note] = None


@dataclass(frozen=True)
class Color:
    space: str
    r: str
    g: str
    b: str


@dataclass(frozen=True)
class CriticalPath:
    root: str = "-1"
    enabled: str = "false"
    resources: str = "false"
    color: Color = Color(space="srgb", r="1", g="0.5", b="0.5")


@dataclass
class PlanDocument:
    scenario_id: str
    top_resource_id: str
    top_task_id: str
    resources: list[Resource]
    tasks: list[Task]
    top_level_refs: list[Reference]
    critical_paths: list[CriticalPath] = field(default_factory=lambda: [CriticalPath()])

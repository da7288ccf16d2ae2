from __future__ import annotations

from typing import Iterable, Mapping, Optional

from jql_to_plan.core.ids import IdAllocator, default_ids
from jql_to_plan.core.model import (
    SECONDS_PER_DAY,
    BuildOptions,
    PlanDocument,
    Prerequisite,
    Reference,
    Resource,
    Task,
    Ticket,
    UserDataItem,
)
from jql_to_plan.logging import get_logger


logger = get_logger("build")

TOP_RESOURCE_ID = "r-1"
TOP_TASK_ID = "t-1"


def build_plan(
    tickets: Iterable[Ticket],
    epics: Optional[Mapping[str, Ticket]] = None,
    options: Optional[BuildOptions] = None,
    *,
    ids: Optional[IdAllocator] = None,
) -> PlanDocument:
    """Turn tracker tickets into a resolved plan graph.

    Phase 1 allocates every resource, leaf, epic group and milestone id and
    records ticket key -> task id. Phase 2 resolves dependency keys against that
    lookup; unknown keys are dropped with a warning.

    Output order: root group, leaf tasks (input order), epic group/milestone
    pairs (first-seen epic order), then the final "Done" milestone.
    """

    tickets = list(tickets)
    epics = epics or {}
    options = options or BuildOptions()
    ids = ids or default_ids

    scenario_id = ids.next("gen")

    staff, resource_by_assignee = _build_resources(tickets, ids)

    top_refs: list[Reference] = []
    leaves: list[Task] = []
    task_by_key: dict[str, Task] = {}
    epic_children: dict[str, list[Reference]] = {}

    for ticket in tickets:
        task = Task(
            id=ids.next("t"),
            title=ticket.summary,
            effort=effort_seconds(ticket.effort_days),
            recalculate="duration",
            user_data=_jira_user_data(ticket.key, ticket.link, ticket.status),
        )
        if ticket.assignee and ticket.assignee in resource_by_assignee:
            task.assignments.append(Reference(resource_by_assignee[ticket.assignee]))

        leaves.append(task)
        task_by_key[ticket.key] = task

        if options.group_by_epic and ticket.epic_key:
            epic_children.setdefault(ticket.epic_key, []).append(Reference(task.id))
        else:
            top_refs.append(Reference(task.id))

    epic_tasks: list[Task] = []
    epic_milestone_ids: list[str] = []
    if options.group_by_epic:
        for epic_key, children in epic_children.items():
            group, milestone = _build_epic(epic_key, epics.get(epic_key), children, ids)
            epic_tasks.extend([group, milestone])
            epic_milestone_ids.append(milestone.id)
            top_refs.extend([Reference(group.id), Reference(milestone.id)])

    tail: list[Task] = []
    if options.add_done_milestone:
        if options.group_by_epic:
            done_prereqs = list(epic_milestone_ids)
        else:
            # Milestones can only come from epic grouping, so this is normally empty.
            done_prereqs = [t.id for t in leaves + epic_tasks if t.type == "milestone"]
        if done_prereqs:
            done = Task(
                id=ids.next("t"),
                title="Done",
                type="milestone",
                recalculate="duration",
                prerequisites=[Prerequisite(pid) for pid in done_prereqs],
            )
            tail.append(done)
            top_refs.append(Reference(done.id))

    _resolve_dependencies(tickets, leaves, task_by_key)

    root = Task(
        id=TOP_TASK_ID,
        type="group",
        recalculate="duration",
        child_tasks=list(top_refs),
    )
    project = Resource(
        id=TOP_RESOURCE_ID,
        name=options.project_name,
        type="Project",
        child_resources=[Reference(r.id) for r in staff],
    )

    return PlanDocument(
        scenario_id=scenario_id,
        top_resource_id=TOP_RESOURCE_ID,
        top_task_id=TOP_TASK_ID,
        resources=[project] + staff,
        tasks=[root] + leaves + epic_tasks + tail,
        top_level_refs=top_refs,
    )


def effort_seconds(effort_days: float) -> int:
    """Working-day effort in seconds; unset or zero means one 8h day."""
    if effort_days and effort_days > 0:
        return int(round(effort_days * SECONDS_PER_DAY))
    return SECONDS_PER_DAY


def _build_resources(
    tickets: list[Ticket], ids: IdAllocator
) -> tuple[list[Resource], dict[str, str]]:
    staff: list[Resource] = []
    by_assignee: dict[str, str] = {}
    for ticket in tickets:
        name = ticket.assignee
        if not name or name in by_assignee:
            continue
        res = Resource(id=ids.next("r"), name=name, type="Staff")
        by_assignee[name] = res.id
        staff.append(res)
    return staff, by_assignee


def _build_epic(
    epic_key: str,
    epic: Optional[Ticket],
    children: list[Reference],
    ids: IdAllocator,
) -> tuple[Task, Task]:
    summary = epic.summary if epic is not None else epic_key
    link = epic.link if epic is not None else ""
    status = epic.status if epic is not None else ""

    group = Task(
        id=ids.next("t"),
        title=summary,
        type="group",
        recalculate="duration",
        child_tasks=list(children),
        user_data=_jira_user_data(epic_key, link, status),
    )
    milestone = Task(
        id=ids.next("t"),
        title=f"{summary} Done",
        type="milestone",
        recalculate="duration",
        prerequisites=[Prerequisite(group.id)],
    )
    return group, milestone


def _resolve_dependencies(
    tickets: list[Ticket], leaves: list[Task], task_by_key: dict[str, Task]
) -> None:
    for ticket, task in zip(tickets, leaves):
        if not ticket.dependency_keys:
            continue
        for dep_key in ticket.dependency_keys:
            dep = task_by_key.get(dep_key)
            if dep is None:
                logger.warning(
                    "ticket %s depends on %s, but %s was not found in the result set",
                    ticket.key,
                    dep_key,
                    dep_key,
                )
                continue
            task.prerequisites.append(Prerequisite(dep.id))


def _jira_user_data(key: str, link: str, status: str) -> list[UserDataItem]:
    return [
        UserDataItem("Jira Key", key),
        UserDataItem("Jira Link", link),
        UserDataItem("Jira Status", status),
    ]

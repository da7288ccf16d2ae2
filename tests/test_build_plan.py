import logging

from jql_to_plan.core.build.build_plan import TOP_RESOURCE_ID, TOP_TASK_ID, build_plan, effort_seconds
from jql_to_plan.core.ids import IdAllocator
from jql_to_plan.core.model import BuildOptions, Ticket


def _tickets():
    return [
        Ticket(key="TEST-1", summary="First Task", link="https://jira/TEST-1", assignee="Alice Smith", effort_days=2),
        Ticket(
            key="TEST-2",
            summary="Second Task",
            link="https://jira/TEST-2",
            assignee="Bob Jones",
            effort_days=5,
            dependency_keys=["TEST-1"],
        ),
        Ticket(key="TEST-3", summary="Third Task", link="https://jira/TEST-3", assignee="Alice Smith"),
    ]


def _leaf(doc, key):
    for t in doc.tasks:
        if t.user_data and t.user_data[0].value == key and t.type == "":
            return t
    raise AssertionError(f"no leaf task for {key}")


def test_effort_conversion():
    assert effort_seconds(2) == 57600
    assert effort_seconds(5) == 144000
    assert effort_seconds(0) == 28800
    assert effort_seconds(0.5) == 14400


def test_build_basic_shape():
    doc = build_plan(_tickets(), ids=IdAllocator())

    assert doc.top_task_id == TOP_TASK_ID
    assert doc.top_resource_id == TOP_RESOURCE_ID
    assert doc.tasks[0].id == TOP_TASK_ID
    assert doc.tasks[0].type == "group"

    leaves = [t for t in doc.tasks if t.type == ""]
    assert len(leaves) == 3
    assert [t.effort for t in leaves] == [57600, 144000, 28800]
    assert [t.user_data[0].value for t in leaves] == ["TEST-1", "TEST-2", "TEST-3"]
    assert [item.key for item in leaves[0].user_data] == ["Jira Key", "Jira Link", "Jira Status"]

    # Without grouping every ticket is top level, in input order.
    assert [r.idref for r in doc.tasks[0].child_tasks] == [t.id for t in leaves]
    assert doc.top_level_refs == doc.tasks[0].child_tasks


def test_build_resources_dedup_by_assignee():
    doc = build_plan(_tickets(), options=BuildOptions(project_name="Test Project"), ids=IdAllocator())

    project, *staff = doc.resources
    assert project.type == "Project"
    assert project.name == "Test Project"
    assert [r.name for r in staff] == ["Alice Smith", "Bob Jones"]
    assert all(r.type == "Staff" for r in staff)
    assert [c.idref for c in project.child_resources] == [r.id for r in staff]

    alice = staff[0].id
    assert [a.idref for a in _leaf(doc, "TEST-1").assignments] == [alice]
    assert [a.idref for a in _leaf(doc, "TEST-3").assignments] == [alice]


def test_ticket_without_assignee_gets_no_assignment():
    doc = build_plan([Ticket(key="A", summary="a")], ids=IdAllocator())
    assert _leaf(doc, "A").assignments == []
    assert len(doc.resources) == 1


def test_dependency_resolved_to_task_id():
    tickets = [Ticket(key="A", summary="a"), Ticket(key="B", summary="b", dependency_keys=["A"])]
    doc = build_plan(tickets, ids=IdAllocator())

    a = _leaf(doc, "A")
    b = _leaf(doc, "B")
    assert [p.idref for p in b.prerequisites] == [a.id]
    assert a.prerequisites == []


def test_unknown_dependency_dropped_with_warning(caplog):
    tickets = [Ticket(key="A", summary="a"), Ticket(key="B", summary="b", dependency_keys=["Z", "A"])]
    with caplog.at_level(logging.WARNING, logger="jql_to_plan.build"):
        doc = build_plan(tickets, ids=IdAllocator())

    b = _leaf(doc, "B")
    assert [p.idref for p in b.prerequisites] == [_leaf(doc, "A").id]
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "B" in warnings[0].getMessage()
    assert "Z" in warnings[0].getMessage()


def test_empty_ticket_list():
    doc = build_plan([], ids=IdAllocator())
    assert len(doc.tasks) == 1
    assert doc.tasks[0].child_tasks == []
    assert len(doc.resources) == 1
    assert doc.resources[0].child_resources == []


def test_group_by_epic():
    tickets = [
        Ticket(key="T-1", summary="one", epic_key="EPIC-1"),
        Ticket(key="T-2", summary="two", epic_key="EPIC-2"),
        Ticket(key="T-3", summary="three"),
        Ticket(key="T-4", summary="four", epic_key="EPIC-1"),
    ]
    epics = {"EPIC-1": Ticket(key="EPIC-1", summary="Epic One", link="https://jira/EPIC-1", status="Open")}
    doc = build_plan(tickets, epics, BuildOptions(group_by_epic=True), ids=IdAllocator())

    groups = [t for t in doc.tasks[1:] if t.type == "group"]
    milestones = [t for t in doc.tasks if t.type == "milestone"]
    assert [g.title for g in groups] == ["Epic One", "EPIC-2"]
    assert [m.title for m in milestones] == ["Epic One Done", "EPIC-2 Done"]

    epic_one = groups[0]
    assert [u.value for u in epic_one.user_data] == ["EPIC-1", "https://jira/EPIC-1", "Open"]
    assert [c.idref for c in epic_one.child_tasks] == [_leaf(doc, "T-1").id, _leaf(doc, "T-4").id]
    assert [p.idref for p in milestones[0].prerequisites] == [epic_one.id]

    # Unknown epic falls back to its key with empty link/status.
    assert [u.value for u in groups[1].user_data] == ["EPIC-2", "", ""]

    top = [r.idref for r in doc.tasks[0].child_tasks]
    assert top == [
        _leaf(doc, "T-3").id,
        groups[0].id,
        milestones[0].id,
        groups[1].id,
        milestones[1].id,
    ]

    # Order: root, leaves, then each epic group followed by its milestone.
    assert [t.type for t in doc.tasks] == ["group", "", "", "", "", "group", "milestone", "group", "milestone"]


def test_known_epic_with_empty_summary_keeps_empty_title():
    tickets = [Ticket(key="T-1", summary="one", epic_key="EPIC-1")]
    epics = {"EPIC-1": Ticket(key="EPIC-1", summary="", link="https://jira/EPIC-1", status="Open")}
    doc = build_plan(tickets, epics, BuildOptions(group_by_epic=True), ids=IdAllocator())

    group, milestone = doc.tasks[2], doc.tasks[3]
    assert group.type == "group"
    assert group.title == ""
    assert milestone.title == " Done"
    assert [u.value for u in group.user_data] == ["EPIC-1", "https://jira/EPIC-1", "Open"]


def test_done_milestone_depends_on_epic_milestones():
    tickets = [
        Ticket(key="T-1", summary="one", epic_key="EPIC-1"),
        Ticket(key="T-2", summary="two", epic_key="EPIC-2"),
    ]
    doc = build_plan(
        tickets,
        {},
        BuildOptions(group_by_epic=True, add_done_milestone=True),
        ids=IdAllocator(),
    )

    done = doc.tasks[-1]
    assert done.title == "Done"
    assert done.type == "milestone"
    epic_milestones = [t.id for t in doc.tasks if t.type == "milestone" and t.title != "Done"]
    assert [p.idref for p in done.prerequisites] == epic_milestones
    assert doc.tasks[0].child_tasks[-1].idref == done.id
    assert len([t for t in doc.tasks if t.title == "Done"]) == 1


def test_done_milestone_skipped_without_milestones():
    doc = build_plan(_tickets(), options=BuildOptions(add_done_milestone=True), ids=IdAllocator())
    assert not any(t.title == "Done" for t in doc.tasks)
    assert not any(t.type == "milestone" for t in doc.tasks)


def test_done_milestone_skipped_when_no_epics():
    doc = build_plan(
        [Ticket(key="A", summary="a")],
        options=BuildOptions(group_by_epic=True, add_done_milestone=True),
        ids=IdAllocator(),
    )
    assert [t.type for t in doc.tasks] == ["group", ""]


def test_generated_ids_are_unique():
    tickets = _tickets() + [Ticket(key="E-1", summary="x", epic_key="EPIC-9")]
    doc = build_plan(
        tickets,
        options=BuildOptions(group_by_epic=True, add_done_milestone=True),
        ids=IdAllocator(),
    )
    all_ids = [doc.scenario_id] + [r.id for r in doc.resources] + [t.id for t in doc.tasks]
    assert len(all_ids) == len(set(all_ids))

    task_ids = {t.id for t in doc.tasks}
    resource_ids = {r.id for r in doc.resources}
    for t in doc.tasks:
        assert {c.idref for c in t.child_tasks} <= task_ids
        assert {p.idref for p in t.prerequisites} <= task_ids
        assert {a.idref for a in t.assignments} <= resource_ids

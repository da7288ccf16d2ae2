from __future__ import annotations

import io
from typing import BinaryIO
from xml.etree.ElementTree import Element, SubElement, indent, tostring

from jql_to_plan.core.errors import PlanWriteError
from jql_to_plan.core.model import CriticalPath, PlanDocument, Resource, Task, UserDataItem


NAMESPACE = "http://www.omnigroup.com/namespace/OmniPlan/v2"
GRANULARITY = "days"
XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'


def serialize_plan(document: PlanDocument, sink: BinaryIO) -> None:
    """Write ``document`` as an OmniPlan scenario to a binary sink.

    Any sink failure aborts the write; whatever reached the sink before the
    failure is left for the caller to discard.
    """

    root = scenario_element(document)
    indent(root, space="  ")
    body = tostring(root, encoding="unicode")

    for chunk in (XML_HEADER, body, "\n"):
        try:
            sink.write(chunk.encode("utf-8"))
        except (OSError, ValueError) as e:
            raise PlanWriteError(code="E_WRITE", message=str(e), path="scenario") from e


def serialize_plan_bytes(document: PlanDocument) -> bytes:
    buf = io.BytesIO()
    serialize_plan(document, buf)
    return buf.getvalue()


def scenario_element(document: PlanDocument) -> Element:
    root = Element("scenario")
    root.set("xmlns", NAMESPACE)
    root.set("xmlns:opns", NAMESPACE)
    root.set("id", document.scenario_id)

    _text(root, "granularity", GRANULARITY)
    SubElement(root, "top-resource", idref=document.top_resource_id)
    for resource in document.resources:
        _resource(root, resource)
    SubElement(root, "top-task", idref=document.top_task_id)
    for task in document.tasks:
        _task(root, task)
    for cp in document.critical_paths:
        _critical_path(root, cp)
    return root


def _resource(parent: Element, resource: Resource) -> None:
    el = SubElement(parent, "resource", id=resource.id)
    _optional_text(el, "name", resource.name)
    _optional_text(el, "type", resource.type)
    for ref in resource.child_resources:
        SubElement(el, "child-resource", idref=ref.idref)


def _task(parent: Element, task: Task) -> None:
    el = SubElement(parent, "task", id=task.id)
    _optional_text(el, "title", task.title)
    _optional_text(el, "type", task.type)
    _optional_text(el, "leveled-start", task.leveled_start)
    if task.effort:
        _text(el, "effort", str(int(task.effort)))
    _optional_text(el, "recalculate", task.recalculate)
    _text(el, "static-cost", str(task.static_cost))

    for ref in task.child_tasks:
        SubElement(el, "child-task", idref=ref.idref)
    _user_data(el, task.user_data)
    for prereq in task.prerequisites:
        p = SubElement(el, "prerequisite-task", idref=prereq.idref)
        if prereq.kind:
            p.set("kind", prereq.kind)
    for ref in task.assignments:
        SubElement(el, "assignment", idref=ref.idref)

    if task.note is not None:
        text = SubElement(SubElement(el, "note"), "text")
        for paragraph in task.note.paragraphs:
            run = SubElement(SubElement(text, "p"), "run")
            _text(run, "lit", paragraph)


def _user_data(parent: Element, items: list[UserDataItem]) -> None:
    # Alternating <key>/<string> pairs; no container at all when empty.
    if not items:
        return
    el = SubElement(parent, "user-data")
    for item in items:
        _text(el, "key", item.key)
        _text(el, "string", item.value)


def _critical_path(parent: Element, cp: CriticalPath) -> None:
    el = SubElement(
        parent,
        "critical-path",
        root=cp.root,
        enabled=cp.enabled,
        resources=cp.resources,
    )
    SubElement(el, "color", space=cp.color.space, r=cp.color.r, g=cp.color.g, b=cp.color.b)


def _text(parent: Element, tag: str, value: str) -> Element:
    el = SubElement(parent, tag)
    el.text = value
    return el


def _optional_text(parent: Element, tag: str, value: str) -> None:
    if value:
        _text(parent, tag, value)

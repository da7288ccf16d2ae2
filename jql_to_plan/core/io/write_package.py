from __future__ import annotations

from importlib import resources
from pathlib import Path

from jql_to_plan.core.errors import PlanWriteError
from jql_to_plan.core.model import PlanDocument
from jql_to_plan.core.serialize.serialize_plan import serialize_plan


PACKAGE_SUFFIX = ".oplx"
DOCUMENT_NAME = "Actual.xml"
TEMPLATE_FILES = ("__TOC.xml", "__changelog.xml")


def write_package(document: PlanDocument, project_name: str, out_dir: str | Path = ".") -> Path:
    """Write ``<out_dir>/<project_name>.oplx`` and return its path.

    The package holds the serialized scenario plus the static templates,
    copied byte-for-byte.
    """

    pkg = Path(out_dir) / f"{project_name}{PACKAGE_SUFFIX}"
    actual = pkg / DOCUMENT_NAME
    try:
        pkg.mkdir(parents=True, exist_ok=True)
        with actual.open("wb") as f:
            serialize_plan(document, f)
    except OSError as e:
        raise PlanWriteError(code="E_WRITE", message=str(e), file=str(actual)) from e

    for name in TEMPLATE_FILES:
        dst = pkg / name
        try:
            dst.write_bytes(template_bytes(name))
        except OSError as e:
            raise PlanWriteError(code="E_WRITE", message=str(e), file=str(dst)) from e

    return pkg


def template_bytes(name: str) -> bytes:
    return resources.files("jql_to_plan.templates").joinpath(name).read_bytes()

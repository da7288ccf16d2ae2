from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import click
import typer

from jql_to_plan.core.build.build_plan import build_plan
from jql_to_plan.core.config import Config, config_path, load_config, write_config_template
from jql_to_plan.core.errors import ConfigError, PlanError
from jql_to_plan.core.io.load_tickets import load_tickets
from jql_to_plan.core.io.write_package import write_package
from jql_to_plan.core.jira.client import JiraClient
from jql_to_plan.core.model import BuildOptions, PlanDocument, Ticket
from jql_to_plan.logging import get_logger, setup_logging

app = typer.Typer(add_completion=False, no_args_is_help=True)

logger = get_logger("cli")


@app.callback()
def _callback(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="DEBUG|INFO|WARNING|ERROR (default: $JQL_TO_PLAN_LOG_LEVEL or WARNING)"
    ),
    log_file: Optional[str] = typer.Option(
        None, "--log-file", help="Also write logs to this file (rotated at 10MB)"
    ),
) -> None:
    """Turn Jira JQL results into OmniPlan project plans."""
    setup_logging(level=log_level, log_file=log_file)


@app.command("export")
def export(
    project: str = typer.Argument(..., help="Project name; also names the .oplx package"),
    jql: str = typer.Argument(..., help="JQL query selecting the tickets"),
    epic_group: bool = typer.Option(False, "--epic-group", "-e", help="Group tasks by Epic"),
    milestone_done: bool = typer.Option(
        False, "--milestone-done", "-m", help="Add a final 'Done' milestone"
    ),
    out_dir: str = typer.Option(".", "--out-dir", help="Directory to write the package into"),
) -> None:
    """Fetch tickets for JQL and write <project>.oplx."""
    try:
        cfg = load_config()
        _check_export_config(cfg, epic_group)
        with JiraClient(
            cfg.jira_url,
            cfg.jira_pat,
            cfg.effort_custom_field_id,
            cfg.epic_link_custom_field_id,
        ) as client:
            tickets, epics = client.search_tickets(jql)
        pkg = _build_and_write(tickets, epics, project, epic_group, milestone_done, out_dir)
    except PlanError as e:
        _print_errors([e])
        raise typer.Exit(code=1)

    typer.echo(f"Created OmniPlan package: {pkg}")


@app.command("render")
def render(
    tickets_file: str = typer.Argument(..., help="Ticket export (.yaml/.yml/.json)"),
    project: str = typer.Argument(..., help="Project name; also names the .oplx package"),
    epic_group: bool = typer.Option(False, "--epic-group", "-e", help="Group tasks by Epic"),
    milestone_done: bool = typer.Option(
        False, "--milestone-done", "-m", help="Add a final 'Done' milestone"
    ),
    out_dir: str = typer.Option(".", "--out-dir", help="Directory to write the package into"),
) -> None:
    """Build <project>.oplx from a local ticket file (no Jira access)."""
    try:
        tickets, epics = load_tickets(tickets_file)
        pkg = _build_and_write(tickets, epics, project, epic_group, milestone_done, out_dir)
    except PlanError as e:
        _print_errors([e])
        raise typer.Exit(code=1)

    typer.echo(f"Created OmniPlan package: {pkg}")


@app.command("config")
def config(
    edit: bool = typer.Option(True, "--edit/--no-edit", help="Open the file in $EDITOR"),
) -> None:
    """Create the configuration file if missing and open it for editing."""
    path = config_path()
    try:
        created = write_config_template(path)
    except OSError as e:
        _print_errors([ConfigError(code="E_CONFIG_WRITE", message=str(e), file=str(path))])
        raise typer.Exit(code=1)

    if created:
        typer.echo(f"Created new configuration file at: {path}")
    else:
        typer.echo(f"Configuration file already exists at: {path}")

    if not edit:
        return
    try:
        click.edit(filename=str(path))
    except click.ClickException as e:
        typer.echo(f"Error opening editor: {e}", err=True)
        typer.echo(f"Please edit the file manually at: {path}", err=True)


@app.command("fields")
def fields(
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    custom_only: bool = typer.Option(False, "--custom-only", help="Only list custom fields"),
) -> None:
    """List Jira fields, to find the effort and epic link custom field ids."""
    if format not in ("text", "json"):
        _print_errors(
            [
                ConfigError(
                    code="E_FIELDS_UNKNOWN_FORMAT",
                    message=f"unknown format: {format} (choose one of: text, json)",
                    path="format",
                )
            ]
        )
        raise typer.Exit(code=2)

    try:
        cfg = load_config()
        _require_credentials(cfg)
        with JiraClient(cfg.jira_url, cfg.jira_pat) as client:
            items = client.list_fields()
    except PlanError as e:
        _print_errors([e])
        raise typer.Exit(code=1)

    if custom_only:
        items = [f for f in items if f["custom"]]
    items = sorted(items, key=lambda f: str(f["id"]))

    if format == "json":
        typer.echo(json.dumps(items, indent=2, sort_keys=True))
        return
    for f in items:
        typer.echo(f"{f['id']}\t{f['name']}")


def _build_and_write(
    tickets: list[Ticket],
    epics: dict[str, Ticket],
    project: str,
    epic_group: bool,
    milestone_done: bool,
    out_dir: str,
) -> Path:
    document: PlanDocument = build_plan(
        tickets,
        epics,
        BuildOptions(
            group_by_epic=epic_group,
            add_done_milestone=milestone_done,
            project_name=project,
        ),
    )
    logger.info(
        "built plan: %d tasks, %d resources", len(document.tasks), len(document.resources)
    )
    return write_package(document, project, out_dir)


def _require_credentials(cfg: Config) -> None:
    if not cfg.jira_url or not cfg.jira_pat:
        raise ConfigError(
            code="E_CONFIG_MISSING_CREDENTIALS",
            message="JIRA_URL and JIRA_PAT must be set via environment variables or config file; "
            "run 'jql-to-plan config' to edit your configuration",
        )


def _check_export_config(cfg: Config, epic_group: bool) -> None:
    _require_credentials(cfg)
    if not cfg.effort_custom_field_id:
        raise ConfigError(
            code="E_CONFIG_MISSING_FIELD",
            message="effort_custom_field_id is not set; run 'jql-to-plan config' and set it",
            path="effort_custom_field_id",
        )
    if epic_group and not cfg.epic_link_custom_field_id:
        raise ConfigError(
            code="E_CONFIG_MISSING_FIELD",
            message="--epic-group requires epic_link_custom_field_id to be set",
            path="epic_link_custom_field_id",
        )


def _print_errors(errors: list[PlanError]) -> None:
    errors_sorted = sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
    for e in errors_sorted:
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="jql-to-plan")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()

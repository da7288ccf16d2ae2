"""JiraClient - fetches tickets for a JQL query over the Jira REST API v2."""

from __future__ import annotations

import math
from typing import Any, Optional

import httpx

from jql_to_plan.core.errors import JiraError
from jql_to_plan.core.model import Ticket
from jql_to_plan.logging import get_logger, redact

logger = get_logger("jira")

PAGE_SIZE = 100
EPIC_BATCH_SIZE = 50
DEPENDENCY_LINK_TYPE = "Dependent"


class JiraClient:
    """Read-only Jira client authenticated with a personal access token."""

    def __init__(
        self,
        base_url: str,
        pat: str,
        effort_field_id: str = "",
        epic_link_field_id: str = "",
        timeout: float = 30.0,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Jira server URL, e.g. https://jira.example.com
            pat: Personal access token, sent as a Bearer token
            effort_field_id: Effort custom field ("10105" or "customfield_10105")
            epic_link_field_id: Epic Link custom field, same forms as above
            timeout: HTTP timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.pat = pat
        self.effort_field_id = normalize_field_id(effort_field_id)
        self.epic_link_field_id = normalize_field_id(epic_link_field_id)
        self.timeout = timeout
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                headers={
                    "Authorization": f"Bearer {self.pat}",
                    "Accept": "application/json",
                },
                timeout=self.timeout,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> JiraClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.client.get(url, params=params)
        except httpx.HTTPError as e:
            raise JiraError(
                code="E_JIRA_TRANSPORT",
                message=redact(str(e), self.pat),
                path=path,
            ) from e

        if response.status_code != 200:
            raise JiraError(
                code="E_JIRA_HTTP",
                message=f"request failed: {response.status_code} - {redact(response.text, self.pat)}",
                path=path,
            )
        return response.json()

    def _search(self, jql: str, fields: list[str]) -> list[dict[str, Any]]:
        issues: list[dict[str, Any]] = []
        start_at = 0
        while True:
            data = self._get(
                "/rest/api/2/search",
                params={
                    "jql": jql,
                    "fields": ",".join(fields),
                    "startAt": start_at,
                    "maxResults": PAGE_SIZE,
                },
            )
            page = data.get("issues") or []
            issues.extend(page)
            start_at += len(page)
            total = int(data.get("total", start_at))
            logger.debug("search page: %d issues (%d/%d)", len(page), start_at, total)
            if not page or start_at >= total:
                return issues

    def search_tickets(self, jql: str) -> tuple[list[Ticket], dict[str, Ticket]]:
        """Run a JQL query and return (tickets, epics by key).

        Epics are only fetched when an Epic Link field is configured.
        """
        fields = ["summary", "assignee", "status", "issuelinks"]
        if self.effort_field_id:
            fields.append(self.effort_field_id)
        if self.epic_link_field_id:
            fields.append(self.epic_link_field_id)

        tickets = [self._to_ticket(issue) for issue in self._search(jql, fields)]
        logger.info("fetched %d tickets for query", len(tickets))

        epics: dict[str, Ticket] = {}
        if self.epic_link_field_id:
            epic_keys = list(dict.fromkeys(t.epic_key for t in tickets if t.epic_key))
            epics = self.fetch_epics(epic_keys)
        return tickets, epics

    def fetch_epics(self, epic_keys: list[str]) -> dict[str, Ticket]:
        epics: dict[str, Ticket] = {}
        for i in range(0, len(epic_keys), EPIC_BATCH_SIZE):
            batch = epic_keys[i : i + EPIC_BATCH_SIZE]
            jql = f"key in ({','.join(batch)})"
            try:
                issues = self._search(jql, ["summary", "status"])
            except JiraError as e:
                logger.warning("failed to fetch epic details: %s", e)
                continue
            for issue in issues:
                fields = issue.get("fields") or {}
                epics[issue["key"]] = Ticket(
                    key=issue["key"],
                    summary=fields.get("summary") or "",
                    link=issue.get("self") or "",
                    status=_status_name(fields),
                )
        return epics

    def list_fields(self) -> list[dict[str, Any]]:
        """Return the server's field catalogue (id, name, custom)."""
        data = self._get("/rest/api/2/field")
        return [
            {"id": f.get("id"), "name": f.get("name"), "custom": bool(f.get("custom"))}
            for f in data
        ]

    def _to_ticket(self, issue: dict[str, Any]) -> Ticket:
        key = issue["key"]
        fields = issue.get("fields") or {}

        assignee = None
        raw_assignee = fields.get("assignee")
        if isinstance(raw_assignee, dict):
            assignee = raw_assignee.get("displayName") or raw_assignee.get("name") or None

        effort = parse_effort_days(fields.get(self.effort_field_id)) if self.effort_field_id else None
        if not effort:
            logger.warning("ticket %s: %s has missing or 0 effort", key, fields.get("summary", ""))

        epic_key = None
        if self.epic_link_field_id:
            raw_epic = fields.get(self.epic_link_field_id)
            if isinstance(raw_epic, str) and raw_epic:
                epic_key = raw_epic

        return Ticket(
            key=key,
            summary=fields.get("summary") or "",
            link=issue.get("self") or "",
            assignee=assignee,
            status=_status_name(fields),
            effort_days=effort or 0.0,
            epic_key=epic_key,
            dependency_keys=dependency_keys(fields.get("issuelinks") or []),
        )


def normalize_field_id(field_id: str) -> str:
    if field_id and not field_id.startswith("customfield_"):
        return f"customfield_{field_id}"
    return field_id


def parse_effort_days(value: Any) -> Optional[float]:
    """Effort custom fields come back as numbers or numeric strings."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        days = float(value)
    elif isinstance(value, str):
        try:
            days = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return days if math.isfinite(days) else None


def dependency_keys(links: list[dict[str, Any]]) -> list[str]:
    """Keys this issue depends on: outward issues of "Dependent" links only."""
    keys: list[str] = []
    for link in links:
        link_type = (link.get("type") or {}).get("name")
        outward = link.get("outwardIssue")
        if link_type == DEPENDENCY_LINK_TYPE and isinstance(outward, dict) and outward.get("key"):
            keys.append(outward["key"])
    return keys


def _status_name(fields: dict[str, Any]) -> str:
    status = fields.get("status")
    if isinstance(status, dict):
        return status.get("name") or ""
    return ""

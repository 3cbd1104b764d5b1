"""Organization-wide sweep for labeled issues and pull requests.

Steps run strictly in order, one network call at a time:

1. resolve the project ID from its title
2. resolve the status column's option ID
3. list every repository in the organization
4. for each repository, list items carrying the configured labels
5. hand each item to the assigner

The first failure aborts the sweep; there is no partial report.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from github_project_triage.assignment import AssignmentResult, Assigner
from github_project_triage.errors import OperationCancelled
from github_project_triage.github.client import GitHubClient, IssueItem, Repository
from github_project_triage.github.pagination import MAX_PER_PAGE
from github_project_triage.github.resolver import ProjectResolver, StatusColumn

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SweepConfig:
    """What to sweep. Defaults match the SIG Auth triage board."""

    org: str = "kubernetes"
    project: str = "SIG Auth"
    column: str = "Needs Triage"
    labels: tuple[str, ...] = ("sig/auth",)
    page_size: int = MAX_PER_PAGE
    issue_state: str | None = None


@dataclass(slots=True)
class RepositoryScan:
    repository: Repository
    items: list[IssueItem] = field(default_factory=list)
    assignments: list[AssignmentResult] = field(default_factory=list)

    @property
    def issue_count(self) -> int:
        return sum(1 for item in self.items if not item.is_pull_request)

    @property
    def pull_request_count(self) -> int:
        return sum(1 for item in self.items if item.is_pull_request)


@dataclass(slots=True)
class SweepReport:
    project_id: str
    column: StatusColumn
    scans: list[RepositoryScan] = field(default_factory=list)

    @property
    def column_id(self) -> str:
        return self.column.option_id

    @property
    def total_matched(self) -> int:
        return sum(len(scan.items) for scan in self.scans)

    @property
    def total_issues(self) -> int:
        return sum(scan.issue_count for scan in self.scans)

    @property
    def total_pull_requests(self) -> int:
        return sum(scan.pull_request_count for scan in self.scans)

    @property
    def total_assigned(self) -> int:
        return sum(1 for scan in self.scans for a in scan.assignments if a.assigned)


class ProjectSweeper:
    """Finds labeled items across an organization and files them into a column."""

    def __init__(
        self,
        *,
        client: GitHubClient,
        config: SweepConfig,
        assigner: Assigner,
        resolver: ProjectResolver | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        self._client = client
        self._config = config
        self._assigner = assigner
        self._resolver = resolver or ProjectResolver(client)
        self._cancel = cancel

    def _check_cancelled(self) -> None:
        if self._cancel is not None and self._cancel.is_set():
            raise OperationCancelled("Sweep cancelled")

    def resolve(self) -> tuple[str, StatusColumn]:
        """Resolve the configured project and column without scanning repositories."""

        cfg = self._config
        self._check_cancelled()
        project_id = self._resolver.resolve_project_id(cfg.org, cfg.project)
        self._check_cancelled()
        column = self._resolver.resolve_status_column(project_id, cfg.column)
        return project_id, column

    def run(self) -> SweepReport:
        cfg = self._config
        project_id, column = self.resolve()
        report = SweepReport(project_id=project_id, column=column)

        self._check_cancelled()
        repos = self._client.list_org_repositories(cfg.org, per_page=cfg.page_size)

        for repo in repos:
            self._check_cancelled()
            logger.info(
                "Looking for issues and PRs",
                extra={"repository": f"{cfg.org}/{repo.name}", "labels": list(cfg.labels)},
            )
            items = self._client.list_labeled_issues(
                cfg.org,
                repo.name,
                cfg.labels,
                per_page=cfg.page_size,
                state=cfg.issue_state,
            )
            scan = RepositoryScan(repository=repo, items=items)
            for item in items:
                self._check_cancelled()
                scan.assignments.append(
                    self._assigner.assign(column, item.node_id, item.content_kind)
                )
            report.scans.append(scan)

            logger.info(
                "Found matching items in repository",
                extra={
                    "repository": f"{cfg.org}/{repo.name}",
                    "count": len(items),
                    "issues": scan.issue_count,
                    "pull_requests": scan.pull_request_count,
                },
            )

        logger.info(
            "Sweep complete",
            extra={
                "org": cfg.org,
                "project_id": project_id,
                "column_id": column.option_id,
                "repositories": len(report.scans),
                "matched": report.total_matched,
            },
        )
        return report

"""Unit tests for the organization-wide sweep."""

from __future__ import annotations

import threading
from unittest.mock import Mock

import pytest

from github_project_triage.assignment import DryRunAssigner, ProjectItemAssigner
from github_project_triage.errors import (
    ColumnNotFoundError,
    GitHubTransportError,
    OperationCancelled,
    ProjectNotFoundError,
)
from github_project_triage.github.client import ContentKind, GitHubClient, IssueItem, Repository
from github_project_triage.github.resolver import ProjectResolver, StatusColumn
from github_project_triage.sweep import ProjectSweeper, SweepConfig


def _seed(fake_api) -> None:
    fake_api.projects = [{"id": "PVT_0", "title": "SIG Node"}, {"id": "PVT_1", "title": "SIG Auth"}]
    fake_api.fields = {
        "PVT_1": [
            {"id": "PVTF_title"},
            {
                "id": "PVTSSF_1",
                "name": "Status",
                "options": [{"id": "OPT_7", "name": "Needs Triage"}, {"id": "OPT_8", "name": "Done"}],
            },
        ]
    }
    fake_api.repos = ["kubernetes", "website"]
    fake_api.add_issue("kubernetes", 101, ["sig/auth"])
    fake_api.add_issue("kubernetes", 102, ["sig/node"], pull_request=True)
    fake_api.add_issue("website", 7, ["sig/docs"])


def test_end_to_end_reports_matched_items(fake_api, github_client: GitHubClient) -> None:
    _seed(fake_api)
    assigner = DryRunAssigner()

    report = ProjectSweeper(client=github_client, config=SweepConfig(), assigner=assigner).run()

    assert report.project_id == "PVT_1"
    assert report.column_id == "OPT_7"
    assert report.total_matched == 1
    assert report.total_issues == 1
    assert report.total_pull_requests == 0
    assert [(s.repository.name, len(s.items)) for s in report.scans] == [
        ("kubernetes", 1),
        ("website", 0),
    ]
    assert [c.content_id for c in assigner.calls] == ["I_kubernetes_101"]
    assert report.total_assigned == 0


def test_calls_run_in_order(fake_api, github_client: GitHubClient) -> None:
    _seed(fake_api)

    ProjectSweeper(client=github_client, config=SweepConfig(), assigner=DryRunAssigner()).run()

    urls = [url.rsplit("api.github.com", 1)[1] for _, url, _ in fake_api.calls]
    assert urls == [
        "/graphql",
        "/graphql",
        "/orgs/kubernetes/repos",
        "/repos/kubernetes/kubernetes/issues",
        "/repos/kubernetes/website/issues",
    ]


def test_real_assigner_files_issues_and_pull_requests(
    fake_api, github_client: GitHubClient
) -> None:
    _seed(fake_api)
    fake_api.add_issue("website", 8, ["sig/auth"], pull_request=True)

    report = ProjectSweeper(
        client=github_client,
        config=SweepConfig(),
        assigner=ProjectItemAssigner(github_client),
    ).run()

    assert report.total_assigned == 2
    assert report.total_pull_requests == 1
    kinds = [a.content_kind for scan in report.scans for a in scan.assignments]
    assert kinds == [ContentKind.ISSUE, ContentKind.PULL_REQUEST]


def test_failure_in_one_repository_aborts_the_run(fake_api, github_client: GitHubClient) -> None:
    _seed(fake_api)
    fake_api.repos = ["kubernetes", "website", "enhancements"]
    fake_api.fail_urls.add("https://api.github.com/repos/kubernetes/website/issues")

    with pytest.raises(GitHubTransportError):
        ProjectSweeper(client=github_client, config=SweepConfig(), assigner=DryRunAssigner()).run()

    assert not fake_api.rest_calls("/enhancements/issues")


def test_unknown_project_stops_before_listing(fake_api, github_client: GitHubClient) -> None:
    _seed(fake_api)
    config = SweepConfig(project="SIG Missing")

    with pytest.raises(ProjectNotFoundError):
        ProjectSweeper(client=github_client, config=config, assigner=DryRunAssigner()).run()

    assert not fake_api.rest_calls("/repos")


def test_unknown_column_stops_before_listing(fake_api, github_client: GitHubClient) -> None:
    _seed(fake_api)
    config = SweepConfig(column="Backlog")

    with pytest.raises(ColumnNotFoundError):
        ProjectSweeper(client=github_client, config=config, assigner=DryRunAssigner()).run()

    assert len(fake_api.calls) == 2


def test_config_flows_into_listings() -> None:
    client = Mock(spec=GitHubClient)
    resolver = Mock(spec=ProjectResolver)
    resolver.resolve_project_id.return_value = "PVT_x"
    resolver.resolve_status_column.return_value = StatusColumn(
        project_id="PVT_x", field_id="F", option_id="O", name="Todo"
    )
    client.list_org_repositories.return_value = [
        Repository(name="infra", full_name="acme/infra", owner="acme", node_id="R_1")
    ]
    client.list_labeled_issues.return_value = [
        IssueItem(repository="acme/infra", id=1, number=1, node_id="I_1", title="t", state="open"),
        IssueItem(
            repository="acme/infra",
            id=2,
            number=2,
            node_id="PR_2",
            title="t",
            state="open",
            pull_request_url="https://github.com/acme/infra/pull/2",
        ),
    ]
    config = SweepConfig(
        org="acme",
        project="Board",
        column="Todo",
        labels=("team/a", "kind/bug"),
        page_size=50,
        issue_state="all",
    )

    report = ProjectSweeper(
        client=client, config=config, assigner=DryRunAssigner(), resolver=resolver
    ).run()

    resolver.resolve_project_id.assert_called_once_with("acme", "Board")
    resolver.resolve_status_column.assert_called_once_with("PVT_x", "Todo")
    client.list_org_repositories.assert_called_once_with("acme", per_page=50)
    client.list_labeled_issues.assert_called_once_with(
        "acme", "infra", ("team/a", "kind/bug"), per_page=50, state="all"
    )
    assert report.scans[0].issue_count == 1
    assert report.scans[0].pull_request_count == 1


def test_cancelled_sweep_does_no_work(fake_api, github_client: GitHubClient) -> None:
    _seed(fake_api)
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(OperationCancelled):
        ProjectSweeper(
            client=github_client, config=SweepConfig(), assigner=DryRunAssigner(), cancel=cancel
        ).run()

    assert fake_api.calls == []


def test_resolve_only_skips_repositories(fake_api, github_client: GitHubClient) -> None:
    _seed(fake_api)

    project_id, column = ProjectSweeper(
        client=github_client, config=SweepConfig(), assigner=DryRunAssigner()
    ).resolve()

    assert (project_id, column.option_id, column.field_id) == ("PVT_1", "OPT_7", "PVTSSF_1")
    assert not fake_api.rest_calls("/repos")

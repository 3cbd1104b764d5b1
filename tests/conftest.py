"""Test configuration and fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any
from urllib.parse import urlencode

import pytest
import requests

from github_project_triage.github.client import GitHubClient

ResponseFactory = Callable[..., requests.Response]


def _response(
    payload: Any,
    *,
    status: int = 200,
    url: str = "https://api.github.com/",
    next_url: str | None = None,
) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.url = url
    resp._content = json.dumps(payload).encode("utf-8")
    resp.headers["Content-Type"] = "application/json"
    if next_url is not None:
        resp.headers["Link"] = f'<{next_url}>; rel="next"'
    return resp


class FakeGitHubAPI:
    """Stands in for a requests.Session and serves canned GitHub data.

    REST listings are paged with ``per_page``/``page`` and advertise the next
    page through a ``Link`` header, like the real API.
    """

    base_url = "https://api.github.com"

    def __init__(self) -> None:
        self.headers: dict[str, str] = {}
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self.graphql_calls: list[dict[str, Any]] = []
        self.projects: list[dict[str, Any]] = []
        self.projects_has_next_page = False
        self.fields: dict[str, list[dict[str, Any]]] = {}
        self.repos: list[str] = []
        self.issues: dict[str, list[dict[str, Any]]] = {}
        self.fail_urls: set[str] = set()
        # When set, the issues endpoint pages every issue and ignores ``labels``.
        self.ignore_label_filter = False
        self.closed = False

    def add_issue(
        self, repo: str, number: int, labels: list[str], *, pull_request: bool = False
    ) -> dict[str, Any]:
        issue: dict[str, Any] = {
            "id": 1000 + number,
            "number": number,
            "node_id": f"{'PR' if pull_request else 'I'}_{repo}_{number}",
            "title": f"Item {number}",
            "state": "open",
            "labels": [{"name": name} for name in labels],
        }
        if pull_request:
            issue["pull_request"] = {
                "url": f"{self.base_url}/repos/kubernetes/{repo}/pulls/{number}",
                "html_url": f"https://github.com/kubernetes/{repo}/pull/{number}",
            }
        self.issues.setdefault(repo, []).append(issue)
        return issue

    def _page(self, url: str, items: list[Any], params: dict[str, Any]) -> requests.Response:
        per_page = int(params["per_page"])
        page = int(params["page"])
        start = (page - 1) * per_page
        chunk = items[start : start + per_page]
        next_url = None
        if start + per_page < len(items):
            query = {k: v for k, v in params.items() if k != "page"}
            query["page"] = page + 1
            next_url = f"{url}?{urlencode(query)}"
        return _response(chunk, url=url, next_url=next_url)

    def _graphql(self, url: str, body: dict[str, Any]) -> requests.Response:
        self.graphql_calls.append(body)
        query = body["query"]
        variables = body["variables"]
        if "projectsV2" in query:
            data: dict[str, Any] = {
                "organization": {
                    "projectsV2": {
                        "pageInfo": {"hasNextPage": self.projects_has_next_page},
                        "nodes": self.projects,
                    }
                }
            }
        elif "fields" in query:
            project_id = variables["projectId"]
            if project_id in self.fields:
                data = {"node": {"fields": {"nodes": self.fields[project_id]}}}
            else:
                data = {"node": None}
        elif "addProjectV2ItemById" in query:
            data = {"addProjectV2ItemById": {"item": {"id": f"ITEM_{variables['contentId']}"}}}
        elif "updateProjectV2ItemFieldValue" in query:
            data = {"updateProjectV2ItemFieldValue": {"projectV2Item": {"id": variables["itemId"]}}}
        else:
            return _response({"errors": [{"message": "unknown query"}]}, url=url)
        return _response({"data": data}, url=url)

    def request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> requests.Response:
        params = dict(params or {})
        self.calls.append((method, url, params))
        if url in self.fail_urls:
            return _response({"message": "Server Error"}, status=502, url=url)
        if url == f"{self.base_url}/graphql":
            assert json is not None
            return self._graphql(url, json)
        if url == f"{self.base_url}/orgs/kubernetes/repos":
            repos = [
                {
                    "name": name,
                    "full_name": f"kubernetes/{name}",
                    "owner": {"login": "kubernetes"},
                    "node_id": f"R_{name}",
                }
                for name in self.repos
            ]
            return self._page(url, repos, params)
        prefix = f"{self.base_url}/repos/kubernetes/"
        if url.startswith(prefix) and url.endswith("/issues"):
            repo = url[len(prefix) : -len("/issues")]
            wanted = [label for label in str(params.get("labels", "")).split(",") if label]
            if self.ignore_label_filter:
                wanted = []
            matching = [
                issue
                for issue in self.issues.get(repo, [])
                if all(w in {lbl["name"] for lbl in issue["labels"]} for w in wanted)
            ]
            return self._page(url, matching, params)
        return _response({"message": "Not Found"}, status=404, url=url)

    def close(self) -> None:
        self.closed = True

    def rest_calls(self, suffix: str) -> list[dict[str, Any]]:
        return [params for method, url, params in self.calls if method == "GET" and url.endswith(suffix)]


@pytest.fixture
def make_response() -> ResponseFactory:
    """Build a requests.Response carrying a JSON payload."""
    return _response


@pytest.fixture
def fake_api() -> FakeGitHubAPI:
    """Provide an in-memory GitHub API."""
    return FakeGitHubAPI()


@pytest.fixture
def github_client(fake_api: FakeGitHubAPI) -> GitHubClient:
    """Provide a client wired to the in-memory GitHub API."""
    return GitHubClient(token="test-token", session=fake_api)  # type: ignore[arg-type]

"""GitHub API client wrapper for project triage.

REST list endpoints and GraphQL queries go through one ``requests`` session so tests can
inject a fake; PyGithub is only used to confirm who the token belongs to.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qs, quote, urlparse, urlunparse

import requests
from github import Auth, Github, GithubException

from github_project_triage.errors import GitHubTransportError, OperationCancelled
from github_project_triage.github.pagination import MAX_PER_PAGE, Page, collect_pages

logger = logging.getLogger(__name__)


class ContentKind(str, enum.Enum):
    """Kinds of content a project item can point at."""

    ISSUE = "Issue"
    PULL_REQUEST = "PullRequest"


@dataclass(frozen=True, slots=True)
class Repository:
    """Minimal repository metadata from the org listing."""

    name: str
    full_name: str
    owner: str
    node_id: str


@dataclass(frozen=True, slots=True)
class IssueItem:
    """An entry from the issues listing, which also returns pull requests."""

    repository: str
    id: int
    number: int
    node_id: str
    title: str
    state: str
    labels: tuple[str, ...] = ()
    # Set only when the entry is a pull request.
    pull_request_url: str | None = None

    @property
    def is_pull_request(self) -> bool:
        return self.pull_request_url is not None

    @property
    def content_kind(self) -> ContentKind:
        return ContentKind.PULL_REQUEST if self.is_pull_request else ContentKind.ISSUE


class GitHubClient:
    """Small wrapper around the GitHub REST and GraphQL APIs used by a triage sweep."""

    def __init__(
        self,
        *,
        token: str,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
        session: requests.Session | None = None,
        github_api: Github | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        if not token:
            raise ValueError("GitHub token is required")

        self._token = token
        self._rest_base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._github = github_api
        self._cancel = cancel
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "github-project-triage",
            }
        )

    @property
    def base_url(self) -> str:
        return self._rest_base_url

    def _check_cancelled(self, url: str) -> None:
        if self._cancel is not None and self._cancel.is_set():
            raise OperationCancelled(f"Cancelled request to {url}")

    def _graphql_url(self) -> str:
        """Return the GraphQL endpoint that pairs with the REST base URL.

        api.github.com serves GraphQL at ``/graphql``; an Enterprise server whose REST
        API lives under ``/api/v3`` (or ``/api``) serves it at ``/api/graphql``.
        """

        parsed = urlparse(self._rest_base_url)
        path = parsed.path.rstrip("/")
        for rest_suffix in ("/api/v3", "/api"):
            if path.endswith(rest_suffix):
                path = path.removesuffix(rest_suffix) + "/api"
                break
        return urlunparse(parsed._replace(path=f"{path}/graphql"))

    @staticmethod
    def _graphql_error_message(errors: object) -> str:
        if not isinstance(errors, list):
            return "unknown error"
        messages = [
            e["message"]
            for e in errors
            if isinstance(e, dict) and isinstance(e.get("message"), str)
        ]
        return "; ".join(messages) or "unknown error"

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> requests.Response:
        self._check_cancelled(url)
        try:
            resp = self._session.request(
                method, url, params=params, json=json, timeout=self._timeout
            )
            resp.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise GitHubTransportError(
                f"GitHub request failed: {method} {url} -> {status}",
                cause=e,
                url=url,
                status=status,
            ) from e
        except requests.RequestException as e:
            raise GitHubTransportError(
                f"GitHub request failed: {method} {url}: {e}", cause=e, url=url
            ) from e
        # A cancel that arrived while the call was in flight discards its result.
        self._check_cancelled(url)
        return resp

    @staticmethod
    def _json(resp: requests.Response, url: str) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise GitHubTransportError(
                f"Malformed JSON from {url}", cause=e, url=url, status=resp.status_code
            ) from e

    @staticmethod
    def _next_page(resp: requests.Response) -> int | None:
        """Return the page number of the ``rel="next"`` link, if the server sent one."""

        next_link = resp.links.get("next")
        if not next_link:
            return None
        query = parse_qs(urlparse(next_link.get("url", "")).query)
        values = query.get("page")
        if not values:
            return None
        try:
            page = int(values[0])
        except ValueError:
            return None
        return page if page > 0 else None

    def graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Run a GraphQL query or mutation and return its ``data`` object.

        GitHub answers 200 even when a query fails to resolve (unknown org, bad node ID),
        so a non-empty ``errors`` list is treated as a transport failure too.
        """

        url = self._graphql_url()
        resp = self._request("POST", url, json={"query": query, "variables": variables})
        payload = self._json(resp, url)
        if not isinstance(payload, dict):
            raise GitHubTransportError("Malformed GraphQL response", url=url)

        if payload.get("errors"):
            errors = payload["errors"]
            raise GitHubTransportError(
                f"GitHub GraphQL error: {self._graphql_error_message(errors)}",
                cause=errors,
                url=url,
            )

        data = payload.get("data")
        if not isinstance(data, dict):
            raise GitHubTransportError("GraphQL response has no data", url=url)
        return data

    def _fetch_list_page(
        self, url: str, *, page: int, per_page: int, params: dict[str, Any] | None = None
    ) -> tuple[list[dict[str, Any]], int | None]:
        query: dict[str, Any] = dict(params or {})
        query.update({"per_page": per_page, "page": page})
        resp = self._request("GET", url, params=query)
        payload = self._json(resp, url)
        if not isinstance(payload, list):
            raise GitHubTransportError(
                f"Expected a JSON list from {url}", url=url, status=resp.status_code
            )
        return [p for p in payload if isinstance(p, dict)], self._next_page(resp)

    @staticmethod
    def _parse_repository(data: dict[str, Any]) -> Repository:
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise GitHubTransportError("Invalid repository response: missing name")
        owner = data.get("owner")
        login = owner.get("login") if isinstance(owner, dict) else None
        return Repository(
            name=name,
            full_name=str(data.get("full_name") or name),
            owner=str(login or ""),
            node_id=str(data.get("node_id") or ""),
        )

    @staticmethod
    def _parse_issue(data: dict[str, Any], *, repository: str) -> IssueItem:
        number = data.get("number")
        if not isinstance(number, int) or number <= 0:
            raise GitHubTransportError("Invalid issue response: missing number")

        labels: list[str] = []
        raw_labels = data.get("labels")
        if isinstance(raw_labels, list):
            for label in raw_labels:
                if isinstance(label, dict) and isinstance(label.get("name"), str):
                    labels.append(label["name"])
                elif isinstance(label, str):
                    labels.append(label)

        pull_request_url: str | None = None
        linkage = data.get("pull_request")
        if isinstance(linkage, dict):
            pull_request_url = str(linkage.get("html_url") or linkage.get("url") or "")

        return IssueItem(
            repository=repository,
            id=int(data.get("id") or 0),
            number=number,
            node_id=str(data.get("node_id") or ""),
            title=str(data.get("title") or ""),
            state=str(data.get("state") or ""),
            labels=tuple(labels),
            pull_request_url=pull_request_url,
        )

    def list_org_repositories(self, org: str, *, per_page: int = MAX_PER_PAGE) -> list[Repository]:
        """Return every repository owned by ``org`` in server order."""

        if not org.strip():
            raise ValueError("org is required")
        url = f"{self._rest_base_url}/orgs/{quote(org, safe='')}/repos"

        def fetch(page: int, size: int) -> Page[Repository]:
            raw, next_page = self._fetch_list_page(url, page=page, per_page=size)
            return Page(items=[self._parse_repository(r) for r in raw], next_page=next_page)

        repos = collect_pages(fetch, per_page=per_page, cancel=self._cancel)
        logger.info("Listed organization repositories", extra={"org": org, "count": len(repos)})
        return repos

    def list_labeled_issues(
        self,
        owner: str,
        repo: str,
        labels: list[str] | tuple[str, ...],
        *,
        per_page: int = MAX_PER_PAGE,
        state: str | None = None,
    ) -> list[IssueItem]:
        """Return issues and pull requests in ``owner/repo`` carrying all of ``labels``.

        Callers tell the two apart with ``IssueItem.is_pull_request``. The server
        filters by ``labels`` already; entries missing any label are still dropped here.
        """

        normalized = [label.strip() for label in labels if label.strip()]
        if not normalized:
            raise ValueError("at least one label is required")
        required = set(normalized)

        full_name = f"{owner}/{repo}"
        url = f"{self._rest_base_url}/repos/{quote(owner, safe='')}/{quote(repo, safe='')}/issues"
        params: dict[str, Any] = {"labels": ",".join(normalized)}
        if state:
            params["state"] = state

        def fetch(page: int, size: int) -> Page[IssueItem]:
            raw, next_page = self._fetch_list_page(url, page=page, per_page=size, params=params)
            items = [self._parse_issue(i, repository=full_name) for i in raw]
            matching = [item for item in items if required <= set(item.labels)]
            return Page(items=matching, next_page=next_page)

        items = collect_pages(fetch, per_page=per_page, cancel=self._cancel)
        logger.debug(
            "Listed labeled issues",
            extra={"repository": full_name, "labels": normalized, "count": len(items)},
        )
        return items

    def authenticated_login(self) -> str:
        """Return the login that owns the configured token."""

        if self._github is None:
            self._github = Github(auth=Auth.Token(self._token), base_url=self._rest_base_url)
        try:
            login = self._github.get_user().login
        except GithubException as e:
            raise GitHubTransportError(
                f"GitHub authentication failed: {e.status}", cause=e, status=e.status
            ) from e
        logger.info("Authenticated with GitHub", extra={"login": login})
        return str(login)

    def close(self) -> None:
        self._session.close()
        if self._github is not None:
            self._github.close()

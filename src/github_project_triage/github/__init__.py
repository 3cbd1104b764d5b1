"""GitHub REST and GraphQL access."""

from github_project_triage.github.client import ContentKind, GitHubClient, IssueItem, Repository
from github_project_triage.github.pagination import MAX_PER_PAGE, Page, collect_pages
from github_project_triage.github.resolver import ProjectResolver, StatusColumn

__all__ = [
    "MAX_PER_PAGE",
    "ContentKind",
    "GitHubClient",
    "IssueItem",
    "Page",
    "ProjectResolver",
    "Repository",
    "StatusColumn",
    "collect_pages",
]

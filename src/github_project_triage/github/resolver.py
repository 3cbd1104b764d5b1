"""Resolve project titles and status column names into GraphQL node IDs.

Responses are parsed into typed models first; matching is done by the pure
``select_*`` functions so it can be tested without any network.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from github_project_triage.errors import (
    ColumnNotFoundError,
    GitHubTransportError,
    ProjectNotFoundError,
)

logger = logging.getLogger(__name__)

# The single-select field that holds workflow columns.
STATUS_FIELD_NAME = "Status"

# Server-side caps for the two lookups; neither query is paginated.
PROJECTS_PAGE_LIMIT = 100
FIELDS_PAGE_LIMIT = 20

PROJECTS_QUERY = """
query($org: String!, $first: Int!) {
  organization(login: $org) {
    projectsV2(first: $first) {
      pageInfo {
        hasNextPage
      }
      nodes {
        id
        title
      }
    }
  }
}
"""

PROJECT_FIELDS_QUERY = """
query($projectId: ID!, $first: Int!) {
  node(id: $projectId) {
    ... on ProjectV2 {
      fields(first: $first) {
        nodes {
          ... on ProjectV2SingleSelectField {
            id
            name
            options {
              id
              name
            }
          }
        }
      }
    }
  }
}
"""


class GraphQLClient(Protocol):
    def graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]: ...


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ProjectNode(_Model):
    id: str
    title: str


class PageInfo(_Model):
    has_next_page: bool = Field(default=False, alias="hasNextPage")


class ProjectConnection(_Model):
    page_info: PageInfo = Field(default_factory=PageInfo, alias="pageInfo")
    nodes: list[ProjectNode | None] = Field(default_factory=list)


class OrganizationNode(_Model):
    projects: ProjectConnection = Field(default_factory=ProjectConnection, alias="projectsV2")


class ProjectsResponse(_Model):
    organization: OrganizationNode | None = None


class OptionNode(_Model):
    id: str
    name: str


class FieldNode(_Model):
    """A project field; only single-select fields carry id/name/options."""

    id: str | None = None
    name: str | None = None
    options: list[OptionNode] = Field(default_factory=list)


class FieldConnection(_Model):
    nodes: list[FieldNode | None] = Field(default_factory=list)


class ProjectFieldsNode(_Model):
    fields: FieldConnection = Field(default_factory=FieldConnection)


class ProjectFieldsResponse(_Model):
    node: ProjectFieldsNode | None = None


@dataclass(frozen=True, slots=True)
class StatusColumn:
    """A resolved column: the option of the status field plus what a mutation needs."""

    project_id: str
    field_id: str
    option_id: str
    name: str


def select_project(projects: Sequence[ProjectNode], title: str) -> ProjectNode:
    """Return the first project whose title exactly equals ``title``."""

    matches = [p for p in projects if p.title == title]
    if not matches:
        raise ProjectNotFoundError(title)
    if len(matches) > 1:
        logger.warning(
            "Multiple projects share a title; using the first in server order",
            extra={"title": title, "project_ids": [p.id for p in matches]},
        )
    return matches[0]


def select_status_option(
    fields: Sequence[FieldNode],
    column: str,
    *,
    field_name: str = STATUS_FIELD_NAME,
) -> tuple[FieldNode, OptionNode]:
    """Find ``column`` among the options of the field named exactly ``field_name``."""

    for f in fields:
        if f.name != field_name or f.id is None:
            continue
        for option in f.options:
            if option.name == column:
                return f, option
        break
    raise ColumnNotFoundError(column)


def _parse(model: type[_Model], data: dict[str, Any]) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise GitHubTransportError(f"Malformed {model.__name__}: {e}", cause=e) from e


class ProjectResolver:
    """Looks up project and column IDs. Results are never cached."""

    def __init__(self, client: GraphQLClient) -> None:
        self._client = client

    def resolve_project_id(self, org: str, title: str) -> str:
        data = self._client.graphql(PROJECTS_QUERY, {"org": org, "first": PROJECTS_PAGE_LIMIT})
        response: ProjectsResponse = _parse(ProjectsResponse, data)
        if response.organization is None:
            raise ProjectNotFoundError(title)

        connection = response.organization.projects
        projects = [p for p in connection.nodes if p is not None]
        try:
            project = select_project(projects, title)
        except ProjectNotFoundError:
            if connection.page_info.has_next_page:
                logger.warning(
                    "Organization has more projects than a single query returns",
                    extra={"org": org, "title": title, "limit": PROJECTS_PAGE_LIMIT},
                )
            raise

        logger.info(
            "Found project", extra={"org": org, "title": title, "project_id": project.id}
        )
        return project.id

    def resolve_status_column(self, project_id: str, column: str) -> StatusColumn:
        data = self._client.graphql(
            PROJECT_FIELDS_QUERY, {"projectId": project_id, "first": FIELDS_PAGE_LIMIT}
        )
        response: ProjectFieldsResponse = _parse(ProjectFieldsResponse, data)
        if response.node is None:
            raise ColumnNotFoundError(column)

        fields = [f for f in response.node.fields.nodes if f is not None]
        status_field, option = select_status_option(fields, column)
        assert status_field.id is not None

        logger.info(
            "Found column",
            extra={"project_id": project_id, "column": column, "column_id": option.id},
        )
        return StatusColumn(
            project_id=project_id,
            field_id=status_field.id,
            option_id=option.id,
            name=option.name,
        )

    def resolve_column_id(self, project_id: str, column: str) -> str:
        return self.resolve_status_column(project_id, column).option_id

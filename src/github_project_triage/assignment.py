"""Filing matched issues and pull requests into a project column."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from github_project_triage.errors import AssignmentError
from github_project_triage.github.client import ContentKind
from github_project_triage.github.resolver import GraphQLClient, StatusColumn

logger = logging.getLogger(__name__)

ADD_ITEM_MUTATION = """
mutation($projectId: ID!, $contentId: ID!) {
  addProjectV2ItemById(input: {projectId: $projectId, contentId: $contentId}) {
    item {
      id
    }
  }
}
"""

SET_STATUS_MUTATION = """
mutation($projectId: ID!, $itemId: ID!, $fieldId: ID!, $optionId: String!) {
  updateProjectV2ItemFieldValue(
    input: {
      projectId: $projectId
      itemId: $itemId
      fieldId: $fieldId
      value: { singleSelectOptionId: $optionId }
    }
  ) {
    projectV2Item {
      id
    }
  }
}
"""


@dataclass(frozen=True, slots=True)
class AssignmentResult:
    content_id: str
    content_kind: ContentKind
    column_id: str
    # "assigned" or "skipped"
    status: str
    item_id: str | None = None

    @property
    def assigned(self) -> bool:
        return self.status == "assigned"


class Assigner(Protocol):
    """Places one piece of content into a resolved project column."""

    def assign(
        self, column: StatusColumn, content_id: str, content_kind: ContentKind
    ) -> AssignmentResult: ...


class DryRunAssigner:
    """Records what would be filed without touching the project."""

    def __init__(self) -> None:
        self.calls: list[AssignmentResult] = []

    def assign(
        self, column: StatusColumn, content_id: str, content_kind: ContentKind
    ) -> AssignmentResult:
        result = AssignmentResult(
            content_id=content_id,
            content_kind=content_kind,
            column_id=column.option_id,
            status="skipped",
        )
        self.calls.append(result)
        logger.debug(
            "Dry run: not filing item",
            extra={"content_id": content_id, "content_kind": content_kind.value},
        )
        return result


def _dig(data: dict[str, Any], *keys: str) -> Any:
    value: Any = data
    for key in keys:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


class ProjectItemAssigner:
    """Adds content to a ProjectV2 board and sets its status option.

    Issues and pull requests are both added by node ID; the kind is validated and
    carried through for reporting.
    """

    def __init__(self, client: GraphQLClient) -> None:
        self._client = client

    def assign(
        self, column: StatusColumn, content_id: str, content_kind: ContentKind
    ) -> AssignmentResult:
        if not isinstance(content_kind, ContentKind):
            raise AssignmentError(f"Unsupported content kind: {content_kind!r}")
        if not content_id:
            raise AssignmentError(f"{content_kind.value} has no node ID")

        data = self._client.graphql(
            ADD_ITEM_MUTATION, {"projectId": column.project_id, "contentId": content_id}
        )
        item_id = _dig(data, "addProjectV2ItemById", "item", "id")
        if not isinstance(item_id, str) or not item_id:
            raise AssignmentError(f"Project did not return an item for {content_id}")

        data = self._client.graphql(
            SET_STATUS_MUTATION,
            {
                "projectId": column.project_id,
                "itemId": item_id,
                "fieldId": column.field_id,
                "optionId": column.option_id,
            },
        )
        if not _dig(data, "updateProjectV2ItemFieldValue", "projectV2Item", "id"):
            raise AssignmentError(f"Could not set {column.name!r} on item {item_id}")

        logger.info(
            "Filed item into column",
            extra={
                "content_id": content_id,
                "content_kind": content_kind.value,
                "item_id": item_id,
                "column": column.name,
            },
        )
        return AssignmentResult(
            content_id=content_id,
            content_kind=content_kind,
            column_id=column.option_id,
            status="assigned",
            item_id=item_id,
        )

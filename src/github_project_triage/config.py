"""Configuration for project triage runs.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

The token is read from `TRIAGE_GITHUB_TOKEN`, falling back to the conventional
`GITHUB_TOKEN`.
"""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from github_project_triage.github.pagination import MAX_PER_PAGE
from github_project_triage.sweep import SweepConfig


def split_labels(value: str) -> tuple[str, ...]:
    parts = [p.strip() for p in value.split(",")]
    return tuple(p for p in parts if p)


class TriageSettings(BaseSettings):
    """Settings for a triage sweep.

    Environment variables:
    - TRIAGE_GITHUB_TOKEN or GITHUB_TOKEN
    - GITHUB_BASE_URL        (optional)
    - LOG_LEVEL              (optional)
    - TRIAGE_ORG, TRIAGE_PROJECT, TRIAGE_COLUMN, TRIAGE_LABELS (optional)
    - TRIAGE_PAGE_SIZE, TRIAGE_ISSUE_STATE, TRIAGE_ASSIGN, TRIAGE_REQUEST_TIMEOUT (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `TriageSettings(_env_file=path_to_env)`.
    """

    github_token: str = Field(
        default="",
        validation_alias=AliasChoices("TRIAGE_GITHUB_TOKEN", "GITHUB_TOKEN"),
        description="GitHub token used for API authentication",
    )
    github_base_url: str = Field(
        default="https://api.github.com",
        validation_alias="GITHUB_BASE_URL",
        description="GitHub API base URL (useful for GitHub Enterprise)",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    org: str = Field(
        default="kubernetes",
        validation_alias="TRIAGE_ORG",
        description="Organization login to sweep",
    )
    project: str = Field(
        default="SIG Auth",
        validation_alias="TRIAGE_PROJECT",
        description="Title of the organization project to file items into",
    )
    column: str = Field(
        default="Needs Triage",
        validation_alias="TRIAGE_COLUMN",
        description="Name of the Status option items are filed under",
    )
    labels: str = Field(
        default="sig/auth",
        validation_alias="TRIAGE_LABELS",
        description="Comma-separated labels; items must carry all of them",
    )
    page_size: int = Field(
        default=MAX_PER_PAGE,
        ge=1,
        le=MAX_PER_PAGE,
        validation_alias="TRIAGE_PAGE_SIZE",
        description="Items per page for REST listings",
    )
    issue_state: Literal["open", "closed", "all"] | None = Field(
        default=None,
        validation_alias="TRIAGE_ISSUE_STATE",
        description="Issue state filter; unset uses the server default",
    )
    assign: bool = Field(
        default=False,
        validation_alias="TRIAGE_ASSIGN",
        description="File matched items into the column (otherwise dry run)",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        validation_alias="TRIAGE_REQUEST_TIMEOUT",
        description="Per-request timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def _require_github_auth(self) -> TriageSettings:
        if not self.github_token.strip():
            raise ValueError("TRIAGE_GITHUB_TOKEN (or GITHUB_TOKEN) is required")
        if not split_labels(self.labels):
            raise ValueError("TRIAGE_LABELS must name at least one label")
        return self

    @property
    def label_names(self) -> tuple[str, ...]:
        return split_labels(self.labels)

    def sweep_config(self) -> SweepConfig:
        return SweepConfig(
            org=self.org,
            project=self.project,
            column=self.column,
            labels=self.label_names,
            page_size=self.page_size,
            issue_state=self.issue_state,
        )

"""CLI entrypoint for project triage."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys

from pydantic import ValidationError

from github_project_triage import __version__
from github_project_triage.assignment import Assigner, DryRunAssigner, ProjectItemAssigner
from github_project_triage.config import TriageSettings
from github_project_triage.errors import TriageError
from github_project_triage.github.client import GitHubClient
from github_project_triage.github.pagination import MAX_PER_PAGE
from github_project_triage.logging import configure_logging
from github_project_triage.sweep import ProjectSweeper, SweepConfig

logger = logging.getLogger(__name__)


def _page_size(value: str) -> int:
    size = int(value)
    if not 1 <= size <= MAX_PER_PAGE:
        raise argparse.ArgumentTypeError(f"page size must be between 1 and {MAX_PER_PAGE}")
    return size


def _label(value: str) -> str:
    label = value.strip()
    if not label:
        raise argparse.ArgumentTypeError("label must not be blank")
    return label


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="project-triage",
        description="File labeled issues and pull requests into a GitHub project column",
    )
    parser.add_argument(
        "--version", action="version", version=f"github-project-triage {__version__}"
    )

    target = argparse.ArgumentParser(add_help=False)
    target.add_argument("--org", default=None, help="Organization login (TRIAGE_ORG)")
    target.add_argument("--project", default=None, help="Project title (TRIAGE_PROJECT)")
    target.add_argument(
        "--column", default=None, help="Status option to file items under (TRIAGE_COLUMN)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "resolve",
        parents=[target],
        help="Resolve the project and column IDs and print them",
    )

    sweep = subparsers.add_parser(
        "sweep",
        parents=[target],
        help="Scan every repository in the organization for labeled issues and PRs",
    )
    sweep.add_argument(
        "--label",
        dest="labels",
        type=_label,
        action="append",
        default=None,
        help="Label filter; repeat to require several labels (TRIAGE_LABELS)",
    )
    sweep.add_argument(
        "--page-size",
        type=_page_size,
        default=None,
        help=f"Items per page, 1-{MAX_PER_PAGE} (TRIAGE_PAGE_SIZE)",
    )
    sweep.add_argument(
        "--state",
        choices=("open", "closed", "all"),
        default=None,
        help="Issue state filter (TRIAGE_ISSUE_STATE); defaults to the server's",
    )
    sweep.add_argument(
        "--assign",
        action="store_true",
        help="File matched items into the column instead of only reporting them",
    )

    return parser


def _apply_overrides(config: SweepConfig, args: argparse.Namespace) -> SweepConfig:
    changes: dict[str, object] = {}
    for name in ("org", "project", "column"):
        value = getattr(args, name, None)
        if value:
            changes[name] = value
    labels = getattr(args, "labels", None)
    if labels:
        changes["labels"] = tuple(labels)
    page_size = getattr(args, "page_size", None)
    if page_size is not None:
        changes["page_size"] = page_size
    state = getattr(args, "state", None)
    if state is not None:
        changes["issue_state"] = state
    return dataclasses.replace(config, **changes) if changes else config


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = TriageSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)
    config = _apply_overrides(settings.sweep_config(), args)

    github = GitHubClient(
        token=settings.github_token,
        base_url=settings.github_base_url,
        timeout=settings.request_timeout,
    )
    try:
        github.authenticated_login()

        assigner: Assigner
        if getattr(args, "assign", False) or settings.assign:
            assigner = ProjectItemAssigner(github)
        else:
            assigner = DryRunAssigner()

        sweeper = ProjectSweeper(client=github, config=config, assigner=assigner)

        if args.command == "resolve":
            project_id, column = sweeper.resolve()
            print(f"found project {config.project!r} with ID {project_id!r}")
            print(f"columnID: {column.option_id}")
            return 0

        if args.command == "sweep":
            report = sweeper.run()
            print(f"found project {config.project!r} with ID {report.project_id!r}")
            print(f"columnID: {report.column_id}")
            for scan in report.scans:
                print(
                    f"{config.org}/{scan.repository.name}: found {len(scan.items)} "
                    f"({scan.issue_count} issues, {scan.pull_request_count} PRs)"
                )
            print(
                f"Total matched: {report.total_matched} "
                f"({report.total_issues} issues, {report.total_pull_requests} PRs), "
                f"filed: {report.total_assigned}"
            )
            return 0

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130

    except TriageError as e:
        logger.exception("Command failed", extra={"error_type": type(e).__name__})
        print(f"error: {e}", file=sys.stderr)
        return 1

    except Exception:
        logger.exception("Command failed")
        return 1

    finally:
        github.close()


if __name__ == "__main__":
    raise SystemExit(main())

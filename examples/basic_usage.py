#!/usr/bin/env python3
"""Programmatic dry-run sweep.

This demonstrates using the triage components directly:

* load settings from `.env`
* resolve the project and its status column
* count labeled issues and pull requests per repository without filing them

Organization and label are passed as arguments (not read from `.env`).
"""

from __future__ import annotations

import argparse
import dataclasses
from typing import Sequence

from github_project_triage.assignment import DryRunAssigner
from github_project_triage.config import TriageSettings, split_labels
from github_project_triage.github.client import GitHubClient
from github_project_triage.logging import configure_logging
from github_project_triage.sweep import ProjectSweeper


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Dry-run a triage sweep (programmatic example).")
    parser.add_argument("--org", required=True, help="Organization login")
    parser.add_argument("--labels", default="sig/auth", help='Comma-separated labels, e.g. "sig/auth"')
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = TriageSettings()
    configure_logging(settings.log_level)

    config = dataclasses.replace(
        settings.sweep_config(), org=args.org, labels=split_labels(args.labels)
    )
    github = GitHubClient(token=settings.github_token, base_url=settings.github_base_url)
    assigner = DryRunAssigner()

    try:
        report = ProjectSweeper(client=github, config=config, assigner=assigner).run()
    finally:
        github.close()

    for scan in report.scans:
        print(f"{scan.repository.full_name}: {len(scan.items)}")
    print(f"Would file {len(assigner.calls)} item(s) into column {report.column_id}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

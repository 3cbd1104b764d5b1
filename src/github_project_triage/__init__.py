"""GitHub project triage.

Resolves an organization project and one of its status columns, then scans
every repository in the organization for issues and pull requests carrying a
label so they can be filed into that column.
"""

__version__ = "0.1.0"

from github_project_triage.config import TriageSettings
from github_project_triage.sweep import ProjectSweeper, SweepConfig, SweepReport

__all__ = ["__version__", "ProjectSweeper", "SweepConfig", "SweepReport", "TriageSettings"]

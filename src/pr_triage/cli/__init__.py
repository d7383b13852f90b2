"""Click CLI commands for developer-facing triage.

Provides the ``pr-triage`` CLI entry point with subcommands:
- ``pr-triage owners`` -- Show the code owners of a set of paths.
- ``pr-triage labels`` -- Show the labels a set of paths would receive.
- ``pr-triage run``    -- Triage the pull request of a GitHub Actions event.
"""

from pr_triage.cli.main import cli, labels, owners, run

__all__ = ["cli", "labels", "owners", "run"]

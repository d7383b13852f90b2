"""PR Triage - Code owner resolution and path-based labeling for pull requests."""

__version__ = "0.1.0"

from pr_triage.config import TriageConfig

__all__ = ["TriageConfig", "__version__"]

"""Configuration and settings module for PR Triage.

Provides the :class:`TriageConfig` class which centralises all configuration
for owner resolution and labeling.  Configuration is resolved in priority
order:

1. **Environment variables** (highest priority) -- ``PR_TRIAGE_*``
2. **Config file** -- ``<project_root>/.github/pr-triage.json``
3. **Defaults** (lowest priority) -- sensible built-in values

Typical usage::

    config = TriageConfig.load()                        # auto-detect project root
    config = TriageConfig.load("/path/to/project")      # explicit project root
    config = TriageConfig(max_labels=3)                 # programmatic construction

    classifier = config.build_classifier()
    print(config.codeowners_path)   # ".github/CODEOWNERS" (or overridden value)
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, Field, model_validator

if TYPE_CHECKING:
    from pr_triage.labels.classifier import LabelClassifier

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Repository path of the ownership manifest.
DEFAULT_CODEOWNERS_PATH = ".github/CODEOWNERS"

# Config file location, relative to the project root.
CONFIG_FILE_PATH = ".github/pr-triage.json"

# Environment variable prefix.  Every config key can be overridden by setting
# ``PR_TRIAGE_<UPPER_KEY>``.  For example, ``PR_TRIAGE_MAX_LABELS=3``.
ENV_PREFIX = "PR_TRIAGE_"

# Sentinel files used to detect a project root directory.  The search walks
# upward from the current working directory until one of these is found.
PROJECT_ROOT_MARKERS = (
    ".git",
    "pyproject.toml",
    "setup.py",
    "setup.cfg",
    "package.json",
)

_TRUE_VALUES = ("true", "1", "yes")

# ---------------------------------------------------------------------------
# Configuration model
# ---------------------------------------------------------------------------


class TriageConfig(BaseModel):
    """Centralised configuration for PR Triage.

    Every field has a sensible default.  Fields can be overridden by a
    ``pr-triage.json`` file or by environment variables (see module
    docstring).

    Attributes
    ----------
    codeowners_path:
        Repository path of the CODEOWNERS manifest, as passed to the
        hosted-repository API.
    max_labels:
        Maximum number of labels attached to one pull request.  Must be
        >= 1 and <= 100 (GitHub's limit per request).
    rules_path:
        Path to a JSON rules file replacing the built-in label tables.
        Relative paths are resolved against ``project_root``.  When not
        set, the built-in tables are used.
    api_url:
        Base URL of the GitHub REST API.
    post_comment:
        Whether the pipeline posts the owner comment.
    apply_labels:
        Whether the pipeline attaches labels.
    log_level:
        Python logging level name.  One of ``DEBUG``, ``INFO``, ``WARNING``,
        ``ERROR``, ``CRITICAL``.
    project_root:
        The detected or configured project root path.
    """

    codeowners_path: str = Field(
        default=DEFAULT_CODEOWNERS_PATH,
        min_length=1,
        description="Repository path of the CODEOWNERS manifest.",
    )
    max_labels: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Max labels attached to one pull request (1-100).",
    )
    rules_path: Optional[str] = Field(
        default=None,
        description="JSON rules file replacing the built-in label tables.",
    )
    api_url: str = Field(
        default="https://api.github.com",
        description="GitHub REST API base URL.",
    )
    post_comment: bool = Field(
        default=True,
        description="Post the code owner comment.",
    )
    apply_labels: bool = Field(
        default=True,
        description="Attach labels to the pull request.",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL.",
    )
    project_root: Optional[str] = Field(
        default=None,
        description="Detected or configured project root path.",
    )

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def resolve_paths(self) -> "TriageConfig":
        """Resolve ``project_root`` and ``rules_path`` to absolute paths."""
        if self.project_root is not None:
            self.project_root = str(Path(self.project_root).resolve())
        else:
            detected = _detect_project_root()
            self.project_root = str(detected if detected is not None else Path.cwd())

        if self.rules_path is not None:
            rules = Path(self.rules_path)
            if not rules.is_absolute():
                rules = Path(self.project_root) / rules
            self.rules_path = str(rules.resolve())

        return self

    @model_validator(mode="after")
    def validate_log_level(self) -> "TriageConfig":
        """Normalise and validate the log level string."""
        normalised = self.log_level.upper().strip()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalised not in valid_levels:
            raise ValueError(
                f"Invalid log_level '{self.log_level}'. "
                f"Must be one of: {', '.join(sorted(valid_levels))}."
            )
        self.log_level = normalised
        return self

    # ------------------------------------------------------------------
    # Factory: load from file + environment
    # ------------------------------------------------------------------

    @classmethod
    def load(
        cls,
        project_root: Optional[str] = None,
        config_path: Optional[str] = None,
    ) -> "TriageConfig":
        """Load configuration with full resolution: file -> env -> defaults.

        Parameters
        ----------
        project_root:
            Explicit project root.  When *None*, auto-detection is used.
        config_path:
            Explicit path to a JSON config file.  When *None*, the config
            file is looked up at ``<project_root>/.github/pr-triage.json``.
        """
        if project_root is not None:
            resolved_root = str(Path(project_root).resolve())
        else:
            detected = _detect_project_root()
            resolved_root = str(detected if detected is not None else Path.cwd())

        merged: dict = {}
        merged.update(_load_config_file(resolved_root, config_path))
        merged.update(_load_env_overrides())
        merged["project_root"] = resolved_root

        return cls.model_validate(merged)

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def build_classifier(self) -> "LabelClassifier":
        """Build a :class:`LabelClassifier` from the configured tables and cap.

        Raises
        ------
        RuleFileError
            When ``rules_path`` is set and the file is missing or invalid.
        """
        from pr_triage.labels.classifier import LabelClassifier
        from pr_triage.labels.rules import DEFAULT_RULE_TABLES, load_rule_tables

        tables = DEFAULT_RULE_TABLES
        if self.rules_path is not None:
            tables = load_rule_tables(self.rules_path)
        return LabelClassifier(tables=tables, max_labels=self.max_labels)

    # ------------------------------------------------------------------
    # Utility
    # ------------------------------------------------------------------

    def configure_logging(self) -> None:
        """Apply the configured log level to the ``pr_triage`` logger.

        Adds a single StreamHandler on first call; later calls only update
        the level.
        """
        pkg_logger = logging.getLogger("pr_triage")
        pkg_logger.setLevel(self.log_level)

        if not pkg_logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
            handler.setFormatter(formatter)
            pkg_logger.addHandler(handler)
        for handler in pkg_logger.handlers:
            handler.setLevel(self.log_level)

    def to_dict(self) -> dict:
        """Return all configuration values as a plain dictionary."""
        return self.model_dump()

    def __repr__(self) -> str:
        return (
            f"TriageConfig("
            f"codeowners_path={self.codeowners_path!r}, "
            f"max_labels={self.max_labels}, "
            f"rules_path={self.rules_path!r}, "
            f"log_level={self.log_level!r}, "
            f"project_root={self.project_root!r}"
            f")"
        )


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _detect_project_root(start_path: Optional[Path] = None) -> Optional[Path]:
    """Walk upward from *start_path* to find the project root.

    The project root is the first directory that contains one of the
    :data:`PROJECT_ROOT_MARKERS`.  Returns *None* when the filesystem root
    is reached without finding one.
    """
    current = (start_path or Path.cwd()).resolve()

    # Safety limit for unusual filesystems.
    max_depth = 50
    for _ in range(max_depth):
        for marker in PROJECT_ROOT_MARKERS:
            if (current / marker).exists():
                return current

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def _load_config_file(
    project_root: str,
    config_path: Optional[str] = None,
) -> dict:
    """Read the JSON config file and return its contents as a dict.

    Returns an empty dict if the file does not exist or is malformed.
    """
    if config_path is not None:
        path = Path(config_path).resolve()
    else:
        path = Path(project_root) / CONFIG_FILE_PATH

    if not path.is_file():
        logger.debug("No config file at %s. Using defaults.", path)
        return {}

    try:
        with open(path, "r", encoding="utf-8") as fp:
            data = json.load(fp)
    except json.JSONDecodeError:
        logger.warning(
            "Config file %s contains invalid JSON. Ignoring.",
            path,
            exc_info=True,
        )
        return {}
    except OSError:
        logger.warning(
            "Could not read config file %s. Ignoring.",
            path,
            exc_info=True,
        )
        return {}

    if not isinstance(data, dict):
        logger.warning(
            "Config file %s does not contain a JSON object. Ignoring.",
            path,
        )
        return {}

    logger.info("Loaded configuration from %s", path)
    return data


def _load_env_overrides() -> dict:
    """Read ``PR_TRIAGE_*`` environment variables and return overrides.

    Supported variables:

    - ``PR_TRIAGE_CODEOWNERS_PATH`` -- override codeowners_path
    - ``PR_TRIAGE_MAX_LABELS`` -- override max_labels (integer)
    - ``PR_TRIAGE_RULES_PATH`` -- override rules_path
    - ``PR_TRIAGE_API_URL`` -- override api_url
    - ``PR_TRIAGE_POST_COMMENT`` -- override post_comment (``true``/``false``)
    - ``PR_TRIAGE_APPLY_LABELS`` -- override apply_labels (``true``/``false``)
    - ``PR_TRIAGE_LOG_LEVEL`` -- override log_level
    """
    overrides: dict = {}

    for env_key, field_name in (
        ("CODEOWNERS_PATH", "codeowners_path"),
        ("RULES_PATH", "rules_path"),
        ("API_URL", "api_url"),
        ("LOG_LEVEL", "log_level"),
    ):
        val = os.environ.get(f"{ENV_PREFIX}{env_key}")
        if val is not None:
            overrides[field_name] = val

    max_labels = os.environ.get(f"{ENV_PREFIX}MAX_LABELS")
    if max_labels is not None:
        try:
            overrides["max_labels"] = int(max_labels)
        except ValueError:
            logger.warning(
                "Invalid %sMAX_LABELS value: %r. Must be an integer. Ignoring.",
                ENV_PREFIX,
                max_labels,
            )

    for env_key, field_name in (
        ("POST_COMMENT", "post_comment"),
        ("APPLY_LABELS", "apply_labels"),
    ):
        val = os.environ.get(f"{ENV_PREFIX}{env_key}")
        if val is not None:
            overrides[field_name] = val.lower() in _TRUE_VALUES

    if overrides:
        logger.info(
            "Environment overrides applied: %s",
            ", ".join(overrides.keys()),
        )

    return overrides

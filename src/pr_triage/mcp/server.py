"""FastMCP server exposing code owner resolution and labeling as tools.

Typical usage as an MCP server entry point::

    # Via the registered entry point (pyproject.toml):
    # [project.entry-points."mcp.servers"]
    # pr-triage = "pr_triage.mcp:create_server"

    # Or programmatically:
    from pr_triage.mcp.server import create_server
    server = create_server()
    server.run(transport="stdio")

The configuration and the label classifier are built once in
:func:`create_server` and shared read-only by every tool call.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastmcp import FastMCP

from pr_triage import __version__
from pr_triage.comment import render_owner_comment
from pr_triage.config import TriageConfig
from pr_triage.labels.classifier import LabelClassifier
from pr_triage.owners.codeowners import ManifestFormatError, OwnerResolver

logger = logging.getLogger(__name__)

# Module-level singletons.  Created on first call to create_server() or
# get_server().
_server_instance: Optional[FastMCP] = None
_classifier: Optional[LabelClassifier] = None
_config: Optional[TriageConfig] = None


def create_server(
    project_root: Optional[str] = None,
    config_path: Optional[str] = None,
) -> FastMCP:
    """Create and configure the FastMCP server instance.

    1. Loads configuration (TriageConfig) with project root auto-detection.
    2. Builds the LabelClassifier from the configured rule tables.
    3. Instantiates the FastMCP server and registers the tools.

    Raises
    ------
    RuleFileError
        When the configured rules file is missing or invalid.
    """
    global _server_instance, _classifier, _config

    _config = TriageConfig.load(
        project_root=project_root,
        config_path=config_path,
    )
    _config.configure_logging()

    logger.info("Initializing PR Triage MCP server v%s", __version__)
    logger.info("Project root: %s", _config.project_root)

    _classifier = _config.build_classifier()
    logger.info(
        "Label rules: %d exclusive, %d inclusive, max %d labels",
        len(_classifier.tables.exclusive),
        len(_classifier.tables.inclusive),
        _classifier.max_labels,
    )

    _server_instance = FastMCP(
        name="pr-triage",
        instructions=(
            "PR Triage resolves CODEOWNERS owners and derives labels for the "
            "changed files of a pull request. Use resolve_owners with the "
            "manifest text and classify_labels with the changed paths."
        ),
        version=__version__,
    )

    _register_tools(_server_instance)

    logger.info("FastMCP server created successfully. Tools registered.")

    return _server_instance


def get_server() -> FastMCP:
    """Return the existing server instance, creating it if necessary."""
    if _server_instance is None:
        return create_server()
    return _server_instance


def get_classifier() -> LabelClassifier:
    """Return the LabelClassifier used by the server.

    Raises
    ------
    RuntimeError
        If the server has not been created yet.
    """
    if _classifier is None:
        raise RuntimeError(
            "Server has not been initialized. Call create_server() first."
        )
    return _classifier


def get_config() -> TriageConfig:
    """Return the TriageConfig used by the server.

    Raises
    ------
    RuntimeError
        If the server has not been created yet.
    """
    if _config is None:
        raise RuntimeError(
            "Server has not been initialized. Call create_server() first."
        )
    return _config


def reset_server() -> None:
    """Reset the server singleton (primarily for testing)."""
    global _server_instance, _classifier, _config
    _server_instance = None
    _classifier = None
    _config = None
    logger.debug("Server singleton reset.")


# ---------------------------------------------------------------------------
# Tool registration
# ---------------------------------------------------------------------------


def _register_tools(server: FastMCP) -> None:
    """Register all MCP tools on the server instance."""

    @server.tool()
    def health_check() -> dict:
        """Check the health and configuration of the PR Triage server.

        Returns:
            A dictionary with the server version, status, rule table sizes,
            label cap, CODEOWNERS path, project root and a timestamp.
        """
        classifier = get_classifier()
        cfg = get_config()
        return {
            "server_version": __version__,
            "status": "healthy",
            "exclusive_rules": len(classifier.tables.exclusive),
            "inclusive_rules": len(classifier.tables.inclusive),
            "subsystems": len(classifier.tables.subsystems),
            "max_labels": classifier.max_labels,
            "rules_path": cfg.rules_path,
            "codeowners_path": cfg.codeowners_path,
            "project_root": cfg.project_root,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @server.tool()
    def resolve_owners(manifest: str, paths: list[str]) -> dict:
        """Resolve the code owners of changed paths from a CODEOWNERS manifest.

        Every manifest rule that matches a path contributes its owner; rules
        never override each other.

        Args:
            manifest: Full text of the CODEOWNERS file.
            paths: Changed file paths, repository-relative.

        Returns:
            A dictionary with the unique ``owners`` (first-seen order), the
            per-path owner lists under ``paths``, and the rendered
            ``comment``, or an error if the manifest is malformed.
        """
        try:
            resolver = OwnerResolver.parse(manifest)
        except ManifestFormatError as exc:
            logger.warning("resolve_owners: %s", exc)
            return {
                "error": True,
                "message": str(exc),
                "line_number": exc.line_number,
            }

        owners = resolver.resolve(paths)
        return {
            "error": False,
            "owners": owners,
            "paths": {path: resolver.get_owners(path) for path in paths},
            "comment": render_owner_comment(owners),
        }

    @server.tool()
    def classify_labels(
        paths: list[str],
        body: Optional[str] = None,
        base_branch: Optional[str] = None,
    ) -> dict:
        """Derive the labels for a pull request.

        Args:
            paths: Changed file paths, repository-relative.
            body: Pull request description.  Subsystem names before the
                first colon (``"fs, stream: ..."``) become labels.
            base_branch: Target branch; release lines such as ``v20.x``
                become a label.

        Returns:
            A dictionary with ``labels`` (null when nothing applies) and
            ``apply`` telling whether labels should be attached at all.
        """
        result = get_classifier().classify(paths, body, base_branch)
        return {
            "error": False,
            "labels": result,
            "apply": result is not None,
        }

    @server.tool()
    def render_comment(owners: list[str]) -> dict:
        """Render the pull request welcome comment for a list of owners.

        Args:
            owners: Owner handles; duplicates are removed.

        Returns:
            A dictionary with the comment ``body``.
        """
        return {"error": False, "body": render_owner_comment(owners)}

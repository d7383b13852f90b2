"""CODEOWNERS parsing and owner resolution."""

from pr_triage.owners.codeowners import (
    ManifestFormatError,
    OwnerResolver,
    OwnershipRule,
)

__all__ = ["ManifestFormatError", "OwnerResolver", "OwnershipRule"]

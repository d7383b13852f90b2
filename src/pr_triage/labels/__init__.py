"""Path-based pull request labeling: rule tables and classifier."""

from pr_triage.labels.classifier import MAX_LABELS, LabelClassifier, LabelSet
from pr_triage.labels.rules import (
    DEFAULT_RULE_TABLES,
    EXCLUSIVE_RULES,
    INCLUSIVE_RULES,
    SUBSYSTEMS,
    LabelRule,
    LabelTemplateError,
    RuleFileError,
    RuleTables,
    load_rule_tables,
    parse_rule_tables,
    render_template,
)

__all__ = [
    "DEFAULT_RULE_TABLES",
    "EXCLUSIVE_RULES",
    "INCLUSIVE_RULES",
    "LabelClassifier",
    "LabelRule",
    "LabelSet",
    "LabelTemplateError",
    "MAX_LABELS",
    "RuleFileError",
    "RuleTables",
    "SUBSYSTEMS",
    "load_rule_tables",
    "parse_rule_tables",
    "render_template",
]

"""Label rule tables for path-based pull request labeling.

A :class:`LabelRule` pairs a compiled regular expression with an ordered
tuple of label templates.  Templates may reference capture groups of the
rule's pattern as ``$1``, ``$2``, ...; references are validated when the
rule is built, so a template pointing at a group the pattern does not
define never reaches classification.

Rules are grouped into a :class:`RuleTables` bundle:

- ``exclusive`` -- per path, only the first matching rule contributes.
- ``inclusive`` -- per path, every matching rule contributes (verbatim
  labels, no templates).
- ``subsystems`` -- allow-list of subsystem names accepted from the pull
  request description.
- ``branch_pattern`` -- regex whose group 1 is the release line label
  derived from the base branch name.

:data:`DEFAULT_RULE_TABLES` holds the built-in Node.js core tables.  An
alternative bundle can be loaded once from a JSON file with
:func:`load_rule_tables`; keys the file omits fall back to the defaults.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from pr_triage.matching.glob import glob_to_regex, strict_end_anchors

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# ``$<digits>`` back-reference inside a label template.
TEMPLATE_REFERENCE_RE = re.compile(r"\$(\d+)")

# Optional ``v``, major, ``.``, minor or ``x``, then ``-staging`` or the end.
DEFAULT_BRANCH_PATTERN = r"^(v?\d+\.(?:\d+|x))(?:-staging|$)"


class LabelTemplateError(ValueError):
    """Raised when a label template references an undefined capture group."""


class RuleFileError(ValueError):
    """Raised when a JSON rules file cannot be read or is invalid."""


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


def template_references(template: str) -> list[int]:
    """Return the group numbers referenced by *template*, in order."""
    return [int(ref) for ref in TEMPLATE_REFERENCE_RE.findall(template)]


def render_template(template: str, match: re.Match) -> str:
    """Substitute every ``$n`` in *template* with group *n* of *match*.

    A group that did not take part in the match renders as ``""``.
    """
    return TEMPLATE_REFERENCE_RE.sub(
        lambda ref: match.group(int(ref.group(1))) or "",
        template,
    )


# ---------------------------------------------------------------------------
# LabelRule
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LabelRule:
    """A path regex and the labels it contributes.

    Attributes:
        pattern: Compiled regex, searched in a repository-relative path.
            Table patterns anchor themselves with ``^``.  The pattern is
            recompiled on construction with every ``$`` anchor rewritten
            as ``\\Z``, so a trailing newline never satisfies it.
        labels: Label templates, in the order they are added.
    """

    pattern: re.Pattern
    labels: tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "pattern", _compile_strict(self.pattern))
        object.__setattr__(self, "labels", tuple(self.labels))

        groups = self.pattern.groups
        for template in self.labels:
            for ref in template_references(template):
                if ref < 1 or ref > groups:
                    raise LabelTemplateError(
                        f"Label template {template!r} references ${ref}, but "
                        f"pattern {self.pattern.pattern!r} has {groups} "
                        f"capture group(s)."
                    )

    @classmethod
    def from_glob(cls, glob: str, labels: Sequence[str]) -> "LabelRule":
        """Build a rule from a glob; each wildcard is one capture group."""
        return cls(re.compile(glob_to_regex(glob, rooted=False)), tuple(labels))

    @property
    def is_templated(self) -> bool:
        return any(TEMPLATE_REFERENCE_RE.search(label) for label in self.labels)

    def match(self, path: str) -> Optional[re.Match]:
        return self.pattern.search(path)

    def render(self, match: re.Match) -> list[str]:
        """Render every template against *match*, dropping empty labels."""
        rendered = [render_template(template, match) for template in self.labels]
        return [label for label in rendered if label]


def _compile_strict(pattern: Union[str, re.Pattern]) -> re.Pattern:
    """Compile *pattern* so every ``$`` anchor matches only at the end of the path."""
    if isinstance(pattern, str):
        return re.compile(strict_end_anchors(pattern))
    return re.compile(strict_end_anchors(pattern.pattern), pattern.flags)


def _rules(entries: Iterable[tuple[str, Sequence[str]]]) -> tuple[LabelRule, ...]:
    return tuple(LabelRule(re.compile(pattern), tuple(labels)) for pattern, labels in entries)


# ---------------------------------------------------------------------------
# RuleTables
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RuleTables:
    """Immutable bundle of everything the classifier evaluates."""

    exclusive: tuple[LabelRule, ...]
    inclusive: tuple[LabelRule, ...]
    subsystems: frozenset[str] = field(default_factory=frozenset)
    branch_pattern: re.Pattern = field(
        default_factory=lambda: re.compile(DEFAULT_BRANCH_PATTERN)
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "exclusive", tuple(self.exclusive))
        object.__setattr__(self, "inclusive", tuple(self.inclusive))
        object.__setattr__(self, "subsystems", frozenset(self.subsystems))
        object.__setattr__(
            self, "branch_pattern", _compile_strict(self.branch_pattern)
        )
        if self.branch_pattern.groups < 1:
            raise ValueError(
                f"Branch pattern {self.branch_pattern.pattern!r} needs a "
                f"capture group for the version label."
            )
        for rule in self.inclusive:
            if rule.is_templated:
                raise LabelTemplateError(
                    f"Inclusive rule {rule.pattern.pattern!r} uses templated "
                    f"labels {list(rule.labels)}; only exclusive rules may."
                )


# ---------------------------------------------------------------------------
# Built-in tables
# ---------------------------------------------------------------------------

# Order matters: the first match wins per path.
EXCLUSIVE_RULES: tuple[LabelRule, ...] = _rules([
    (r"^test/addons/", ["test", "addons"]),
    (r"^test/debugger", ["test", "debugger"]),
    (r"^test/doctool/", ["test", "doc", "tools"]),
    (r"^test/timers", ["test", "timers"]),
    (r"^test/pseudo-tty/", ["test", "tty"]),
    (r"^test/inspector", ["test", "inspector"]),
    (r"^test/cctest/test_inspector", ["test", "inspector"]),
    (r"^test/node-api/", ["test", "node-api"]),
    (r"^test/js-native-api/", ["test", "node-api"]),
    (r"^test/async-hooks/", ["test", "async_hooks"]),
    (r"^test/report/", ["test", "report"]),
    (r"^test/fixtures/es-module", ["test", "esm"]),
    (r"^test/es-module/", ["test", "esm"]),
    (r"^test/fixtures/wpt/streams/", ["test", "web streams"]),
    (r"^test/", ["test"]),
    (r"^doc/api/webcrypto\.md$", ["doc", "crypto"]),
    (r"^doc/api/modules\.md$", ["doc", "module"]),
    (r"^doc/api/n-api\.md$", ["doc", "node-api"]),
    (r"^doc/api/worker_threads\.md$", ["doc", "worker"]),
    (r"^doc/api/test\.md$", ["doc", "test_runner"]),
    (r"^doc/api/(\w+)\.md$", ["doc", "$1"]),
    (r"^doc/api/deprecations\.md$", ["doc", "deprecations"]),
    (r"^doc/changelogs/", ["release"]),
    (r"^doc/", ["doc"]),
    (r"^benchmark/buffers/", ["benchmark", "buffer"]),
    (r"^benchmark/es/", ["benchmark", "v8 engine"]),
    (r"^benchmark/_http", ["benchmark", "http"]),
    (r"^benchmark/(?:misc|fixtures)/", ["benchmark"]),
    (r"^benchmark/streams/", ["benchmark", "stream"]),
    (r"^benchmark/url/", ["benchmark", "url", "whatwg-url"]),
    (r"^benchmark/([^/]+)/", ["benchmark", "$1"]),
    (r"^benchmark/", ["benchmark", "performance"]),
    (r"^src/async_wrap", ["c++", "async_wrap"]),
    (r"^src/(?:base64|node_buffer|string_)", ["c++", "buffer"]),
    (r"^src/cares", ["c++", "cares"]),
    (r"^src/(?:process_wrap|spawn_)", ["c++", "child_process"]),
    (r"^src/(?:node_)?crypto", ["c++", "crypto"]),
    (r"^src/debug_", ["c++", "debugger"]),
    (r"^src/udp_", ["c++", "dgram"]),
    (r"^src/(?:fs_|node_file|node_stat_watcher)", ["c++", "fs"]),
    (r"^src/node_http_parser", ["c++", "http_parser"]),
    (r"^src/node_i18n", ["c++", "i18n-api"]),
    (r"^src/uv\.", ["c++", "libuv"]),
    (r"^src/(?:connect(?:ion)?|pipe|tcp)_", ["c++", "net"]),
    (r"^src/node_os", ["c++", "os"]),
    (r"^src/(?:node_main|signal_)", ["c++", "process"]),
    (r"^src/timer[_s]", ["c++", "timers"]),
    (r"^src/node_root_certs", ["c++", "tls"]),
    (r"^src/tty_", ["c++", "tty"]),
    (r"^src/node_url", ["c++", "whatwg-url"]),
    (r"^src/node_util", ["c++", "util"]),
    (r"^src/node_v8", ["c++", "v8 engine"]),
    (r"^src/node_contextify", ["c++", "vm"]),
    (r"^src/node_zlib", ["c++", "zlib"]),
    (r"^src/tracing", ["c++", "tracing"]),
    (r"^src/(?:node_api|js_native_api)", ["c++", "node-api"]),
    (r"^src/node_http2", ["c++", "http2"]),
    (r"^src/node_report", ["c++", "report"]),
    (r"^src/node_wasi", ["c++", "wasi"]),
    (r"^src/node_worker", ["c++", "worker"]),
    (r"^src/quic/*", ["c++", "quic"]),
    (r"^src/node_bob*", ["c++", "quic"]),
    (r"^src/node_sea", ["single-executable"]),
    (r"^src/inspector_", ["c++", "inspector", "needs-ci"]),
    (r"^src/(?!node_version\.h)", ["c++"]),
    (r"^BUILDING\.md$", ["build", "doc"]),
    (r"^(?:[A-Z]+$|CODE_OF_CONDUCT|GOVERNANCE|CHANGELOG|\.mail|\.git.+)", ["meta"]),
    (r"^\w+\.md$", ["doc"]),
    (r"^(?:tools/)?(?:Makefile|BSDmakefile|create_android_makefiles)$", ["build", "needs-ci"]),
    (
        r"^tools/(?:install\.py|getnodeversion\.py|js2c\.py|utils\.py|configure\.d/.*)$",
        ["build", "python", "needs-ci"],
    ),
    (r"^vcbuild\.bat$", ["build", "windows", "needs-ci"]),
    (r"^(?:android-)?configure|node\.gyp|common\.gypi$", ["build", "needs-ci"]),
    (r"^tools/gyp", ["tools", "build", "gyp", "needs-ci"]),
    (r"^tools/doc/", ["tools", "doc"]),
    (r"^tools/icu/", ["tools", "i18n-api", "icu", "needs-ci"]),
    (r"^tools/osx-", ["tools", "macos"]),
    (r"^tools/test-npm", ["tools", "test", "npm"]),
    (r"^tools/test", ["tools", "test"]),
    (r"^tools/(?:certdata|mkssldef|mk-ca-bundle)", ["tools", "openssl", "tls"]),
    (r"^tools/msvs/", ["tools", "windows", "install", "needs-ci"]),
    (r"^tools/[^/]+\.bat$", ["tools", "windows", "needs-ci"]),
    (r"^tools/make-v8", ["tools", "v8 engine", "needs-ci"]),
    (r"^tools/v8_gypfiles", ["tools", "v8 engine", "needs-ci"]),
    (r"^tools/snapshot", ["needs-ci"]),
    (r"^tools/build-addons\.mjs", ["needs-ci"]),
    (r"^tools/", ["tools"]),
    (r"^\.eslint|\.editorconfig", ["tools"]),
    (r"^typings/", ["typings"]),
    (r"^deps/uv/", ["libuv"]),
    (r"^deps/v8/tools/gen-postmortem-metadata\.py", ["v8 engine", "python", "post-mortem"]),
    (r"^deps/v8/", ["v8 engine"]),
    (r"^deps/uvwasi/", ["wasi"]),
    (r"^deps/npm/", ["npm", "fast-track"]),
    (r"^deps/nghttp2/nghttp2\.gyp", ["build", "http2"]),
    (r"^deps/nghttp2/", ["http2"]),
    (r"^deps/ngtcp2/", ["quic"]),
    (r"^deps/([^/]+)", ["dependencies", "$1"]),
    (r"^lib/(?:punycode|\w+/freelist|sys\.js)", ["deprecation"]),
    (r"^lib/constants\.js$", ["lib / src"]),
    (r"^lib/internal/debugger$", ["debugger"]),
    (r"^lib/internal/linkedlist\.js$", ["timers"]),
    (r"^lib/internal/bootstrap", ["lib / src"]),
    (r"^lib/internal/v8_prof_", ["tools"]),
    (r"^lib/internal/socket(?:_list|address)\.js$", ["net"]),
    (r"^lib/\w+/streams$", ["stream"]),
    (r"^lib/.*http2", ["http2"]),
    (r"^lib/worker_threads\.js$", ["worker"]),
    (r"^lib/test\.js$", ["test_runner"]),
    (r"^lib/internal/url\.js$", ["whatwg-url"]),
    (r"^lib/internal/modules/esm", ["esm"]),
    (r"^lib/internal/webstreams", ["web streams"]),
    (r"^lib/internal/test_runner", ["test_runner"]),
    (r"^lib/_(\w+)_\w+\.js?$", ["$1"]),
    (r"^lib(?:/internal)?/(\w+)\.js?$", ["$1"]),
    (r"^lib(?:/internal)?/(\w+)(?:/|$)", ["$1"]),
])

INCLUSIVE_RULES: tuple[LabelRule, ...] = _rules([
    (r"^(deps|lib|src|test)/", ["needs-ci"]),
    (r"^(lib|src)/", ["lib / src"]),
])

SUBSYSTEMS: frozenset[str] = frozenset({
    "assert",
    "async_hooks",
    "buffer",
    "child_process",
    "cluster",
    "console",
    "crypto",
    "debugger",
    "dgram",
    "diagnostics_channel",
    "dns",
    "domain",
    "events",
    "esm",
    "fs",
    "http",
    "https",
    "http2",
    "inspector",
    "module",
    "net",
    "os",
    "path",
    "perf_hooks",
    "process",
    "punycode",
    "querystring",
    "quic",
    "readline",
    "repl",
    "report",
    "stream",
    "string_decoder",
    "timers",
    "tls",
    "trace_events",
    "tty",
    "typings",
    "url",
    "util",
    "v8",
    "vm",
    "wasi",
    "worker",
    "zlib",
})

DEFAULT_RULE_TABLES = RuleTables(
    exclusive=EXCLUSIVE_RULES,
    inclusive=INCLUSIVE_RULES,
    subsystems=SUBSYSTEMS,
    branch_pattern=re.compile(DEFAULT_BRANCH_PATTERN),
)


# ---------------------------------------------------------------------------
# Rules file
# ---------------------------------------------------------------------------


class RuleEntry(BaseModel):
    """One rule in a JSON rules file: a regex or a glob, plus labels."""

    model_config = ConfigDict(extra="forbid")

    pattern: Optional[str] = Field(
        default=None,
        description="Regular expression matched against the relative path.",
    )
    glob: Optional[str] = Field(
        default=None,
        description="Glob compiled with the CODEOWNERS compiler.",
    )
    labels: list[str] = Field(
        ...,
        min_length=1,
        description="Label templates added when the rule matches.",
    )

    @model_validator(mode="after")
    def check_single_source(self) -> "RuleEntry":
        """Exactly one of ``pattern`` and ``glob`` must be set."""
        if (self.pattern is None) == (self.glob is None):
            raise ValueError("Each rule needs exactly one of 'pattern' or 'glob'.")
        return self

    def to_rule(self) -> LabelRule:
        if self.glob is not None:
            return LabelRule.from_glob(self.glob, self.labels)
        return LabelRule(re.compile(self.pattern), tuple(self.labels))


class RuleFile(BaseModel):
    """Top-level schema of a JSON rules file."""

    model_config = ConfigDict(extra="forbid")

    exclusive: Optional[list[RuleEntry]] = None
    inclusive: Optional[list[RuleEntry]] = None
    subsystems: Optional[list[str]] = None
    branch_pattern: Optional[str] = None

    def to_tables(self, defaults: RuleTables = DEFAULT_RULE_TABLES) -> RuleTables:
        """Build tables, falling back to *defaults* for omitted keys."""
        exclusive = (
            tuple(entry.to_rule() for entry in self.exclusive)
            if self.exclusive is not None
            else defaults.exclusive
        )
        inclusive = (
            tuple(entry.to_rule() for entry in self.inclusive)
            if self.inclusive is not None
            else defaults.inclusive
        )
        subsystems = (
            frozenset(self.subsystems)
            if self.subsystems is not None
            else defaults.subsystems
        )
        branch_pattern = (
            re.compile(self.branch_pattern)
            if self.branch_pattern is not None
            else defaults.branch_pattern
        )
        return RuleTables(
            exclusive=exclusive,
            inclusive=inclusive,
            subsystems=subsystems,
            branch_pattern=branch_pattern,
        )


def parse_rule_tables(
    data: dict,
    defaults: RuleTables = DEFAULT_RULE_TABLES,
) -> RuleTables:
    """Validate a decoded rules document and build :class:`RuleTables`.

    Raises
    ------
    RuleFileError
        When the document fails validation, contains an invalid regex, or a
        template references an undefined group.
    """
    try:
        return RuleFile.model_validate(data).to_tables(defaults)
    except ValidationError as exc:
        raise RuleFileError(f"Invalid rules document: {exc}") from exc
    except re.error as exc:
        raise RuleFileError(f"Invalid regular expression in rules: {exc}") from exc
    except ValueError as exc:
        raise RuleFileError(str(exc)) from exc


def load_rule_tables(
    path: Union[str, Path],
    defaults: RuleTables = DEFAULT_RULE_TABLES,
) -> RuleTables:
    """Read a JSON rules file from *path* and build :class:`RuleTables`."""
    rules_path = Path(path)
    try:
        with open(rules_path, "r", encoding="utf-8") as fp:
            data = json.load(fp)
    except json.JSONDecodeError as exc:
        raise RuleFileError(f"Rules file {rules_path} is not valid JSON: {exc}") from exc
    except OSError as exc:
        raise RuleFileError(f"Could not read rules file {rules_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise RuleFileError(f"Rules file {rules_path} does not contain a JSON object.")

    tables = parse_rule_tables(data, defaults)
    logger.info(
        "Loaded rules from %s: %d exclusive, %d inclusive, %d subsystems",
        rules_path,
        len(tables.exclusive),
        len(tables.inclusive),
        len(tables.subsystems),
    )
    return tables

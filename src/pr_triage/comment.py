"""Rendering of the welcome comment posted on new pull requests.

The comment follows a fixed template: a thanks line, then either a note
that the maintainers will review, or a bulleted list of the code owners of
the changed files followed by a closing line.  Rendering is pure.
"""

from __future__ import annotations

from typing import Iterable

THANKS_LINE = "Thanks for opening this pull request!"
NO_OWNERS_LINE = "The maintainers will review your changes soon."
OWNERS_HEADER = "The following people are the code owners of the changed files:"
OWNERS_CLOSING = "Along with the maintainers, they will review your changes soon."


def render_owner_comment(owners: Iterable[str]) -> str:
    """Render the comment for *owners*.

    Owners are deduplicated, keeping the first occurrence.
    """
    unique = list(dict.fromkeys(owners))

    if not unique:
        return f"{THANKS_LINE}\n{NO_OWNERS_LINE}"

    bullets = "\n".join(f"- {owner}" for owner in unique)
    return f"{THANKS_LINE}\n{OWNERS_HEADER}\n\n{bullets}\n\n{OWNERS_CLOSING}"

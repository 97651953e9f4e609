"""Encode the tag selection as a renderer directive: {{renderer :qquery, tag1, tag2}}."""

import re

RENDERER_TYPE = ":qquery"

_DIRECTIVE_RE = re.compile(r"\{\{renderer\s+([^{}]*)\}\}")


def parse_directive(text: str) -> list[str] | None:
    """Return the selected tag names of the first qquery directive in text.

    Returns None when text holds no qquery directive; an empty list when the
    directive selects nothing.
    """
    for match in _DIRECTIVE_RE.finditer(text):
        args = [a.strip() for a in match.group(1).split(",")]
        if args[0] == RENDERER_TYPE:
            return [a for a in args[1:] if a]
    return None


def render_directive(names: list[str]) -> str:
    """Render a directive selecting names, in order."""
    for name in names:
        if "," in name or "}" in name:
            msg = f"Tag name cannot be encoded in a directive: {name!r}"
            raise ValueError(msg)
    return "{{renderer " + ", ".join([RENDERER_TYPE, *names]) + "}}"


def toggle_tag(names: list[str], name: str) -> list[str]:
    """Add name to the selection, or remove it if already selected (case-insensitive)."""
    key = name.lower()
    if any(n.lower() == key for n in names):
        return [n for n in names if n.lower() != key]
    return [*names, name]

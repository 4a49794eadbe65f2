"""Identifier case conversion and small text helpers for scaffolding."""

from __future__ import annotations

import re

_SEPARATOR_RE = re.compile(r"[-_\s]+(.)?")
_WORD_BOUNDARY_RE = re.compile(r"([a-z0-9])([A-Z])")


def pascal_case(text: str) -> str:
    """``user-profile`` -> ``UserProfile``."""
    joined = _SEPARATOR_RE.sub(lambda m: m.group(1).upper() if m.group(1) else "", text.strip())
    return joined[:1].upper() + joined[1:]


def camel_case(text: str) -> str:
    """``user-profile`` -> ``userProfile``."""
    pascal = pascal_case(text)
    return pascal[:1].lower() + pascal[1:]


def kebab_case(text: str) -> str:
    """``UserProfile`` -> ``user-profile``."""
    spaced = _WORD_BOUNDARY_RE.sub(r"\1-\2", text.strip())
    return re.sub(r"[\s_]+", "-", spaced).lower()


def snake_case(text: str) -> str:
    """``UserProfile`` -> ``user_profile``."""
    spaced = _WORD_BOUNDARY_RE.sub(r"\1_\2", text.strip())
    return re.sub(r"[\s-]+", "_", spaced).lower()


def constant_case(text: str) -> str:
    return snake_case(text).upper()


def pluralize(word: str) -> str:
    """Pluralize a simple English word with the regular suffix rules."""
    if word.endswith(("s", "x", "z", "sh", "ch")):
        return word + "es"
    if word.endswith("y") and not re.search(r"[aeiou]y$", word, re.IGNORECASE):
        return word[:-1] + "ies"
    return word + "s"


def indent(text: str, spaces: int = 2) -> str:
    """Indent every non-blank line; blank lines become empty."""
    pad = " " * spaces
    return "\n".join(pad + line if line.strip() else "" for line in text.split("\n"))

"""Identifier conversion for generated wrapper names."""
from __future__ import annotations
import keyword
import re

_NON_WORD = re.compile(r"\W")


def to_identifier(value: str) -> str:
    """Convert a snake_case name to CamelCase.

    Each `_`-separated segment gets an upper-cased first character and a
    lower-cased remainder; empty segments are dropped.

        >>> to_identifier("user_id")
        'UserId'
        >>> to_identifier("ADD__USER")
        'AddUser'
    """
    return "".join(
        part[:1].upper() + part[1:].lower()
        for part in value.split("_")
        if part
    )


def safe_identifier(value: str, fallback: str) -> str:
    """Make `value` usable as a Python identifier.

    Quote characters are dropped and any other non-word character becomes
    `_`. A leading digit gets a `_` prefix, keywords get a `_` suffix and an
    empty result is replaced by `fallback`.
    """
    name = _NON_WORD.sub("_", value.replace('"', "").replace("`", ""))
    if not name or not name.strip("_"):
        name = fallback
    if name[0].isdigit():
        name = f"_{name}"
    if keyword.iskeyword(name):
        name = f"{name}_"
    return name

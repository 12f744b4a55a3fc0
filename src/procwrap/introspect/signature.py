"""Parameter extraction from CREATE PROCEDURE text.

This is a best-effort lexical scan, not a SQL grammar: it finds the
parameter list after the PROCEDURE keyword and takes one name per
comma-separated clause.
"""
from __future__ import annotations

import logging
from typing import Iterable, Iterator

from procwrap.introspect.models import ProcedureInfo

logger = logging.getLogger(__name__)

DIRECTION_KEYWORDS = frozenset({"IN", "OUT", "INOUT"})


def parse_parameters(definition: str) -> list[str]:
    """Extract ordered parameter names from a procedure definition.

    Args:
        definition: Full CREATE PROCEDURE text

    Returns:
        Parameter names in declaration order; empty when the procedure takes
        no arguments or no signature could be found
    """
    clause = parameter_clause(definition)
    if not clause:
        return []

    params = []
    for part in _split_outside_parens(clause, ","):
        words = part.split()
        if len(words) < 2:
            continue
        # The first word is never taken as the name
        for word in words[1:]:
            if word.upper() not in DIRECTION_KEYWORDS:
                params.append(word)
                break

    return params


def parameter_clause(definition: str) -> str | None:
    """Return the trimmed text between the parameter-list parentheses.

    Returns None when the definition has no PROCEDURE keyword or no
    complete parenthesised list after it.
    """
    if not definition:
        return None

    start = definition.upper().find("PROCEDURE")
    if start == -1:
        return None

    left = definition.find("(", start)
    if left == -1:
        return None

    right = _find_balanced_paren(definition, left)
    if right == -1:
        return None

    return definition[left + 1:right].strip()


def annotate_parameters(procedures: Iterable[ProcedureInfo]) -> None:
    """Fill in `parameters` for each procedure from its definition."""
    for proc in procedures:
        if not proc.definition:
            logger.warning(f"No definition available for procedure {proc.name}; wrapping it without parameters")
            proc.parameters = []
            continue

        if parameter_clause(proc.definition) is None:
            logger.warning(f"Could not find a parameter list for procedure {proc.name}; wrapping it without parameters")
            proc.parameters = []
            continue

        proc.parameters = parse_parameters(proc.definition)
        logger.debug(f"Procedure {proc.name} parameters: {proc.parameters}")


def _find_balanced_paren(text: str, start: int) -> int:
    """Return the index of the `)` closing the `(` at `start`, or -1."""
    if start >= len(text) or text[start] != "(":
        return -1

    for i, char, depth in _unquoted(text, start):
        if char == ")" and depth == 0:
            return i
    return -1


def _split_outside_parens(text: str, delimiter: str) -> list[str]:
    """Split text on delimiter but not inside parentheses or quotes."""
    parts = []
    last = 0
    for i, char, depth in _unquoted(text):
        if char == delimiter and depth == 0:
            parts.append(text[last:i].strip())
            last = i + 1
    parts.append(text[last:].strip())
    return parts


def _unquoted(text: str, start: int = 0) -> Iterator[tuple[int, str, int]]:
    """Yield (index, char, paren depth) for characters outside quoted strings.

    The depth reported for a parenthesis is the depth after it. A doubled
    quote inside a string closes and reopens it, which leaves the string
    open as intended.
    """
    depth = 0
    quote = None
    for i in range(start, len(text)):
        char = text[i]
        if quote:
            if char == quote:
                quote = None
            continue
        if char in ("'", '"'):
            quote = char
            continue
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        yield i, char, depth

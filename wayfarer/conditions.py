"""Flag condition expressions.

Grammar (whitespace around operators is ignored):

    expr   := clause ("||" clause)*
    clause := FLAG ("&&" FLAG)*

A FLAG term is true when the token is present in the flag set. An empty or
missing expression is always true. Negation is deliberately unsupported:
every expression is monotonic, so gaining flags can only ever unlock content.
"""

from __future__ import annotations

import re
from collections.abc import Collection
from functools import lru_cache

_FLAG_RE = re.compile(r"^[A-Za-z0-9_.:\-]+$")

Clause = frozenset[str]


@lru_cache(maxsize=512)
def parse_condition(expression: str) -> tuple[Clause, ...]:
    """Parse an expression into OR-ed clauses of AND-ed flags.

    Raises ValueError on malformed input. An empty expression parses to ().
    """
    text = expression.strip()
    if not text:
        return ()
    clauses: list[Clause] = []
    for raw_clause in text.split("||"):
        terms = [t.strip() for t in raw_clause.split("&&")]
        for term in terms:
            if not term:
                raise ValueError(f"Empty term in condition {expression!r}")
            if term.startswith("!"):
                raise ValueError(f"Negation is not supported in condition {expression!r}")
            if not _FLAG_RE.match(term):
                raise ValueError(f"Invalid flag token {term!r} in condition {expression!r}")
        clauses.append(frozenset(terms))
    return tuple(clauses)


def evaluate(expression: str | None, flags: Collection[str]) -> bool:
    """Return True when `expression` holds for `flags`. Pure and deterministic."""
    if not expression:
        return True
    clauses = parse_condition(expression)
    if not clauses:
        return True
    present = flags if isinstance(flags, (set, frozenset)) else set(flags)
    return any(clause <= present for clause in clauses)


def referenced_flags(expression: str | None) -> set[str]:
    if not expression:
        return set()
    flags: set[str] = set()
    for clause in parse_condition(expression):
        flags |= clause
    return flags

"""Rewrite driver-agnostic statements into a backend's native placeholder syntax.

Statements are written once with either named ``@key`` markers (bound from a
single mapping) or positional ``?`` markers, and rendered per dialect:
``$1, $2, ...`` for postgres and ``?`` for sqlite. Translation is purely
textual; markers inside string literals are not recognised as literals.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, List, Sequence

from adapters.base import MissingParameterError
from adapters.sql_renderer import SQLDialect


_NAMED_MARKER = re.compile(r"@([A-Za-z0-9_]+)")
_POSITIONAL_MARKER = re.compile(r"\?")
_INSERT_PREFIX = re.compile(r"^\s*insert\b", re.IGNORECASE)
_RETURNING_CLAUSE = re.compile(r"\breturning\b", re.IGNORECASE)


@dataclass(frozen=True)
class TranslatedStatement:
    text: str
    values: List[Any] = field(default_factory=list)
    is_insert: bool = False
    appended_returning: bool = False


def is_insert_statement(sql: str) -> bool:
    return bool(_INSERT_PREFIX.match(sql))


def has_returning_clause(sql: str) -> bool:
    return bool(_RETURNING_CLAUSE.search(sql))


def _bind_named(sql: str, args: Sequence[Any], dialect: SQLDialect):
    if len(args) > 1:
        raise TypeError(f"Named parameters expect a single mapping argument, got {len(args)} arguments")
    params = args[0] if args else {}
    if not isinstance(params, Mapping):
        raise TypeError(f"Named parameters expect a mapping, got {type(params).__name__}")

    values: List[Any] = []

    def _replace(match: re.Match) -> str:
        key = match.group(1)
        if key not in params:
            raise MissingParameterError(f"Missing value for named parameter @{key}")
        values.append(params[key])
        return dialect.render_placeholder(len(values))

    return _NAMED_MARKER.sub(_replace, sql), values


def _bind_positional(sql: str, args: Sequence[Any], dialect: SQLDialect):
    position = 0

    def _replace(_match: re.Match) -> str:
        nonlocal position
        position += 1
        return dialect.render_placeholder(position)

    return _POSITIONAL_MARKER.sub(_replace, sql), list(args)


def translate_statement(
    sql: str,
    args: Sequence[Any],
    dialect: SQLDialect,
    want_generated_id: bool = False,
) -> TranslatedStatement:
    if _NAMED_MARKER.search(sql):
        text, values = _bind_named(sql, args, dialect)
    elif _POSITIONAL_MARKER.search(sql):
        text, values = _bind_positional(sql, args, dialect)
    else:
        text, values = sql, []

    is_insert = is_insert_statement(sql)
    append_returning = want_generated_id and is_insert and not has_returning_clause(sql)
    if append_returning:
        text = f"{text.rstrip().rstrip(';').rstrip()} RETURNING id"
    return TranslatedStatement(
        text=text,
        values=values,
        is_insert=is_insert,
        appended_returning=append_returning,
    )

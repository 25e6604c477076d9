"""Fill-only-if-empty merge between a stored row and a seed record.

Each seed field is classified against the stored value as one of:

* ``PRESENT``    the stored value is populated and must be kept;
* ``ABSENT``     the column is missing, ``NULL`` or an empty string;
* ``EMPTY_JSON`` a JSON column holding ``[]``, ``{}`` or unparsable text.

Only non-``PRESENT`` fields are patched, and only when the seed would
actually change them.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Collection, Dict, List, Mapping

_MISSING = object()


class FieldState(Enum):
    PRESENT = "present"
    ABSENT = "absent"
    EMPTY_JSON = "empty_json"


@dataclass(frozen=True)
class FieldDiff:
    column: str
    state: FieldState
    current: Any
    seed_value: Any

    @property
    def needs_fill(self) -> bool:
        if self.state is FieldState.PRESENT:
            return False
        return self.current is _MISSING or self.current != self.seed_value


def is_empty_value(value: Any) -> bool:
    return value is None or value is _MISSING or value == ""


def is_empty_json(value: Any) -> bool:
    if is_empty_value(value):
        return True
    try:
        parsed = json.loads(value) if isinstance(value, (str, bytes)) else value
    except (TypeError, ValueError):
        return True
    if isinstance(parsed, (list, dict)):
        return len(parsed) == 0
    return False


def classify_value(value: Any, is_json: bool = False) -> FieldState:
    if is_empty_value(value):
        return FieldState.ABSENT
    if is_json and is_empty_json(value):
        return FieldState.EMPTY_JSON
    return FieldState.PRESENT


def diff_fields(
    existing: Mapping[str, Any],
    seed: Mapping[str, Any],
    json_columns: Collection[str] = (),
    skip: Collection[str] = (),
) -> List[FieldDiff]:
    diffs: List[FieldDiff] = []
    for column, seed_value in seed.items():
        if column in skip:
            continue
        current = existing.get(column, _MISSING)
        diffs.append(
            FieldDiff(
                column=column,
                state=classify_value(current, column in json_columns),
                current=current,
                seed_value=seed_value,
            )
        )
    return diffs


def merge_missing(
    existing: Mapping[str, Any],
    seed: Mapping[str, Any],
    json_columns: Collection[str] = (),
    skip: Collection[str] = (),
) -> Dict[str, Any]:
    """Return the columns to write so ``existing`` picks up the seed's values for its empty fields."""
    return {
        diff.column: diff.seed_value
        for diff in diff_fields(existing, seed, json_columns=json_columns, skip=skip)
        if diff.needs_fill
    }

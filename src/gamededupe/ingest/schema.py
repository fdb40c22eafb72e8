"""Shared source-table schema and its validation.

Every source table must carry the shared columns below; anything else is
a source-exclusive detail column kept aside for the cross-source join.
Validation failures are fatal: the pipeline cannot align the sources.
"""

from collections.abc import Iterable
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match

__all__ = [
    "INDEX_COLUMN",
    "SHARED_COLUMNS",
    "SOURCE_ROW_SCHEMA",
    "SchemaError",
    "check_columns",
    "validate_row",
]

SHARED_COLUMNS = ("title", "platform", "first_release_year", "all_release_year")
INDEX_COLUMN = "index"

_SCALAR = {"type": ["string", "number", "null"]}

SOURCE_ROW_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Source table row",
    "type": "object",
    "required": list(SHARED_COLUMNS),
    "properties": {
        INDEX_COLUMN: {"type": ["integer", "string"]},
        "title": {"type": ["string", "null"]},
        "platform": {
            "anyOf": [
                {"type": ["string", "null"]},
                {"type": "array", "items": {"type": ["string", "null"]}},
            ]
        },
        "first_release_year": _SCALAR,
        "all_release_year": {"anyOf": [_SCALAR, {"type": "array", "items": _SCALAR}]},
    },
}

_VALIDATOR = Draft202012Validator(SOURCE_ROW_SCHEMA)


class SchemaError(ValueError):
    """A source table cannot be aligned with the shared schema.

    Attributes
    ----------
    source : str
        Offending source name.
    column : str | None
        Missing or malformed column, when known.
    row : int | None
        Zero-based row position, for row-level errors.
    """

    def __init__(
        self,
        source: str,
        message: str,
        column: str | None = None,
        row: int | None = None,
    ) -> None:
        self.source = source
        self.column = column
        self.row = row
        location = f"source '{source}'"
        if row is not None:
            location += f", row {row}"
        super().__init__(f"{location}: {message}")


def check_columns(source: str, columns: Iterable[str]) -> None:
    """Abort when a shared column is missing from a table header.

    Raises
    ------
    SchemaError
        Naming the source and the first missing shared column.
    """
    header = {column: None for column in columns}
    missing: list[str] = []
    for error in _VALIDATOR.iter_errors(header):
        if error.validator == "required":
            missing.extend(c for c in error.validator_value if c not in error.instance)

    if missing:
        raise SchemaError(
            source,
            f"missing shared column '{missing[0]}' (required: {', '.join(SHARED_COLUMNS)})",
            column=missing[0],
        )


def validate_row(source: str, position: int, row: dict[str, Any]) -> None:
    """Check one row's cell types.

    Raises
    ------
    SchemaError
        With the path of the most relevant validation error.
    """
    error = best_match(_VALIDATOR.iter_errors(row))
    if error is None:
        return

    column = str(error.absolute_path[0]) if error.absolute_path else None
    raise SchemaError(source, error.message, column=column, row=position)

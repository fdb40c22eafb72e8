"""Loading and validation of per-source tables."""

from gamededupe.ingest.loader import (
    SourceTable,
    load_source,
    load_sources,
    read_rows,
    record_from_row,
)
from gamededupe.ingest.schema import SHARED_COLUMNS, SchemaError, check_columns, validate_row

__all__ = [
    "SHARED_COLUMNS",
    "SchemaError",
    "SourceTable",
    "check_columns",
    "load_source",
    "load_sources",
    "read_rows",
    "record_from_row",
    "validate_row",
]

"""Exact rollup engine: group by normalized key and merge fields."""

from gamededupe.rollup.engine import (
    choose_title,
    from_source,
    min_year,
    platform_names,
    rollup,
    rollup_sources,
    sort_elements,
)

__all__ = [
    "choose_title",
    "from_source",
    "min_year",
    "platform_names",
    "rollup",
    "rollup_sources",
    "sort_elements",
]

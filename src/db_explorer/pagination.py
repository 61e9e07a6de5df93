from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping

from .config import PaginationConfig

# optional sign and ASCII digits only; no whitespace or underscores
INTEGER_TEXT = re.compile(r"^[+-]?[0-9]+$")


@dataclass(frozen=True)
class Pagination:
    limit: int
    offset: int


def parse_int_param(query: Mapping[str, str], key: str, default: int) -> int:
    """Return the integer value of ``key`` or ``default`` when absent or unparsable."""
    if key not in query:
        return default
    value = query[key]
    if not isinstance(value, str) or not INTEGER_TEXT.fullmatch(value):
        return default
    return int(value)


def clamp_limit(requested: int, cap: int) -> int:
    if cap == -1:
        return requested
    return min(requested, cap)


def get_pagination(query: Mapping[str, str], config: PaginationConfig | None = None) -> Pagination:
    config = config or PaginationConfig()
    limit = parse_int_param(query, "limit", config.default_limit)
    offset = parse_int_param(query, "offset", config.default_offset)
    if limit < 0:
        limit = config.default_limit
    if offset < 0:
        offset = config.default_offset
    return Pagination(limit=clamp_limit(limit, config.max_limit), offset=offset)

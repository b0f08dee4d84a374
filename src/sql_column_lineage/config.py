"""Runtime options for lineage resolution."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import FrozenSet, Mapping, Optional

MAX_DEPTH_ENV = "SQL_COLUMN_LINEAGE_MAX_DEPTH"

DEFAULT_MAX_DEPTH = 64

# Aggregates whose result no longer carries the input values.
MASKING_AGGREGATES = frozenset(
    {"count", "count_if", "approx_distinct", "approx_count_distinct"}
)

# One-way hash and digest functions, by SQL name or sqlglot node key.
MASKING_FUNCTIONS = frozenset(
    {
        "md5",
        "md5_digest",
        "md5digest",
        "sha",
        "sha1",
        "sha2",
        "sha1digest",
        "sha2digest",
        "sha256",
        "sha512",
        "hash",
        "xxhash64",
        "murmur3",
        "farm_fingerprint",
        "crc32",
    }
)


@dataclass(frozen=True)
class LineageOptions:
    """Options shared by every step of a single lineage request."""

    max_depth: int = DEFAULT_MAX_DEPTH
    masking_functions: FrozenSet[str] = MASKING_FUNCTIONS
    masking_aggregates: FrozenSet[str] = MASKING_AGGREGATES

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LineageOptions":
        """Build options, honoring the depth override from the environment."""

        environ = os.environ if environ is None else environ
        raw = environ.get(MAX_DEPTH_ENV, "").strip()
        if not raw:
            return cls()
        try:
            max_depth = int(raw)
        except ValueError as exc:
            raise ValueError(f"{MAX_DEPTH_ENV} must be an integer, got {raw!r}") from exc
        if max_depth < 1:
            raise ValueError(f"{MAX_DEPTH_ENV} must be positive, got {max_depth}")
        return cls(max_depth=max_depth)

"""Small helpers shared by the model and the layout engine (dates, radii, jiggle)."""
from __future__ import annotations

from datetime import datetime, timezone
import math

import numpy as np

DATE_FORMAT = "%Y-%m-%d"


def parse_date(value: str) -> datetime:
    """Parse an ISO calendar date (YYYY-MM-DD) into an aware UTC datetime."""
    return datetime.strptime(value.strip(), DATE_FORMAT).replace(tzinfo=timezone.utc)

def to_timestamp(value: datetime | float) -> float:
    """Convert a datetime (naive = UTC) or POSIX seconds to POSIX seconds."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    return float(value)

def from_timestamp(seconds: float) -> datetime:
    """Convert POSIX seconds back to an aware UTC datetime."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)

def citation_radius(num_citations: float, minimum: float = 3.0) -> float:
    """
    Visual radius of a node from its popularity.

    Args:
        num_citations: Citation count (non-positive means "no paper").
        minimum: Radius used when there are no citations.

    Returns:
        max(4, sqrt(5 * ln(citations))) for citations > 0, else minimum.
    """
    if num_citations > 0:
        return max(4.0, math.sqrt(5.0 * max(math.log(num_citations), 0.0)))
    return minimum

def jiggle(rng: np.random.Generator, size: int | tuple[int, ...] | None = None) -> float | np.ndarray:
    """Sub-pixel random offset used to separate coincident points."""
    return (rng.random(size) - 0.5) * 1e-6

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Iterable, List, Optional, Tuple, TYPE_CHECKING

import numpy as np

from lineagechart.utils import from_timestamp, to_timestamp

if TYPE_CHECKING:
    import numpy.typing as npt

    from lineagechart.model.forest import Forest

logger = logging.getLogger(__name__)


class TimeScale:
    """
    Linear map from a timestamp domain onto a pixel interval.

    A degenerate domain (all timestamps equal) maps everything onto the
    midpoint of the range.
    """
    def __init__(
        self,
        domain: Tuple[datetime | float, datetime | float],
        range_: Tuple[float, float],
    ) -> None:
        """
        Args:
            domain: (earliest, latest) timestamp, as datetimes or POSIX seconds.
            range_: (lo, hi) pixel edges the domain is mapped onto.
        """
        self.t0 = to_timestamp(domain[0])
        self.t1 = to_timestamp(domain[1])
        self.lo, self.hi = float(range_[0]), float(range_[1])
        self._span = self.t1 - self.t0

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(domain=({self.t0}, {self.t1}), range=({self.lo}, {self.hi}))"

    @classmethod
    def from_forest(cls, forest: Forest, range_: Tuple[float, float]) -> TimeScale:
        """Scale spanning the publication dates of every node in the forest."""
        stamps = [node.timestamp for node in forest]
        if not stamps:
            return cls((0.0, 0.0), range_)
        return cls((min(stamps), max(stamps)), range_)

    @property
    def is_degenerate(self) -> bool:
        return self._span == 0.0

    @property
    def midpoint(self) -> float:
        return 0.5 * (self.lo + self.hi)

    def __call__(self, t: datetime | float | npt.ArrayLike) -> float | npt.NDArray[np.float64]:
        """Map a timestamp (or array of POSIX seconds) to pixels."""
        if isinstance(t, datetime):
            t = to_timestamp(t)
        values = np.asarray(t, dtype=np.float64)
        if self.is_degenerate:
            out = np.full_like(values, self.midpoint)
        else:
            out = self.lo + (values - self.t0) / self._span * (self.hi - self.lo)
        return float(out) if out.ndim == 0 else out

    def invert(self, px: float) -> datetime:
        """Map a pixel back to a timestamp; a degenerate scale returns its only date."""
        if self.is_degenerate or self.hi == self.lo:
            return from_timestamp(self.t0)
        return from_timestamp(self.t0 + (px - self.lo) / (self.hi - self.lo) * self._span)

    def year_ticks(self, after_year: Optional[int] = None) -> List[Tuple[datetime, float]]:
        """
        January 1st of every year inside the domain.

        Args:
            after_year: Only years strictly greater than this are returned.

        Returns:
            (date, pixel) pairs in ascending order.
        """
        first = from_timestamp(self.t0).year
        last = from_timestamp(self.t1).year
        years: Iterable[int] = range(first, last + 1)
        if after_year is not None:
            years = [y for y in years if y > after_year]
        ticks = []
        for year in years:
            date = datetime(year, 1, 1, tzinfo=timezone.utc)
            if self.t0 <= date.timestamp() <= self.t1:
                ticks.append((date, self(date)))
        return ticks

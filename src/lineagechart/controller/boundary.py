from __future__ import annotations

from typing import Optional, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt

    from lineagechart.model.settings import Viewport


class BoundaryClamp:
    """
    Projects node centres into the viewport, inset by each node's radius.

    Purely positional: velocities are left untouched, so a node pushed
    against an edge keeps jittering there until damping settles it.
    """
    def __init__(self, viewport: Viewport, radii: npt.ArrayLike) -> None:
        """
        Args:
            viewport: Chart size and margins.
            radii: Visual radius per node.
        """
        radii = np.asarray(radii, dtype=np.float64)
        self.lower = np.column_stack((
            np.full_like(radii, viewport.margin_left) + radii,
            np.full_like(radii, viewport.margin_top + viewport.label_offset) + radii,
        ))
        self.upper = np.column_stack((
            np.full_like(radii, viewport.width - viewport.margin_right) - radii,
            np.full_like(radii, viewport.height - viewport.margin_bottom) - radii,
        ))

    def __call__(
        self,
        positions: npt.NDArray[np.float64],
        free: Optional[npt.NDArray[np.bool_]] = None,
    ) -> npt.NDArray[np.float64]:
        """
        Return clamped positions without modifying the input.

        Args:
            positions: (n, 2) node centres.
            free: Optional (n, 2) mask; only True entries are clamped.
        """
        # max-then-min keeps the result defined when the viewport is smaller than a node
        clamped = np.minimum(np.maximum(positions, self.lower), self.upper)
        if free is None:
            return clamped
        return np.where(free, clamped, positions)

    def apply_inplace(
        self,
        positions: npt.NDArray[np.float64],
        free: Optional[npt.NDArray[np.bool_]] = None,
    ) -> None:
        positions[...] = self(positions, free)

    def clamp_point(self, x: float, y: float, index: int) -> tuple[float, float]:
        """Clamp a single point for node index (used for drag pins)."""
        cx = min(max(x, self.lower[index, 0]), self.upper[index, 0])
        cy = min(max(y, self.lower[index, 1]), self.upper[index, 1])
        return cx, cy

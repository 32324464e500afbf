"""
Barnes-Hut Quad-Tree
====================
Spatial index used to approximate the many-body (repulsion) force.

Each cell stores the total charge of the points below it and their
charge-weighted centre. A cell that is small compared to its distance from
the query point acts as a single point charge, which reduces the repulsion
pass from O(n^2) to O(n log n).
"""
from __future__ import annotations

import logging
import math
from typing import List, Optional, TYPE_CHECKING

import numpy as np

from lineagechart.utils import jiggle

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)

# Points closer than this are kept in one leaf instead of splitting forever
MAX_DEPTH = 32


class QuadCell:
    """One square cell of the tree."""
    __slots__ = ("x0", "y0", "size", "children", "indices", "cx", "cy", "charge")

    def __init__(self, x0: float, y0: float, size: float) -> None:
        self.x0 = x0
        self.y0 = y0
        self.size = size
        self.children: List[QuadCell] = []
        self.indices: Optional[npt.NDArray[np.int64]] = None  # set on leaves
        self.cx = 0.0
        self.cy = 0.0
        self.charge = 0.0

    @property
    def is_leaf(self) -> bool:
        return self.indices is not None


class QuadTree:
    """
    Quad-tree over a fixed set of points with per-point charges.
    """
    def __init__(
        self,
        points: npt.NDArray[np.float64],
        charges: npt.NDArray[np.float64],
    ) -> None:
        """
        Build the tree.

        Args:
            points: (n, 2) point coordinates.
            charges: Charge per point (negative charges repel).
        """
        self.points = points
        self.charges = charges
        self.root: Optional[QuadCell] = None
        if len(points) == 0:
            return

        x0, y0 = points.min(axis=0)
        x1, y1 = points.max(axis=0)
        # square cells keep the size/distance criterion isotropic
        size = max(x1 - x0, y1 - y0, 1.0)
        self.root = self._build(np.arange(len(points)), float(x0), float(y0), float(size), 0)

    def _build(self, indices: npt.NDArray[np.int64], x0: float, y0: float, size: float, depth: int) -> QuadCell:
        cell = QuadCell(x0, y0, size)
        if len(indices) == 1 or depth >= MAX_DEPTH:
            cell.indices = indices
        else:
            half = size / 2.0
            xm = x0 + half
            ym = y0 + half
            pts = self.points[indices]
            right = pts[:, 0] >= xm
            below = pts[:, 1] >= ym
            for mask, qx, qy in (
                (~right & ~below, x0, y0),
                (right & ~below, xm, y0),
                (~right & below, x0, ym),
                (right & below, xm, ym),
            ):
                if mask.any():
                    cell.children.append(self._build(indices[mask], qx, qy, half, depth + 1))
        self._accumulate(cell)
        return cell

    def _accumulate(self, cell: QuadCell) -> None:
        """Total charge and |charge|-weighted centre of the cell."""
        if cell.is_leaf:
            q = self.charges[cell.indices]
            pts = self.points[cell.indices]
        else:
            q = np.array([c.charge for c in cell.children])
            pts = np.array([(c.cx, c.cy) for c in cell.children])
        weight = np.abs(q).sum()
        cell.charge = float(q.sum())
        if weight > 0:
            cell.cx, cell.cy = (pts * np.abs(q)[:, None]).sum(axis=0) / weight
        else:
            cell.cx, cell.cy = pts.mean(axis=0)

    def accumulate_force(
        self,
        i: int,
        alpha: float,
        theta2: float,
        distance_min2: float,
        distance_max2: float,
        rng: np.random.Generator,
    ) -> tuple[float, float]:
        """
        Velocity change of point i from every other charge.

        Args:
            i: Query point row.
            alpha: Current simulation energy.
            theta2: Squared Barnes-Hut opening criterion.
            distance_min2: Squared distance below which the force stops growing.
            distance_max2: Squared distance beyond which charges are ignored.
            rng: Source of jiggle for coincident points.

        Returns:
            (dvx, dvy) to add to point i's velocity.
        """
        if self.root is None:
            return 0.0, 0.0
        px, py = self.points[i]
        dvx = 0.0
        dvy = 0.0
        stack = [self.root]
        while stack:
            cell = stack.pop()
            if cell.charge == 0.0:
                continue
            dx = cell.cx - px
            dy = cell.cy - py
            l = dx * dx + dy * dy
            size = cell.size

            # far enough away: treat the cell as one charge
            if size * size / theta2 < l:
                if l < distance_max2:
                    if dx == 0.0:
                        dx = float(jiggle(rng))
                        l += dx * dx
                    if dy == 0.0:
                        dy = float(jiggle(rng))
                        l += dy * dy
                    if l < distance_min2:
                        l = math.sqrt(distance_min2 * l)
                    w = cell.charge * alpha / l
                    dvx += dx * w
                    dvy += dy * w
                continue

            if not cell.is_leaf:
                stack.extend(cell.children)
                continue

            for j in cell.indices:
                if j == i:
                    continue
                dx = self.points[j, 0] - px
                dy = self.points[j, 1] - py
                l = dx * dx + dy * dy
                if l >= distance_max2:
                    continue
                if dx == 0.0:
                    dx = float(jiggle(rng))
                    l += dx * dx
                if dy == 0.0:
                    dy = float(jiggle(rng))
                    l += dy * dy
                if l < distance_min2:
                    l = math.sqrt(distance_min2 * l)
                w = self.charges[j] * alpha / l
                dvx += dx * w
                dvy += dy * w
        return dvx, dvy

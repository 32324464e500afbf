from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from typing import Optional, Sequence, TYPE_CHECKING

import numpy as np
from scipy.spatial import cKDTree

from lineagechart.controller.kernels import apply_springs, resolve_collisions
from lineagechart.controller.quadtree import QuadTree
from lineagechart.utils import jiggle

if TYPE_CHECKING:
    import numpy.typing as npt

    from lineagechart.controller.simulation import Simulation

logger = logging.getLogger(__name__)

# Per-node coefficient: a constant or one value per node row
Coefficient = float | Sequence[float] | np.ndarray


def _per_node(value: Coefficient, n: int) -> npt.NDArray[np.float64]:
    arr = np.asarray(value, dtype=np.float64)
    if arr.ndim == 0:
        return np.full(n, float(arr))
    if arr.shape != (n,):
        raise ValueError(f"Expected {n} per-node values, got shape {arr.shape}.")
    return arr.copy()


# ==========================================
# ABSTRACT CLASS FOR FORCES
# ==========================================
class Force(ABC):
    """
    Abstract base class for simulation forces.

    A force is bound to one simulation, then called once per tick; it adds
    to simulation.velocities and never writes positions.
    """
    NAME: str = "force"

    def __init__(self) -> None:
        self.simulation: Optional[Simulation] = None

    def initialize(self, simulation: Simulation) -> None:
        """Bind to a simulation and precompute per-node data."""
        self.simulation = simulation

    @abstractmethod
    def apply(self, alpha: float) -> None:
        """
        Add this force's contribution to the velocities.

        Args:
            alpha: Current simulation energy.
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


# ==========================================
# PAIRWISE FORCES
# ==========================================

class LinkForce(Force):
    """
    Springs along parent -> child links.
    """
    NAME = "link"

    def __init__(
        self,
        links: Sequence[tuple[int, int]],
        distance: float = 30.0,
        strength: Optional[float] = None,
    ) -> None:
        """
        Args:
            links: (source row, target row) per link.
            distance: Rest length of every spring.
            strength: Stiffness; None uses 1 / min(degree of either end).
        """
        super().__init__()
        self.pairs = np.asarray(links, dtype=np.int64).reshape(-1, 2)
        self.distance = distance
        self.strength = strength
        self._distances = np.empty(0)
        self._strengths = np.empty(0)
        self._bias = np.empty(0)

    def initialize(self, simulation: Simulation) -> None:
        super().initialize(simulation)
        m = len(self.pairs)
        degree = np.bincount(self.pairs.ravel(), minlength=simulation.n).astype(np.float64)
        src = self.pairs[:, 0]
        tgt = self.pairs[:, 1]
        self._bias = degree[src] / (degree[src] + degree[tgt]) if m else np.empty(0)
        if self.strength is None:
            self._strengths = 1.0 / np.minimum(degree[src], degree[tgt]) if m else np.empty(0)
        else:
            self._strengths = np.full(m, self.strength)
        self._distances = np.full(m, self.distance)

    def apply(self, alpha: float) -> None:
        sim = self.simulation
        if len(self.pairs) == 0:
            return
        apply_springs(
            self.pairs[:, 0],
            self.pairs[:, 1],
            sim.positions,
            sim.velocities,
            self._distances,
            self._strengths,
            self._bias,
            alpha,
            jiggle(sim.rng, (len(self.pairs), 2)),
        )


class ManyBodyForce(Force):
    """
    Repulsion (negative strength) or attraction between all nodes.

    Below exact_below nodes the force is computed exactly with NumPy
    broadcasting; above it a Barnes-Hut quad-tree approximates far cells.
    """
    NAME = "charge"

    def __init__(
        self,
        strength: float = -30.0,
        theta: float = 0.9,
        distance_min: float = 1.0,
        distance_max: float = np.inf,
        exact_below: int = 64,
    ) -> None:
        super().__init__()
        self.strength = strength
        self.theta = theta
        self.distance_min = distance_min
        self.distance_max = distance_max
        self.exact_below = exact_below
        self._charges = np.empty(0)

    def initialize(self, simulation: Simulation) -> None:
        super().initialize(simulation)
        self._charges = np.full(simulation.n, self.strength)

    def apply(self, alpha: float) -> None:
        sim = self.simulation
        if sim.n < 2:
            return
        if sim.n < self.exact_below:
            sim.velocities += self._exact(sim.positions, alpha, sim.rng)
        else:
            sim.velocities += self._approximate(sim.positions, alpha, sim.rng)

    def _exact(self, pos: npt.NDArray[np.float64], alpha: float, rng: np.random.Generator) -> npt.NDArray[np.float64]:
        n = len(pos)
        diff = pos[np.newaxis, :, :] - pos[:, np.newaxis, :]  # (n, n, 2), row i: others minus i
        off_diag = ~np.eye(n, dtype=bool)
        coincident = (diff == 0.0) & off_diag[:, :, np.newaxis]
        if coincident.any():
            diff[coincident] = jiggle(rng, int(coincident.sum()))
        dist2 = np.sum(diff ** 2, axis=2)
        dist2 = np.where(dist2 < self.distance_min ** 2, np.sqrt(self.distance_min ** 2 * dist2), dist2)
        in_range = off_diag & (dist2 < self.distance_max ** 2)
        with np.errstate(divide="ignore", invalid="ignore"):
            weight = np.where(in_range, self._charges[np.newaxis, :] * alpha / dist2, 0.0)
        return np.sum(diff * weight[:, :, np.newaxis], axis=1)

    def _approximate(self, pos: npt.NDArray[np.float64], alpha: float, rng: np.random.Generator) -> npt.NDArray[np.float64]:
        tree = QuadTree(pos, self._charges)
        theta2 = self.theta ** 2
        dmin2 = self.distance_min ** 2
        dmax2 = self.distance_max ** 2
        dv = np.zeros_like(pos)
        for i in range(len(pos)):
            dv[i] = tree.accumulate_force(i, alpha, theta2, dmin2, dmax2, rng)
        return dv


class CollideForce(Force):
    """
    Keeps nodes from overlapping by treating each as a disk.

    Not scaled by alpha: overlaps are resolved even once the layout has
    cooled down.
    """
    NAME = "collide"

    def __init__(self, radius: Coefficient = 1.0, strength: float = 1.0) -> None:
        super().__init__()
        self.radius = radius
        self.strength = strength
        self._radii = np.empty(0)

    def initialize(self, simulation: Simulation) -> None:
        super().initialize(simulation)
        self._radii = _per_node(self.radius, simulation.n)

    def apply(self, alpha: float) -> None:
        sim = self.simulation
        if sim.n < 2:
            return
        predicted = sim.positions + sim.velocities
        reach = 2.0 * float(self._radii.max())
        pairs = cKDTree(predicted).query_pairs(r=reach, output_type="ndarray").astype(np.int64)
        if len(pairs) == 0:
            return
        pairs = pairs[np.lexsort((pairs[:, 1], pairs[:, 0]))]
        resolve_collisions(
            pairs,
            sim.positions,
            sim.velocities,
            self._radii,
            self.strength,
            jiggle(sim.rng, (len(pairs), 2)),
        )


# ==========================================
# POSITIONING FORCES
# ==========================================

class PositionForce(Force):
    """
    Pulls one coordinate of every node toward a per-node target.
    """
    AXIS: int = 0

    def __init__(self, target: Coefficient = 0.0, strength: Coefficient = 0.1) -> None:
        super().__init__()
        self.target = target
        self.strength = strength
        self._targets = np.empty(0)
        self._strengths = np.empty(0)

    def initialize(self, simulation: Simulation) -> None:
        super().initialize(simulation)
        self._targets = _per_node(self.target, simulation.n)
        self._strengths = _per_node(self.strength, simulation.n)

    def apply(self, alpha: float) -> None:
        sim = self.simulation
        axis = self.AXIS
        sim.velocities[:, axis] += (self._targets - sim.positions[:, axis]) * self._strengths * alpha


class PositionXForce(PositionForce):
    NAME = "x"
    AXIS = 0


class PositionYForce(PositionForce):
    NAME = "y"
    AXIS = 1


def depth_weighted_strength(
    depths: Sequence[int] | npt.NDArray[np.int64],
    base: float,
    max_depth: Optional[int] = None,
) -> npt.NDArray[np.float64]:
    """
    base * (max_depth + 1 - depth): roots snap firmly to their row, deep
    descendants get more vertical freedom.
    """
    depths = np.asarray(depths, dtype=np.float64)
    if max_depth is None:
        max_depth = int(depths.max()) if depths.size else 0
    return base * (max_depth + 1 - depths)


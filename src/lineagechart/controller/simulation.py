"""
Force Simulation
================
Iterative relaxation of node positions under a list of forces.

Why is this file needed?
------------------------
1. Ownership: It is the only writer of node positions and velocities; drag
   pins enter through pin()/unpin(), everything else reads snapshots.
2. Time-Stepping: One call to tick() is one discrete step; the "alpha"
   energy decays geometrically so the layout cools and comes to rest.
3. Scheduling: step() is meant to be called once per frame by the host loop;
   it does nothing while the layout is at rest and resumes after restart().
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Callable, Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

import numpy as np

from lineagechart.model.settings import ForceSettings

if TYPE_CHECKING:
    import numpy.typing as npt

    from lineagechart.controller.boundary import BoundaryClamp
    from lineagechart.controller.forces import Force

logger = logging.getLogger(__name__)

INITIAL_RADIUS = 10.0
INITIAL_ANGLE = math.pi * (3.0 - math.sqrt(5.0))


@dataclass(frozen=True)
class LayoutSnapshot:
    """
    Immutable view of the layout after a tick.

    Arrays are copies flagged read-only; holding a snapshot never aliases
    the simulation's buffers.
    """
    tick: int
    alpha: float
    names: Tuple[str, ...]
    positions: npt.NDArray[np.float64]
    links: npt.NDArray[np.int64]
    settled: bool

    def position(self, name: str) -> Tuple[float, float]:
        x, y = self.positions[self.names.index(name)]
        return float(x), float(y)

    @property
    def link_segments(self) -> npt.NDArray[np.float64]:
        """(m, 2, 2): [[source x, source y], [target x, target y]] per link."""
        return self.positions[self.links]

    def as_dict(self) -> Dict[str, Tuple[float, float]]:
        return {name: (float(x), float(y)) for name, (x, y) in zip(self.names, self.positions)}


def phyllotaxis(n: int, center: Tuple[float, float] = (0.0, 0.0)) -> npt.NDArray[np.float64]:
    """Sunflower spiral: distinct, evenly spread starting points."""
    i = np.arange(n, dtype=np.float64)
    radius = INITIAL_RADIUS * np.sqrt(0.5 + i)
    angle = i * INITIAL_ANGLE
    return np.column_stack((center[0] + radius * np.cos(angle), center[1] + radius * np.sin(angle)))


class Simulation:
    """
    Owns positions, velocities and the alpha schedule of one layout.
    """
    def __init__(
        self,
        names: Sequence[str],
        links: Sequence[Tuple[int, int]] = (),
        forces: Sequence[Force] = (),
        anchors: Optional[npt.ArrayLike] = None,
        initial_positions: Optional[npt.ArrayLike] = None,
        clamp: Optional[BoundaryClamp] = None,
        settings: ForceSettings = ForceSettings(),
        seed: int = 0,
    ) -> None:
        """
        Args:
            names: Node identities; their order defines every buffer row.
            links: (source row, target row) per link, reported in snapshots.
            forces: Forces applied each tick, in order.
            anchors: (n, 2) hard anchors, NaN where the axis is free.
            initial_positions: (n, 2) start positions; NaN entries are seeded
                on a phyllotaxis spiral.
            clamp: Post-integration projection into the viewport.
            settings: Alpha schedule and damping.
            seed: Seed for the jiggle applied to coincident points.
        """
        self.names: Tuple[str, ...] = tuple(names)
        self.n = len(self.names)
        self.links = np.asarray(links, dtype=np.int64).reshape(-1, 2)
        self.clamp = clamp
        self.rng = np.random.default_rng(seed)

        self.alpha = settings.alpha
        self.alpha_min = settings.alpha_min
        self.alpha_decay = settings.alpha_decay
        self.alpha_target = settings.alpha_target
        self.velocity_decay = settings.velocity_decay
        self.max_ticks = settings.max_ticks

        self.anchors = np.full((self.n, 2), np.nan)
        if anchors is not None:
            self.anchors[...] = np.asarray(anchors, dtype=np.float64).reshape(self.n, 2)
        self.anchors.setflags(write=False)
        self.pins = np.full((self.n, 2), np.nan)

        self.positions = phyllotaxis(self.n)
        if initial_positions is not None:
            seeded = np.asarray(initial_positions, dtype=np.float64).reshape(self.n, 2)
            self.positions = np.where(np.isnan(seeded), self.positions, seeded)
        self.velocities = np.zeros((self.n, 2))
        self._hold(self.held)

        self.tick_count = 0
        self._running = True
        self._listeners: List[Callable[[LayoutSnapshot], None]] = []

        self.forces: Dict[str, Force] = {}
        for force in forces:
            self.add_force(force)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(n={self.n}, alpha={self.alpha:.4f}, tick={self.tick_count})"

    # ---- configuration ----

    def add_force(self, force: Force, name: Optional[str] = None) -> None:
        force.initialize(self)
        self.forces[name or force.NAME] = force

    def force(self, name: str) -> Force:
        return self.forces[name]

    def on_tick(self, callback: Callable[[LayoutSnapshot], None]) -> None:
        """Register a listener receiving a snapshot after every tick."""
        self._listeners.append(callback)

    # ---- state ----

    @property
    def held(self) -> npt.NDArray[np.float64]:
        """(n, 2) coordinates held fixed this tick; anchors win over pins."""
        return np.where(np.isnan(self.anchors), self.pins, self.anchors)

    @property
    def is_settled(self) -> bool:
        return self.alpha < self.alpha_min

    @property
    def is_running(self) -> bool:
        return self._running

    def restart(self) -> None:
        if not self._running:
            logger.debug(f"Simulation restarted at alpha={self.alpha:.4f}.")
        self._running = True

    def stop(self) -> None:
        self._running = False

    def pin(self, index: int, x: Optional[float], y: Optional[float]) -> None:
        """Hold node index at (x, y) from the next tick on; None leaves an axis free."""
        self.pins[index] = (np.nan if x is None else x, np.nan if y is None else y)

    def unpin(self, index: int) -> None:
        self.pins[index] = np.nan

    # ---- integration ----

    def _hold(self, held: npt.NDArray[np.float64]) -> npt.NDArray[np.bool_]:
        fixed = ~np.isnan(held)
        self.positions[fixed] = held[fixed]
        self.velocities[fixed] = 0.0
        return fixed

    def tick(self) -> LayoutSnapshot:
        """
        Advance the layout by one step.

        Returns:
            Snapshot of the positions after integration and clamping.
        """
        self.alpha += (self.alpha_target - self.alpha) * self.alpha_decay

        for force in self.forces.values():
            force.apply(self.alpha)

        held = self.held
        free = np.isnan(held)
        self.velocities[free] *= 1.0 - self.velocity_decay
        self.positions[free] += self.velocities[free]
        self._hold(held)

        if self.clamp is not None:
            self.clamp.apply_inplace(self.positions, free)

        self.tick_count += 1
        snapshot = self.snapshot()
        for callback in self._listeners:
            callback(snapshot)
        return snapshot

    def step(self) -> Optional[LayoutSnapshot]:
        """
        Frame callback: tick once if running, stop once the layout has cooled.

        Returns:
            The new snapshot, or None if the simulation is at rest.
        """
        if not self._running:
            return None
        snapshot = self.tick()
        if self.is_settled:
            self._running = False
            logger.info(f"Layout settled after {self.tick_count} ticks.")
        return snapshot

    def run(self, max_ticks: Optional[int] = None) -> bool:
        """
        Tick until alpha drops below alpha_min or max_ticks is reached.

        Args:
            max_ticks: Safety cap; defaults to the configured max_ticks.

        Returns:
            True if the layout settled, False if it is still settling.
        """
        limit = self.max_ticks if max_ticks is None else max_ticks
        for _ in range(limit):
            if self.is_settled:
                break
            self.tick()
        if self.is_settled:
            logger.info(f"Layout settled after {self.tick_count} ticks.")
            return True
        logger.info(f"Layout still settling after {self.tick_count} ticks (alpha={self.alpha:.4f}).")
        return False

    def snapshot(self) -> LayoutSnapshot:
        positions = self.positions.copy()
        positions.setflags(write=False)
        links = self.links.copy()
        links.setflags(write=False)
        return LayoutSnapshot(
            tick=self.tick_count,
            alpha=self.alpha,
            names=self.names,
            positions=positions,
            links=links,
            settled=self.is_settled,
        )

"""
Layout Orchestration
====================
Wires the forest and the chart settings into a running simulation.

Why is this file needed?
------------------------
It is the single place that knows which forces the chart uses and with
which coefficients. Views only talk to ChartLayout: step() per frame,
begin/update/end_drag for pointer gestures, resize() on window changes.
"""
from __future__ import annotations

from datetime import datetime
import logging
from typing import Callable, List, Optional, Tuple, TYPE_CHECKING

import numpy as np

from lineagechart.controller.boundary import BoundaryClamp
from lineagechart.controller.drag import DragController
from lineagechart.controller.forces import (
    CollideForce, Force, LinkForce, ManyBodyForce, PositionXForce, PositionYForce, depth_weighted_strength
)
from lineagechart.controller.planner import ConstraintPlanner, LayoutPlan
from lineagechart.controller.simulation import LayoutSnapshot, Simulation, phyllotaxis
from lineagechart.controller.time_scale import TimeScale

if TYPE_CHECKING:
    import numpy.typing as npt

    from lineagechart.model.forest import Forest
    from lineagechart.model.settings import ChartSettings, Viewport

logger = logging.getLogger(__name__)


def build_forces(forest: Forest, plan: LayoutPlan, scale: TimeScale, settings: ChartSettings) -> List[Force]:
    """The five chart forces: springs, repulsion, collision, time X, depth-weighted Y."""
    f = settings.forces
    links = [(link.source.uid, link.target.uid) for link in forest.links]
    depths = [node.depth for node in forest]
    return [
        LinkForce(links, distance=f.link_distance, strength=f.link_strength),
        ManyBodyForce(
            strength=f.charge_strength,
            theta=f.charge_theta,
            distance_min=f.charge_distance_min,
            distance_max=f.charge_distance_max,
            exact_below=f.exact_charge_below,
        ),
        CollideForce(radius=f.collide_radius, strength=f.collide_strength),
        PositionXForce(target=time_targets(forest, scale), strength=f.x_strength),
        PositionYForce(
            target=plan.y_targets,
            strength=depth_weighted_strength(depths, f.y_strength, forest.max_depth),
        ),
    ]

def time_targets(forest: Forest, scale: TimeScale) -> npt.NDArray[np.float64]:
    return np.asarray(scale(np.array([node.timestamp for node in forest], dtype=np.float64)), dtype=np.float64)


class ChartLayout:
    """
    Time scale, constraint plan, simulation and drag controller of one chart.
    """
    def __init__(self, forest: Forest, settings: ChartSettings) -> None:
        self.forest = forest
        self.settings = settings
        self._listeners: List[Callable[[LayoutSnapshot], None]] = []
        self._build(initial_positions=None)

    def _build(self, initial_positions: Optional[npt.NDArray[np.float64]]) -> None:
        viewport = self.settings.viewport
        self.scale = TimeScale.from_forest(self.forest, viewport.x_range)
        self.plan = ConstraintPlanner(self.settings).plan(self.forest)
        self.clamp = BoundaryClamp(viewport, [node.radius for node in self.forest])

        if initial_positions is None:
            seeds = np.column_stack((time_targets(self.forest, self.scale), self.plan.y_targets))
            # spiral offsets keep nodes sharing a target apart
            initial_positions = seeds + phyllotaxis(len(self.forest))

        self.simulation = Simulation(
            names=[node.name for node in self.forest],
            links=[(link.source.uid, link.target.uid) for link in self.forest.links],
            forces=build_forces(self.forest, self.plan, self.scale, self.settings),
            anchors=self.plan.fixed,
            initial_positions=initial_positions,
            clamp=self.clamp,
            settings=self.settings.forces,
            seed=self.settings.seed,
        )
        for callback in self._listeners:
            self.simulation.on_tick(callback)
        self.drag = DragController(self.simulation, self.clamp, self.settings.forces.drag_alpha_target)

    @property
    def viewport(self) -> Viewport:
        return self.settings.viewport

    def on_tick(self, callback: Callable[[LayoutSnapshot], None]) -> None:
        self._listeners.append(callback)
        self.simulation.on_tick(callback)

    def step(self) -> Optional[LayoutSnapshot]:
        return self.simulation.step()

    def run(self, max_ticks: Optional[int] = None) -> bool:
        return self.simulation.run(max_ticks)

    def snapshot(self) -> LayoutSnapshot:
        return self.simulation.snapshot()

    def year_ticks(self, after_year: Optional[int] = None) -> List[Tuple[datetime, float]]:
        """Axis ticks of the time scale; none for an empty forest."""
        if len(self.forest) == 0:
            return []
        return self.scale.year_ticks(after_year)

    def begin_drag(self, node: str, x: float, y: float) -> None:
        self.drag.begin_drag(node, x, y)

    def update_drag(self, node: str, x: float, y: float) -> None:
        self.drag.update_drag(node, x, y)

    def end_drag(self, node: str) -> None:
        self.drag.end_drag(node)

    def resize(self, viewport: Viewport) -> None:
        """
        Re-initialise scale, plan and forces for a new viewport.

        Current positions are carried over, rescaled to the new size, and the
        simulation is re-energized so the layout adapts.
        """
        old = self.settings.viewport
        positions = self.simulation.positions.copy()
        if old.width > 0 and old.height > 0:
            positions *= np.array([viewport.width / old.width, viewport.height / old.height])
        self.settings = self.settings.with_viewport(viewport)
        self._build(initial_positions=positions)
        self.simulation.alpha = max(self.simulation.alpha, self.settings.forces.drag_alpha_target)
        logger.info(f"Layout re-initialised for {viewport.width:.0f}x{viewport.height:.0f}.")

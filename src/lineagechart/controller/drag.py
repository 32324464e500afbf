"""
Drag Interaction
================
Finite-state machine turning pointer gestures into temporary pins.

States: FREE -> DRAGGING -> FREE. The three transition functions are pure
(they return a new DragSession) and know nothing about any event system;
DragController applies their result to a Simulation.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum
import logging
from typing import Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from lineagechart.controller.boundary import BoundaryClamp
    from lineagechart.controller.simulation import Simulation

logger = logging.getLogger(__name__)


class InteractionError(RuntimeError):
    """Raised when drag events arrive out of protocol."""


class DragState(StrEnum):
    FREE = "free"
    DRAGGING = "dragging"


@dataclass(frozen=True)
class DragSession:
    """Drag state of one pointing device."""
    state: DragState = DragState.FREE
    node: Optional[str] = None
    pin: Optional[Tuple[float, float]] = None
    alpha_target: float = 0.0


def begin_drag(session: DragSession, node: str, x: float, y: float, alpha_target: float = 0.3) -> DragSession:
    """FREE -> DRAGGING: pin node at (x, y) and re-energize the layout."""
    if session.state == DragState.DRAGGING:
        raise InteractionError(f"Cannot start dragging {node!r}: {session.node!r} is already being dragged.")
    return DragSession(state=DragState.DRAGGING, node=node, pin=(x, y), alpha_target=alpha_target)

def update_drag(session: DragSession, node: str, x: float, y: float) -> DragSession:
    """DRAGGING -> DRAGGING: move the pin to the pointer."""
    if session.state != DragState.DRAGGING or session.node != node:
        raise InteractionError(f"Cannot move {node!r}: it is not being dragged.")
    return replace(session, pin=(x, y))

def end_drag(session: DragSession, node: str) -> DragSession:
    """DRAGGING -> FREE: release the pin and let the layout cool again."""
    if session.state == DragState.FREE:
        return session
    if session.node != node:
        raise InteractionError(f"Cannot release {node!r}: {session.node!r} is being dragged.")
    return DragSession(alpha_target=0.0)


class DragController:
    """
    Applies drag transitions to a simulation.

    Pin writes land in the simulation's pin buffer immediately, so the very
    next tick sees them.
    """
    def __init__(
        self,
        simulation: Simulation,
        clamp: Optional[BoundaryClamp] = None,
        alpha_target: float = 0.3,
    ) -> None:
        self.simulation = simulation
        self.clamp = clamp
        self.drag_alpha_target = alpha_target
        self.session = DragSession()

    @property
    def dragging(self) -> Optional[str]:
        return self.session.node

    def _pin_active(self) -> None:
        index = self.simulation.names.index(self.session.node)
        x, y = self.session.pin
        if self.clamp is not None:
            x, y = self.clamp.clamp_point(x, y, index)
        self.simulation.pin(index, x, y)

    def begin_drag(self, node: str, x: float, y: float) -> None:
        if node not in self.simulation.names:
            raise InteractionError(f"Unknown node {node!r}.")
        self.session = begin_drag(self.session, node, x, y, self.drag_alpha_target)
        self._pin_active()
        self.simulation.alpha_target = self.session.alpha_target
        self.simulation.restart()
        logger.debug(f"Drag started on '{node}' at ({x:.1f}, {y:.1f}).")

    def update_drag(self, node: str, x: float, y: float) -> None:
        self.session = update_drag(self.session, node, x, y)
        self._pin_active()

    def end_drag(self, node: str) -> None:
        was_dragging = self.session.state == DragState.DRAGGING
        self.session = end_drag(self.session, node)
        if not was_dragging:
            logger.debug(f"Ignoring release of '{node}': no drag in progress.")
            return
        self.simulation.unpin(self.simulation.names.index(node))
        self.simulation.alpha_target = self.session.alpha_target
        logger.debug(f"Drag ended on '{node}'.")

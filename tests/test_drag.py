import numpy as np
import pytest

from lineagechart.controller.boundary import BoundaryClamp
from lineagechart.controller.drag import (
    DragController, DragSession, DragState, InteractionError, begin_drag, end_drag, update_drag
)
from lineagechart.controller.simulation import Simulation
from lineagechart.model.settings import Viewport


def test_pure_transitions():
    session = begin_drag(DragSession(), "B", 1.0, 2.0)
    assert session.state == DragState.DRAGGING
    assert session.pin == (1.0, 2.0)
    assert session.alpha_target == 0.3
    moved = update_drag(session, "B", 3.0, 4.0)
    assert moved.pin == (3.0, 4.0)
    assert session.pin == (1.0, 2.0)
    released = end_drag(moved, "B")
    assert released == DragSession()


def test_protocol_violations():
    session = begin_drag(DragSession(), "B", 1.0, 2.0)
    with pytest.raises(InteractionError):
        begin_drag(session, "C", 0.0, 0.0)
    with pytest.raises(InteractionError):
        update_drag(session, "C", 0.0, 0.0)
    with pytest.raises(InteractionError):
        update_drag(DragSession(), "B", 0.0, 0.0)
    with pytest.raises(InteractionError):
        end_drag(session, "C")
    assert end_drag(DragSession(), "B") == DragSession()


def make_controller(anchors=None, clamp=None):
    sim = Simulation(["A", "B", "C"], anchors=anchors, initial_positions=[[300, 300], [400, 400], [500, 500]])
    sim.run()
    return sim, DragController(sim, clamp)


def test_pinned_node_follows_pointer():
    sim, drag = make_controller()
    assert not sim.is_running
    drag.begin_drag("B", 100.0, 100.0)
    assert sim.is_running and sim.alpha_target == 0.3
    assert sim.tick().position("B") == (100.0, 100.0)
    drag.update_drag("B", 120.0, 130.0)
    assert sim.tick().position("B") == (120.0, 130.0)
    drag.end_drag("B")
    assert np.isnan(sim.pins).all()
    assert sim.alpha_target == 0.0
    assert drag.dragging is None


def test_anchor_wins_over_pin():
    anchors = np.full((3, 2), np.nan)
    anchors[0, 1] = 500.0
    sim, drag = make_controller(anchors=anchors)
    drag.begin_drag("A", 200.0, 100.0)
    assert sim.tick().position("A") == (200.0, 500.0)


def test_pin_is_clamped_into_viewport():
    clamp = BoundaryClamp(Viewport(), [3.0, 3.0, 3.0])
    sim, drag = make_controller(clamp=clamp)
    drag.begin_drag("C", -50.0, -50.0)
    assert sim.tick().position("C") == (43.0, 33.0)


def test_unknown_node():
    _, drag = make_controller()
    with pytest.raises(InteractionError):
        drag.begin_drag("Z", 0.0, 0.0)


def test_release_without_drag_is_ignored():
    sim, drag = make_controller()
    drag.end_drag("A")
    assert drag.session == DragSession()

from datetime import datetime, timezone
from itertools import combinations

import numpy as np

from lineagechart.controller.layout import ChartLayout
from lineagechart.model.forest import build_forest
from lineagechart.model.settings import ChartSettings


def test_chain_settles_in_time_order(chain_forest, chain_settings):
    chart = ChartLayout(chain_forest, chain_settings)
    assert chart.run() is True
    snap = chart.snapshot()
    ax, ay = snap.position("A")
    bx, _ = snap.position("B")
    cx, _ = snap.position("C")

    assert ay == 570.0
    assert abs(ax - chart.scale(datetime(2018, 1, 1, tzinfo=timezone.utc))) < 40.0
    assert ax < bx < cx


def test_settled_nodes_stay_inside_viewport(llm_forest, chain_settings):
    chart = ChartLayout(llm_forest, chain_settings)
    chart.run()
    positions = chart.snapshot().positions
    assert np.all(positions >= chart.clamp.lower - 1e-9)
    assert np.all(positions <= chart.clamp.upper + 1e-9)


def test_disks_do_not_overlap_after_settling(llm_forest):
    chart = ChartLayout(llm_forest, ChartSettings())
    chart.run()
    snap = chart.snapshot()
    for i, j in combinations(range(len(llm_forest)), 2):
        gap = np.linalg.norm(snap.positions[i] - snap.positions[j])
        assert gap >= llm_forest.nodes[i].radius + llm_forest.nodes[j].radius - 1.0


def test_drag_then_release(chain_forest, chain_settings):
    chart = ChartLayout(chain_forest, chain_settings)
    chart.run()
    chart.begin_drag("B", 100.0, 100.0)
    assert chart.simulation.tick().position("B") == (100.0, 100.0)
    chart.end_drag("B")
    assert np.isnan(chart.simulation.pins).all()
    chart.run()
    assert chart.snapshot().position("B")[0] > 500.0


def test_resize_rescales_and_reenergizes(chain_forest, chain_settings):
    chart = ChartLayout(chain_forest, chain_settings)
    seen = []
    chart.on_tick(seen.append)
    chart.run()
    chart.resize(chart.viewport.resized(700.0, 450.0))
    assert chart.simulation.alpha >= 0.3
    assert chart.plan.root_y == 345.0
    chart.step()
    assert seen[-1].tick == 1
    chart.run()
    assert chart.snapshot().position("A")[1] == 345.0


def test_empty_forest():
    chart = ChartLayout(build_forest([]), ChartSettings())
    assert chart.run() is True
    assert chart.snapshot().positions.shape == (0, 2)


def test_chain_disks_do_not_overlap(chain_forest, chain_settings):
    chart = ChartLayout(chain_forest, chain_settings)
    chart.run()
    snap = chart.snapshot()
    for i, j in combinations(range(3), 2):
        gap = np.linalg.norm(snap.positions[i] - snap.positions[j])
        assert gap >= chain_forest.nodes[i].radius + chain_forest.nodes[j].radius


def test_empty_forest_has_no_axis_ticks():
    chart = ChartLayout(build_forest([]), ChartSettings())
    assert chart.year_ticks() == []
    assert chart.year_ticks(after_year=2018) == []


def test_year_ticks_follow_the_scale(chain_forest, chain_settings):
    chart = ChartLayout(chain_forest, chain_settings)
    assert [d.year for d, _ in chart.year_ticks()] == [2018, 2019, 2020]

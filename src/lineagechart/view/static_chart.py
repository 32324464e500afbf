"""
Static Chart Renderer
=====================
Draws a settled layout with matplotlib and writes it to an image file.

Why is this file needed?
------------------------
1. Headless output: The CLI can produce a PNG/SVG without opening a window.
2. Parity: It draws the same elements as the interactive window (links,
   publisher-coloured nodes, labels, legend, year grid, time axis, caption).
"""
from __future__ import annotations

import logging
from typing import Optional, TYPE_CHECKING

import matplotlib
from matplotlib.collections import LineCollection
from matplotlib.figure import Figure
from matplotlib.patches import Circle, Rectangle

from lineagechart.view.palette import PublisherPalette

if TYPE_CHECKING:
    from lineagechart.controller.layout import ChartLayout
    from lineagechart.controller.simulation import LayoutSnapshot

logger = logging.getLogger(__name__)

LINK_COLOR = "#aaaaaa"
GRID_COLOR = "#c9c9c9"
OUTLINE_COLOR = "#444444"
DPI = 100


def render_chart(layout: ChartLayout, snapshot: Optional[LayoutSnapshot] = None) -> Figure:
    """
    Build a matplotlib figure of the chart in pixel coordinates (y down).

    Args:
        layout: The chart layout (forest, scale, settings).
        snapshot: Positions to draw; defaults to the layout's current state.

    Returns:
        The figure, not attached to any GUI backend.
    """
    snapshot = snapshot or layout.snapshot()
    forest = layout.forest
    settings = layout.settings
    viewport = settings.viewport
    palette = PublisherPalette(forest)

    fig = Figure(figsize=(viewport.width / DPI, viewport.height / DPI), dpi=DPI)
    ax = fig.add_axes((0.0, 0.0, 1.0, 1.0))
    ax.set_xlim(0, viewport.width)
    ax.set_ylim(viewport.height, 0)
    ax.set_aspect("equal")
    ax.set_axis_off()

    # --- Links ---
    if len(snapshot.links):
        widths = [forest.link_weight(link) for link in forest.links]
        ax.add_collection(LineCollection(snapshot.link_segments, colors=LINK_COLOR, linewidths=widths, zorder=1))

    # --- Nodes + labels ---
    for node, (x, y) in zip(forest, snapshot.positions):
        free_use = bool(node.attributes.get("is_free_commercial_use"))
        ax.add_patch(Circle(
            (x, y),
            node.radius,
            facecolor=palette.color(node.publisher),
            edgecolor=OUTLINE_COLOR if free_use else "none",
            linewidth=3 if free_use else 0,
            zorder=2,
        ))
        ax.text(
            x, y - node.radius - viewport.label_offset, node.name,
            ha="center", va="bottom", fontsize=9, zorder=3,
            url=node.attributes.get("publish_url") or None,
        )

    # --- Time axis ---
    axis_y = viewport.height - viewport.margin_bottom
    x0, x1 = viewport.x_range
    ax.plot([x0, x1], [axis_y, axis_y], color="black", linewidth=1, zorder=1)
    for date, px in layout.year_ticks():
        ax.plot([px, px], [axis_y, axis_y + 6], color="black", linewidth=1)
        ax.text(px, axis_y + 8, str(date.year), ha="center", va="top", fontsize=16)

    # --- Legend ---
    for i, entry in enumerate(palette.entries):
        top = viewport.margin_top + i * 20
        ax.add_patch(Rectangle((viewport.margin_left, top), 18, 18, facecolor=entry.color, zorder=4))
        ax.text(viewport.margin_left + 24, top + 9, entry.label, va="center", fontsize=10, zorder=4)

    # --- Year grid ---
    for _, px in layout.year_ticks(after_year=settings.grid_after_year):
        ax.plot([px, px], [viewport.margin_top, axis_y], color=GRID_COLOR, linestyle=(0, (2, 2)), linewidth=1, zorder=0)

    # --- Caption ---
    if settings.caption:
        box_w, box_h = 420, 50
        ax.add_patch(Rectangle(
            (viewport.margin_left, axis_y - box_h), box_w, box_h,
            facecolor="white", edgecolor="none", zorder=4,
        ))
        ax.text(viewport.margin_left + 15, axis_y - box_h + 20, settings.caption, va="center", fontsize=14, zorder=5)

    return fig

def save_chart(layout: ChartLayout, path: str, snapshot: Optional[LayoutSnapshot] = None) -> None:
    """Render the chart and write it to path (format from the extension)."""
    fig = render_chart(layout, snapshot)
    fig.savefig(path, dpi=DPI)
    logger.info(f"Chart written to: {path} (matplotlib {matplotlib.__version__})")

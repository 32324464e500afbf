"""
Interactive Chart Window (Qt)
=============================
Shows the layout live while it settles and lets the user drag nodes.

Why is this file needed?
------------------------
1. Frame loop: A QTimer calls ChartLayout.step() once per frame; nothing
   blocks, and drag events arrive between frames on the same thread.
2. Interaction: Mouse press/move/release on a node are forwarded to the
   drag state machine, which pins the node and re-energizes the layout.
3. Details: Tooltips show publisher, date and citations; double-clicking a
   label opens the model's publication URL.
"""
from __future__ import annotations

import html
import logging
from typing import List, Optional, TYPE_CHECKING

from PySide6.QtCore import Qt, QTimer, QUrl, QLineF, QRectF
from PySide6.QtGui import QBrush, QColor, QDesktopServices, QFont, QPainter, QPen
from PySide6.QtWidgets import (
    QGraphicsEllipseItem, QGraphicsLineItem, QGraphicsScene, QGraphicsSimpleTextItem, QGraphicsView,
    QMainWindow, QGraphicsItem
)

from lineagechart.view.palette import PublisherPalette
from lineagechart.view.static_chart import GRID_COLOR, LINK_COLOR, OUTLINE_COLOR

if TYPE_CHECKING:
    from lineagechart.controller.layout import ChartLayout
    from lineagechart.controller.simulation import LayoutSnapshot
    from lineagechart.model.forest import Node

logger = logging.getLogger(__name__)

FRAME_INTERVAL_MS = 16
RESIZE_DEBOUNCE_MS = 150


def tooltip_html(node: Node) -> str:
    """Rich-text tooltip for a node."""
    attrs = node.attributes
    parts = [
        f"<h3>{html.escape(node.name)}</h3>",
        f"<p>{node.publish_date:%Y-%m-%d} - {html.escape(node.publisher)}</p>",
    ]
    citations = attrs.get("num_citations", 0) or 0
    if citations > 0:
        parts.append(f"<p>Google Scholar Citations: {citations:g}</p>")
    else:
        parts.append("<p>No Preprint Paper</p>")
    if attrs.get("is_free_commercial_use"):
        parts.append("<p>Free for commercial use</p>")
    return "".join(parts)


# ==========================================
# GRAPHICS ITEMS
# ==========================================

class LabelItem(QGraphicsSimpleTextItem):
    """Node name; double-click opens the publication URL."""

    def __init__(self, node: Node, parent: QGraphicsItem) -> None:
        super().__init__(node.name, parent)
        self.url: str = node.attributes.get("publish_url", "") or ""
        font = QFont()
        font.setUnderline(bool(self.url))
        self.setFont(font)

    def mouseDoubleClickEvent(self, event):
        if self.url:
            QDesktopServices.openUrl(QUrl(self.url))
        super().mouseDoubleClickEvent(event)


class NodeItem(QGraphicsEllipseItem):
    """Disk of one node; forwards drags to the chart layout."""

    def __init__(self, node: Node, color: str, window: ChartWindow, label_offset: float) -> None:
        r = node.radius
        super().__init__(QRectF(-r, -r, 2 * r, 2 * r))
        self.node_name = node.name
        self._window = window

        self.setBrush(QBrush(QColor(color)))
        if node.attributes.get("is_free_commercial_use"):
            self.setPen(QPen(QColor(OUTLINE_COLOR), 3))
        else:
            self.setPen(QPen(Qt.NoPen))
        self.setToolTip(tooltip_html(node))
        self.setCursor(Qt.OpenHandCursor)
        self.setZValue(2)

        self.label = LabelItem(node, self)
        width = self.label.boundingRect().width()
        height = self.label.boundingRect().height()
        self.label.setPos(-width / 2, -r - label_offset - height)
        self.label.setToolTip(self.toolTip())

    def mousePressEvent(self, event):
        if event.button() != Qt.LeftButton:
            super().mousePressEvent(event)
            return
        # pin where the node is, not where the pointer is
        self._window.chart.begin_drag(self.node_name, self.x(), self.y())
        self.setCursor(Qt.ClosedHandCursor)
        event.accept()

    def mouseMoveEvent(self, event):
        pos = event.scenePos()
        self._window.chart.update_drag(self.node_name, pos.x(), pos.y())
        self._window.ensure_running()
        event.accept()

    def mouseReleaseEvent(self, event):
        self._window.chart.end_drag(self.node_name)
        self.setCursor(Qt.OpenHandCursor)
        event.accept()


# ==========================================
# MAIN WINDOW
# ==========================================

class ChartWindow(QMainWindow):
    """
    Main window hosting the chart scene.
    """
    def __init__(self, chart: ChartLayout, title: str = "Model Genealogy") -> None:
        super().__init__()
        self.chart = chart
        self.setWindowTitle(title)

        self.scene = QGraphicsScene(self)
        self.view = QGraphicsView(self.scene, self)
        self.view.setRenderHint(QPainter.Antialiasing)
        self.view.setHorizontalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self.view.setVerticalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self.setCentralWidget(self.view)

        self._palette = PublisherPalette(chart.forest)
        self._node_items: List[NodeItem] = []
        self._link_items: List[QGraphicsLineItem] = []
        self._decorations: List[QGraphicsItem] = []
        self._build_items()
        self._build_decorations()
        self._apply_snapshot(chart.snapshot())

        # Frame loop
        self.timer = QTimer(self)
        self.timer.setInterval(FRAME_INTERVAL_MS)
        self.timer.timeout.connect(self.advance_frame)
        self.timer.start()

        # Debounced re-layout on resize
        self._resize_timer = QTimer(self)
        self._resize_timer.setSingleShot(True)
        self._resize_timer.setInterval(RESIZE_DEBOUNCE_MS)
        self._resize_timer.timeout.connect(self._relayout)

        viewport = chart.viewport
        self.resize(int(viewport.width), int(viewport.height))

    def _build_items(self) -> None:
        forest = self.chart.forest
        for link in forest.links:
            item = QGraphicsLineItem()
            item.setPen(QPen(QColor(LINK_COLOR), forest.link_weight(link)))
            item.setZValue(1)
            self.scene.addItem(item)
            self._link_items.append(item)

        label_offset = self.chart.viewport.label_offset
        for node in forest:
            item = NodeItem(node, self._palette.color(node.publisher), self, label_offset)
            self.scene.addItem(item)
            self._node_items.append(item)

    def _build_decorations(self) -> None:
        """Axis, year grid and legend; rebuilt whenever the viewport changes."""
        for item in self._decorations:
            self.scene.removeItem(item)
        self._decorations.clear()

        viewport = self.chart.viewport
        settings = self.chart.settings
        self.scene.setSceneRect(QRectF(0, 0, viewport.width, viewport.height))
        axis_y = viewport.height - viewport.margin_bottom
        x0, x1 = viewport.x_range

        self._decorations.append(self.scene.addLine(QLineF(x0, axis_y, x1, axis_y), QPen(Qt.black)))
        tick_font = QFont()
        tick_font.setPointSize(16)
        for date, px in self.chart.year_ticks():
            self._decorations.append(self.scene.addLine(QLineF(px, axis_y, px, axis_y + 6), QPen(Qt.black)))
            text = self.scene.addSimpleText(str(date.year), tick_font)
            text.setPos(px - text.boundingRect().width() / 2, axis_y + 8)
            self._decorations.append(text)

        grid_pen = QPen(QColor(GRID_COLOR))
        grid_pen.setDashPattern([2, 2])
        for _, px in self.chart.year_ticks(after_year=settings.grid_after_year):
            line = self.scene.addLine(QLineF(px, viewport.margin_top, px, axis_y), grid_pen)
            line.setZValue(0)
            self._decorations.append(line)

        for i, entry in enumerate(self._palette.entries):
            top = viewport.margin_top + i * 20
            swatch = self.scene.addRect(QRectF(viewport.margin_left, top, 18, 18), QPen(Qt.NoPen), QBrush(QColor(entry.color)))
            text = self.scene.addSimpleText(entry.label)
            text.setPos(viewport.margin_left + 24, top + 9 - text.boundingRect().height() / 2)
            self._decorations.extend((swatch, text))

        if settings.caption:
            caption = self.scene.addSimpleText(settings.caption)
            caption.setPos(viewport.margin_left + 15, axis_y - 40)
            self._decorations.append(caption)

    def _apply_snapshot(self, snapshot: LayoutSnapshot) -> None:
        for item, (x, y) in zip(self._node_items, snapshot.positions):
            item.setPos(float(x), float(y))
        for item, ((sx, sy), (tx, ty)) in zip(self._link_items, snapshot.link_segments):
            item.setLine(float(sx), float(sy), float(tx), float(ty))

    def advance_frame(self) -> Optional[LayoutSnapshot]:
        snapshot = self.chart.step()
        if snapshot is not None:
            self._apply_snapshot(snapshot)
        return snapshot

    def ensure_running(self) -> None:
        self.chart.simulation.restart()

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self._resize_timer.start()

    def _relayout(self) -> None:
        size = self.view.viewport().size()
        if size.width() <= 0 or size.height() <= 0:
            return
        if self.chart.drag.dragging is not None:
            # keep the gesture intact, try again once it ends
            self._resize_timer.start()
            return
        self.chart.resize(self.chart.viewport.resized(size.width(), size.height()))
        self._build_decorations()
        self._apply_snapshot(self.chart.snapshot())
        self.view.fitInView(self.scene.sceneRect(), Qt.KeepAspectRatio)

    def closeEvent(self, event):
        self.timer.stop()
        logger.info("Chart window closed.")
        super().closeEvent(event)

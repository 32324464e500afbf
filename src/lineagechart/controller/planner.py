"""
Constraint Planner
==================
Decides where each subtree should sit vertically before the simulation runs.

Rules, applied per forest:
1. Subtree heads are claimed by the first GroupRule that matches them, in
   declaration order, and spread evenly over that rule's band. Heads are the
   children of roots; in a forest with several roots a root may itself be a
   head, and its children are then part of its subtree.
2. Every root not claimed as a head is hard-anchored at
   viewport.height / 2 + root_offset.
3. A claimed head gets a hard anchor at its slot if the rule asks for one;
   the head and all its descendants get the slot as soft target, shifted by
   the rule's first matching TargetOffset.
4. Unclaimed subtrees get no target and float around viewport.height / 2.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Dict, List, Optional, Set, Tuple, TYPE_CHECKING

import numpy as np

from lineagechart.model.settings import BandOrigin

if TYPE_CHECKING:
    import numpy.typing as npt

    from lineagechart.model.forest import Forest, Node
    from lineagechart.model.settings import ChartSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoutPlan:
    """
    Per-node vertical constraints, row-aligned with forest.nodes.

    NaN marks "no constraint". Arrays are read-only.
    """
    names: Tuple[str, ...]
    hard_y: npt.NDArray[np.float64]
    soft_y: npt.NDArray[np.float64]
    groups: Tuple[Optional[str], ...]
    default_y: float
    root_y: float

    @property
    def y_targets(self) -> npt.NDArray[np.float64]:
        """Soft target per node, falling back to default_y."""
        return np.where(np.isnan(self.soft_y), self.default_y, self.soft_y)

    @property
    def fixed(self) -> npt.NDArray[np.float64]:
        """(n, 2) hard anchors; X is never anchored by the plan."""
        fixed = np.full((len(self.names), 2), np.nan)
        fixed[:, 1] = self.hard_y
        return fixed

    def for_node(self, name: str) -> Tuple[Optional[float], Optional[float]]:
        """(hard anchor Y | None, soft target Y | None) for one node."""
        i = self.names.index(name)
        hard = None if np.isnan(self.hard_y[i]) else float(self.hard_y[i])
        soft = None if np.isnan(self.soft_y[i]) else float(self.soft_y[i])
        return hard, soft


class ConstraintPlanner:
    """Computes a LayoutPlan; idempotent for identical forest and settings."""

    def __init__(self, settings: ChartSettings) -> None:
        self.settings = settings

    def _claim(self, head: Node, claimed: Dict[str, List[Node]]) -> bool:
        """Hand head to the first matching rule; False if none matches."""
        for rule in self.settings.groups:
            if rule.matches(head.name):
                claimed[rule.name].append(head)
                return True
        return False

    def plan(self, forest: Forest) -> LayoutPlan:
        viewport = self.settings.viewport
        n = len(forest)
        hard_y = np.full(n, np.nan)
        soft_y = np.full(n, np.nan)
        groups: List[Optional[str]] = [None] * n

        root_y = viewport.height / 2.0 + self.settings.root_offset

        claimed: Dict[str, List[Node]] = {rule.name: [] for rule in self.settings.groups}
        claimed_roots: Set[int] = set()
        several_roots = len(forest.roots) > 1
        for root in forest.roots:
            if several_roots and self._claim(root, claimed):
                claimed_roots.add(root.uid)
                continue
            for head in root.children:
                self._claim(head, claimed)

        for rule in self.settings.groups:
            heads = claimed[rule.name]
            origin_y = root_y if rule.band.origin == BandOrigin.ROOT else 0.0
            for i, head in enumerate(heads):
                target_y = rule.band.slot(i, len(heads), origin_y, viewport.height)
                if rule.hard_anchor:
                    hard_y[head.uid] = target_y
                for node in forest.descendants(head):
                    soft_y[node.uid] = target_y + rule.offset_for(node.name)
                    groups[node.uid] = rule.name
            if heads:
                logger.debug(f"Group '{rule.name}': {[h.name for h in heads]}")

        # unclaimed roots last: the forest anchor is never overridden
        for root in forest.roots:
            if root.uid not in claimed_roots:
                hard_y[root.uid] = root_y

        hard_y.setflags(write=False)
        soft_y.setflags(write=False)

        plan = LayoutPlan(
            names=tuple(node.name for node in forest),
            hard_y=hard_y,
            soft_y=soft_y,
            groups=tuple(groups),
            default_y=viewport.height / 2.0,
            root_y=root_y,
        )
        logger.info(
            f"Planned layout: {int(np.count_nonzero(~np.isnan(hard_y)))} hard anchors, "
            f"{int(np.count_nonzero(~np.isnan(soft_y)))} soft targets."
        )
        return plan

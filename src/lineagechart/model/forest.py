"""
Forest (Data Model)
===================
Builds the genealogy forest from flat model records.

Why is this file needed?
------------------------
1. Structure: It resolves every record's predecessor into a parent reference
   and derives depth, children and subtree sizes.
2. Contract: It guarantees the layout engine a valid forest (no cycles, no
   dangling parents) by failing fast at construction.

Classes:
    Node: A single model in the forest.
    Link: A directed parent -> child edge.
    Forest: The validated container.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
import math
from typing import Any, Dict, Iterable, Iterator, List, Optional, TYPE_CHECKING

from lineagechart.utils import citation_radius, to_timestamp

if TYPE_CHECKING:
    from lineagechart.model.records import ModelRecord

logger = logging.getLogger(__name__)


class ForestError(ValueError):
    """Raised when records do not form a valid forest."""


class Node:
    """
    Represents one entity (model) of the genealogy chart.
    """
    def __init__(
        self,
        index: int,
        name: str,
        publish_date: datetime,
        parent: Optional[str] = None,
        radius: float = 3.0,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the node.

        Args:
            index: Position of the node in the forest (row in the simulation buffers).
            name: Unique identity.
            publish_date: Publication date, positions the node on the time axis.
            parent: Identity of the predecessor, None for a root.
            radius: Visual radius in pixels.
            attributes: Free-form attributes (publisher, url, flags).
        """
        self.uid = index
        self.name = name
        self.publish_date = publish_date
        self.parent = parent
        self.radius = radius
        self.attributes: Dict[str, Any] = dict(attributes or {})
        self.depth: int = 0
        self.children: List[Node] = []

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.uid}, name={self.name!r}, depth={self.depth})"

    @property
    def timestamp(self) -> float:
        """Publication date as POSIX seconds."""
        return to_timestamp(self.publish_date)

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def publisher(self) -> str:
        return self.attributes.get("publisher", "")


@dataclass(frozen=True)
class Link:
    """Directed edge from a parent (source) to a child (target)."""
    source: Node
    target: Node


class Forest:
    """
    Validated set of nodes and parent-child links.

    Nodes keep the order of the input records; that order is the row order
    of every per-node array in the layout engine.
    """
    def __init__(self, nodes: List[Node]) -> None:
        self.nodes = nodes
        self._by_name: Dict[str, Node] = {node.name: node for node in nodes}
        self.roots: List[Node] = [node for node in nodes if node.is_root]
        self.links: List[Link] = []
        for node in nodes:
            if node.parent is not None:
                parent = self._by_name[node.parent]
                parent.children.append(node)
                self.links.append(Link(source=parent, target=node))

        self._subtree_sizes: Dict[str, int] = {}
        for root in self.roots:
            self._assign_depths(root)

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __getitem__(self, name: str) -> Node:
        return self._by_name[name]

    def _assign_depths(self, root: Node) -> None:
        # iterative, datasets can be deep chains
        stack = [root]
        while stack:
            node = stack.pop()
            for child in node.children:
                child.depth = node.depth + 1
                stack.append(child)

    @property
    def max_depth(self) -> int:
        return max((node.depth for node in self.nodes), default=0)

    def descendants(self, node: Node) -> List[Node]:
        """All nodes of the subtree rooted at node, pre-order, node itself first."""
        out: List[Node] = []
        stack = [node]
        while stack:
            current = stack.pop()
            out.append(current)
            stack.extend(reversed(current.children))
        return out

    def subtree_size(self, node: Node) -> int:
        if node.name not in self._subtree_sizes:
            self._subtree_sizes[node.name] = len(self.descendants(node))
        return self._subtree_sizes[node.name]

    def link_weight(self, link: Link) -> float:
        """Stroke width of a link, grows with the size of the child's subtree."""
        return max(math.log(self.subtree_size(link.target)), 1.0)

    def index_of(self, name: str) -> int:
        return self._by_name[name].uid


def build_forest(records: Iterable[ModelRecord]) -> Forest:
    """
    Resolve flat records into a validated forest.

    Args:
        records: Records with unique names and optional predecessor names.

    Returns:
        The forest. An empty input yields an empty forest.

    Raises:
        ForestError: On duplicate names, dangling predecessors or cycles.
    """
    nodes: List[Node] = []
    seen: Dict[str, Node] = {}
    for record in records:
        if record.name in seen:
            raise ForestError(f"Duplicate model name: {record.name!r}.")
        node = Node(
            index=len(nodes),
            name=record.name,
            publish_date=record.publish_date,
            parent=record.predecessor_name,
            radius=citation_radius(record.num_citations),
            attributes=record.attributes(),
        )
        seen[record.name] = node
        nodes.append(node)

    for node in nodes:
        if node.parent is not None and node.parent not in seen:
            raise ForestError(f"Model {node.name!r} references unknown predecessor {node.parent!r}.")
        if node.parent == node.name:
            raise ForestError(f"Model {node.name!r} is its own predecessor.")

    _check_acyclic(nodes, seen)

    forest = Forest(nodes)
    logger.info(
        f"Built forest: {len(forest)} nodes, {len(forest.roots)} roots, "
        f"{len(forest.links)} links, max depth {forest.max_depth}."
    )
    return forest

def _check_acyclic(nodes: List[Node], by_name: Dict[str, Node]) -> None:
    """Walk every parent chain; a chain revisiting itself is a cycle."""
    done: set[str] = set()
    for node in nodes:
        path: List[str] = []
        on_path: set[str] = set()
        current: Optional[Node] = node
        while current is not None and current.name not in done:
            if current.name in on_path:
                cycle = " -> ".join(path[path.index(current.name):] + [current.name])
                raise ForestError(f"Predecessor cycle: {cycle}.")
            path.append(current.name)
            on_path.add(current.name)
            current = by_name[current.parent] if current.parent is not None else None
        done.update(path)

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, TYPE_CHECKING

from matplotlib import colormaps
from matplotlib.colors import to_hex

if TYPE_CHECKING:
    from lineagechart.model.forest import Forest

PALETTE_NAME = "tab10"


@dataclass(frozen=True)
class LegendEntry:
    publisher: str
    num_models: int
    color: str

    @property
    def label(self) -> str:
        if self.num_models > 1:
            return f"{self.publisher} ({self.num_models})"
        return self.publisher


class PublisherPalette:
    """
    Categorical colours per publisher, most prolific publisher first.

    Ties keep the order in which publishers first appear in the data;
    colours cycle once the palette is exhausted.
    """
    def __init__(self, forest: Forest, palette: str = PALETTE_NAME) -> None:
        counts = Counter(node.publisher for node in forest)
        # Counter preserves first-seen order, sorted() is stable
        publishers = sorted(counts, key=lambda p: counts[p], reverse=True)
        colors = colormaps[palette].colors
        self.entries: List[LegendEntry] = [
            LegendEntry(publisher=p, num_models=counts[p], color=to_hex(colors[i % len(colors)]))
            for i, p in enumerate(publishers)
        ]
        self._colors: Dict[str, str] = {e.publisher: e.color for e in self.entries}

    def __len__(self) -> int:
        return len(self.entries)

    def color(self, publisher: str) -> str:
        return self._colors.get(publisher, "#999999")

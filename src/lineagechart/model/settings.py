"""
Chart Settings
==============
Defines the configuration data structures for the layout engine.

Why is this file needed?
------------------------
1. Explicit viewport: chart size and margins are passed at construction
   instead of being read from the window; a resize re-initialises from a
   new Viewport.
2. Declarative grouping: which subtrees are spread across which vertical
   band (and which sub-branches get an extra offset) is data, loaded from
   JSON, not code.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict, replace
from enum import StrEnum
import json
import logging
import math
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class BandOrigin(StrEnum):
    TOP = "top"    # measured from y = 0
    ROOT = "root"  # measured from the forest root anchor


@dataclass(frozen=True)
class Viewport:
    """Chart size and margins in pixels."""
    width: float = 1400.0
    height: float = 900.0
    margin_top: float = 20.0
    margin_right: float = 80.0
    margin_bottom: float = 20.0
    margin_left: float = 40.0
    label_offset: float = 10.0

    @property
    def x_range(self) -> Tuple[float, float]:
        """Pixel interval of the time axis."""
        return self.margin_left, self.width - self.margin_right

    def resized(self, width: float, height: float) -> Viewport:
        return replace(self, width=width, height=height)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> Viewport:
        return Viewport(**data)


@dataclass(frozen=True)
class ForceSettings:
    """
    Coefficients of the force simulation.

    The alpha schedule (alpha, alpha_min, alpha_decay) gives ~300 ticks from
    a cold start to rest.
    """
    link_distance: float = 30.0
    link_strength: Optional[float] = 0.3  # None -> 1 / min(degree)
    charge_strength: float = -300.0
    charge_theta: float = 0.9
    charge_distance_min: float = 1.0
    charge_distance_max: float = math.inf
    exact_charge_below: int = 64
    collide_radius: float = 32.0
    collide_strength: float = 3.0
    x_strength: float = 10.0
    y_strength: float = 0.05
    alpha: float = 1.0
    alpha_min: float = 0.001
    alpha_decay: float = 1.0 - 0.001 ** (1.0 / 300.0)
    alpha_target: float = 0.0
    velocity_decay: float = 0.4
    drag_alpha_target: float = 0.3
    max_ticks: int = 1000

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        # JSON has no infinity
        if math.isinf(self.charge_distance_max):
            data["charge_distance_max"] = None
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> ForceSettings:
        data = dict(data)
        if data.get("charge_distance_max", 0.0) is None:
            data["charge_distance_max"] = math.inf
        return ForceSettings(**data)


@dataclass(frozen=True)
class YBand:
    """
    A vertical band in which the subtrees of a group are spread evenly.

    Slot i of k lies at origin_y + start + (i + 1) * span / (k + 1).
    """
    origin: BandOrigin = BandOrigin.TOP
    start: float = 0.0
    span: Optional[float] = None  # None -> viewport height

    def slot(self, i: int, k: int, origin_y: float, viewport_height: float) -> float:
        span = viewport_height if self.span is None else self.span
        return origin_y + self.start + (i + 1) * span / (k + 1)

    def to_dict(self) -> Dict[str, Any]:
        return {"origin": self.origin.value, "start": self.start, "span": self.span}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> YBand:
        origin = data.get("origin", BandOrigin.TOP)
        try:
            origin = BandOrigin(origin)
        except ValueError as e:
            raise ValueError(f"Unknown band origin {origin!r}, expected one of {[o.value for o in BandOrigin]}.") from e
        return YBand(origin=origin, start=float(data.get("start", 0.0)), span=data.get("span"))


@dataclass(frozen=True)
class TargetOffset:
    """Shift the soft target of descendants whose name starts with prefix."""
    prefix: str
    offset: float
    case_sensitive: bool = False

    def matches(self, name: str) -> bool:
        if self.case_sensitive:
            return name.startswith(self.prefix)
        return name.lower().startswith(self.prefix.lower())

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> TargetOffset:
        return TargetOffset(**data)


@dataclass(frozen=True)
class GroupRule:
    """
    Named grouping of subtree heads.

    A rule with members matches exactly those identities; a rule without
    members matches every head not listed in exclude.
    """
    name: str
    members: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()
    band: YBand = field(default_factory=YBand)
    hard_anchor: bool = False
    offsets: Tuple[TargetOffset, ...] = ()

    def matches(self, name: str) -> bool:
        if self.members:
            return name in self.members
        return name not in self.exclude

    def offset_for(self, name: str) -> float:
        """Offset of the first matching override, 0 if none matches."""
        for override in self.offsets:
            if override.matches(name):
                return override.offset
        return 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "members": list(self.members),
            "exclude": list(self.exclude),
            "band": self.band.to_dict(),
            "hard_anchor": self.hard_anchor,
            "offsets": [asdict(o) for o in self.offsets],
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> GroupRule:
        return GroupRule(
            name=data["name"],
            members=tuple(data.get("members", ())),
            exclude=tuple(data.get("exclude", ())),
            band=YBand.from_dict(data.get("band", {})),
            hard_anchor=bool(data.get("hard_anchor", False)),
            offsets=tuple(TargetOffset.from_dict(o) for o in data.get("offsets", ())),
        )


@dataclass(frozen=True)
class ChartSettings:
    """Everything the layout engine needs besides the forest."""
    viewport: Viewport = field(default_factory=Viewport)
    forces: ForceSettings = field(default_factory=ForceSettings)
    groups: Tuple[GroupRule, ...] = ()
    root_offset: float = 120.0
    seed: int = 0
    grid_after_year: Optional[int] = 2018
    caption: str = ""

    def with_viewport(self, viewport: Viewport) -> ChartSettings:
        return replace(self, viewport=viewport)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "viewport": asdict(self.viewport),
            "forces": self.forces.to_dict(),
            "groups": [g.to_dict() for g in self.groups],
            "root_offset": self.root_offset,
            "seed": self.seed,
            "grid_after_year": self.grid_after_year,
            "caption": self.caption,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> ChartSettings:
        defaults = ChartSettings()
        return ChartSettings(
            viewport=Viewport.from_dict(data.get("viewport", {})),
            forces=ForceSettings.from_dict(data.get("forces", {})),
            groups=tuple(GroupRule.from_dict(g) for g in data.get("groups", ())),
            root_offset=float(data.get("root_offset", defaults.root_offset)),
            seed=int(data.get("seed", defaults.seed)),
            grid_after_year=data.get("grid_after_year", defaults.grid_after_year),
            caption=data.get("caption", defaults.caption),
        )


def load_settings(path: str) -> ChartSettings:
    logger.info(f"Loading chart settings from: {path}")
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    settings = ChartSettings.from_dict(data)
    logger.debug(f"Loaded {len(settings.groups)} group rules.")
    return settings

def save_settings(settings: ChartSettings, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(settings.to_dict(), f, indent=2)
    logger.info(f"Chart settings saved to: {path}")
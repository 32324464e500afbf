"""
Layout Engine
=============
The core implementation of the constrained force-directed layout.

Why is this file needed?
------------------------
1. Constraints: It turns the forest structure and the grouping rules into
   per-node anchors and targets (time X, band Y).
2. Relaxation: It runs the tick loop (springs, repulsion, collision,
   attraction) until the layout cools, and accepts live drag pins.
3. Snapshots: It hands immutable positions to whatever draws them.

Note: This module should be pure Python/NumPy and should NOT import PySide6.
"""

# kernels.py
from __future__ import annotations

import math

import numpy as np
import numpy.typing as npt
import numba as nb

# ---- JIT'd sequential force kernels ----
# Both kernels update velocities in place and read the velocities already
# updated by earlier pairs, so iteration order matters and they cannot be
# vectorised with plain NumPy.

@nb.njit(cache=True, fastmath=True)
def apply_springs(
    sources: npt.NDArray[np.int64],
    targets: npt.NDArray[np.int64],
    pos: npt.NDArray[np.float64],
    vel: npt.NDArray[np.float64],
    distances: npt.NDArray[np.float64],
    strengths: npt.NDArray[np.float64],
    bias: npt.NDArray[np.float64],
    alpha: float,
    jiggle: npt.NDArray[np.float64],
) -> None:
    """
    Pull the ends of every link toward their rest distance.

    Args:
        sources, targets: Node rows of each link.
        pos, vel: (n, 2) positions and velocities (vel is modified).
        distances, strengths: Rest length and stiffness per link.
        bias: Share of the correction applied to the target, deg(s) / (deg(s) + deg(t)).
        alpha: Current simulation energy.
        jiggle: (m, 2) tiny offsets used when both ends coincide on an axis.
    """
    for k in range(sources.shape[0]):
        s = sources[k]
        t = targets[k]
        x = pos[t, 0] + vel[t, 0] - pos[s, 0] - vel[s, 0]
        y = pos[t, 1] + vel[t, 1] - pos[s, 1] - vel[s, 1]
        if x == 0.0:
            x = jiggle[k, 0]
        if y == 0.0:
            y = jiggle[k, 1]
        l = math.sqrt(x * x + y * y)
        l = (l - distances[k]) / l * alpha * strengths[k]
        x *= l
        y *= l
        b = bias[k]
        vel[t, 0] -= x * b
        vel[t, 1] -= y * b
        vel[s, 0] += x * (1.0 - b)
        vel[s, 1] += y * (1.0 - b)

@nb.njit(cache=True, fastmath=True)
def resolve_collisions(
    pairs: npt.NDArray[np.int64],
    pos: npt.NDArray[np.float64],
    vel: npt.NDArray[np.float64],
    radii: npt.NDArray[np.float64],
    strength: float,
    jiggle: npt.NDArray[np.float64],
) -> None:
    """
    Push overlapping disks apart, heavier (larger) disks move less.

    Args:
        pairs: (p, 2) candidate pairs (i < j), sorted by i.
        pos, vel: (n, 2) positions and velocities (vel is modified).
        radii: Collision radius per node.
        strength: Fraction of the overlap removed per tick (may exceed 1).
        jiggle: (p, 2) tiny offsets used for coincident centres.
    """
    current = -1
    xi = 0.0
    yi = 0.0
    for k in range(pairs.shape[0]):
        i = pairs[k, 0]
        j = pairs[k, 1]
        if i != current:
            # predicted position of i, taken once per node
            current = i
            xi = pos[i, 0] + vel[i, 0]
            yi = pos[i, 1] + vel[i, 1]
        ri = radii[i]
        rj = radii[j]
        r = ri + rj
        x = xi - pos[j, 0] - vel[j, 0]
        y = yi - pos[j, 1] - vel[j, 1]
        l = x * x + y * y
        if l < r * r:
            if x == 0.0:
                x = jiggle[k, 0]
                l += x * x
            if y == 0.0:
                y = jiggle[k, 1]
                l += y * y
            l = math.sqrt(l)
            l = (r - l) / l * strength
            x *= l
            y *= l
            rj2 = rj * rj
            share = rj2 / (ri * ri + rj2)
            vel[i, 0] += x * share
            vel[i, 1] += y * share
            share = 1.0 - share
            vel[j, 0] -= x * share
            vel[j, 1] -= y * share

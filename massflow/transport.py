"""
transport.py - Mass Transport
==============================
Applies the solved face flows to the mass field.

Every interior face moves `move` units from its source cell to its
destination cell. A cell touches up to four faces, so the transfers are
summed into one signed delta per cell first and the [0, 255] clamp is
applied once to the final value. Clamping face by face would make the
result depend on the order the faces were visited.

Wall faces are never read: the last column of flow_x and the last row of
flow_y describe faces that lead out of the grid.
"""

import numpy as np
from .grid import MassGrid, MASS_MIN, MASS_MAX
from .solver import decode_flow


def accumulate_deltas(grid: MassGrid) -> np.ndarray:
    """
    Sum all face transfers into a per-cell signed delta (int32, shape (H, W)).
    Positive flow on a face means mass leaves the west/north cell.
    """
    sx = decode_flow(grid.flow_x[:, :-1]).astype(np.int32)
    sy = decode_flow(grid.flow_y[:-1, :]).astype(np.int32)

    delta = np.zeros(grid.mass.shape, dtype=np.int32)
    delta[:, :-1] -= sx   # leaves through the east face
    delta[:, 1:]  += sx   # arrives through the west face
    delta[:-1, :] -= sy   # leaves through the south face
    delta[1:, :]  += sy   # arrives through the north face
    return delta


def transport_mass(grid: MassGrid) -> dict:
    """
    Move mass along grid.flow_x / grid.flow_y.

    The new field is built in a scratch buffer and copied over grid.mass in
    one go, so nobody holding grid.mass sees a half-transported grid.

    Modifies: grid.mass (in-place)

    Returns:
        dict with the amount moved and the amount clipped (0 for flows
        produced by solve_flow)
    """
    delta = accumulate_deltas(grid)
    raw = grid.mass.astype(np.int32) + delta
    result = np.clip(raw, MASS_MIN, MASS_MAX)

    clipped = int(np.abs(raw - result).sum())
    moved = int(np.abs(decode_flow(grid.flow_x[:, :-1])).sum(dtype=np.int64)
                + np.abs(decode_flow(grid.flow_y[:-1, :])).sum(dtype=np.int64))

    np.copyto(grid.mass, result.astype(np.uint8))

    return {
        "moved":   moved,
        "clipped": clipped,
    }

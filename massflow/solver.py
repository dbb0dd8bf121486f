"""
solver.py - Face Flow Solver
=============================
Decides how much mass crosses every interior face this step.

For the face between cell A and its east (or south) neighbour B:
  1. d = mass[A] - mass[B]            (the "pressure" difference)
  2. move = |d| // 2                   (never past equilibrium in one step)
  3. move = min(move, max_exchange)    (bounded redistribution speed)
  4. encode as 128 + move if d > 0 (A → B), 128 - move if d < 0 (B → A)

Wall faces (east column, south row) are always neutral: nothing leaves the box.

The per-face rule alone is a 1D argument. A cell has up to four faces, and
four half-differences can add up to twice the difference, which overshoots
and would force the transport clamp to destroy mass. So after the per-face
cap we run a per-cell limiter:

  c_f    = move_f / |d_f|            exchange fraction of each face
  load_i = sum of c_f over the faces of cell i
  scale_i = 1 / load_i if load_i > 1 else 1
  move_f = floor(move_f * min(scale_i, scale_j))

With every load <= 1 the new mass of a cell is a convex blend of itself and
its neighbours, which keeps it inside [0, 255] without clamping.

This pass only READS mass. Transport must not start until it has finished,
so every decision comes from the same snapshot.
"""

import numpy as np
from .grid import MassGrid, NEUTRAL_FLOW


# ── Exchange limits ───────────────────────────────────────────────────────────
MAX_EXCHANGE = 32     # units of mass per face per step
MAX_MOVE     = 127    # largest magnitude the biased byte can hold


def encode_flow(move: np.ndarray) -> np.ndarray:
    """Signed move (A → B positive) to the biased byte encoding."""
    move = np.clip(move, -MAX_MOVE, MAX_MOVE)
    return (move.astype(np.int16) + NEUTRAL_FLOW).astype(np.uint8)


def decode_flow(flow: np.ndarray) -> np.ndarray:
    """Biased byte encoding back to a signed move (int16)."""
    return flow.astype(np.int16) - NEUTRAL_FLOW


def _face_moves(diff: np.ndarray, max_exchange: int) -> np.ndarray:
    """Per-face cap before limiting: min(|d| // 2, max_exchange, 127)."""
    return np.minimum(np.abs(diff) // 2, min(max_exchange, MAX_MOVE))


def _fraction(moves: np.ndarray, diff: np.ndarray) -> np.ndarray:
    frac = np.zeros(diff.shape, dtype=np.float64)
    np.divide(moves, np.abs(diff), out=frac, where=diff != 0)
    return frac


def solve_flow(grid: MassGrid, max_exchange: int = MAX_EXCHANGE) -> dict:
    """
    Rebuild grid.flow_x / grid.flow_y from the current mass field.

    Args:
        grid         : The MassGrid to read mass from and write flows to
        max_exchange : Cap on the mass moved across one face per step

    Returns:
        dict with face counts (for diagnostics)
    """
    m = grid.mass.astype(np.int16)

    # ── Pressure differences across interior faces ─────────────────────────
    # dx[y, x] : cell (x, y) minus its east neighbour   → shape (H, W-1)
    # dy[y, x] : cell (x, y) minus its south neighbour  → shape (H-1, W)
    dx = m[:, :-1] - m[:, 1:]
    dy = m[:-1, :] - m[1:, :]

    move_x = _face_moves(dx, max_exchange)
    move_y = _face_moves(dy, max_exchange)

    # ── Per-cell limiter ───────────────────────────────────────────────────
    frac_x = _fraction(move_x, dx)
    frac_y = _fraction(move_y, dy)

    load = np.zeros(m.shape, dtype=np.float64)
    load[:, :-1] += frac_x   # east face of each cell
    load[:, 1:]  += frac_x   # west face of each cell
    load[:-1, :] += frac_y   # south face
    load[1:, :]  += frac_y   # north face

    scale = np.ones(m.shape, dtype=np.float64)
    np.divide(1.0, load, out=scale, where=load > 1.0)

    face_scale_x = np.minimum(scale[:, :-1], scale[:, 1:])
    face_scale_y = np.minimum(scale[:-1, :], scale[1:, :])
    move_x = np.floor(move_x * face_scale_x).astype(np.int16)
    move_y = np.floor(move_y * face_scale_y).astype(np.int16)

    # ── Encode; wall faces stay neutral ───────────────────────────────────
    grid.flow_x.fill(NEUTRAL_FLOW)
    grid.flow_y.fill(NEUTRAL_FLOW)
    grid.flow_x[:, :-1] = encode_flow(np.sign(dx) * move_x)
    grid.flow_y[:-1, :] = encode_flow(np.sign(dy) * move_y)

    return {
        "faces_x": int(np.count_nonzero(move_x)),
        "faces_y": int(np.count_nonzero(move_y)),
        "limited_cells": int(np.count_nonzero(load > 1.0)),
    }

from __future__ import annotations

import numpy as np
import pytest

from massflow.grid import MassGrid, NEUTRAL_FLOW
from massflow.solver import MAX_EXCHANGE, decode_flow, encode_flow, solve_flow


def _row(values, **kw):
    g = MassGrid(width=len(values), height=1)
    g.load([values])
    solve_flow(g, **kw)
    return g


def test_uniform_field_is_neutral():
    g = MassGrid()
    g.load(np.full((50, 50), 77))
    solve_flow(g)
    assert np.all(g.flow_x == NEUTRAL_FLOW)
    assert np.all(g.flow_y == NEUTRAL_FLOW)


def test_half_difference_toward_lower_cell():
    g = _row([10, 0])
    assert g.flow_x[0, 0] == 128 + 5
    # east column is a wall
    assert g.flow_x[0, 1] == NEUTRAL_FLOW


def test_negative_difference_encodes_below_neutral():
    g = _row([0, 10])
    assert g.flow_x[0, 0] == 128 - 5


def test_halving_truncates():
    g = _row([7, 0])
    assert decode_flow(g.flow_x)[0, 0] == 3


def test_exchange_is_capped():
    g = _row([100, 0, 0, 0])
    assert g.flow_x[0].tolist() == [128 + MAX_EXCHANGE, 128, 128, 128]


def test_custom_exchange_cap():
    g = _row([100, 0], max_exchange=5)
    assert g.flow_x[0, 0] == 133


def test_move_never_exceeds_127():
    g = _row([255, 0], max_exchange=127)
    assert g.flow_x[0, 0] == 255


def test_south_face():
    g = MassGrid(width=1, height=2)
    g.load([[10], [0]])
    solve_flow(g)
    assert g.flow_y[0, 0] == 133
    assert g.flow_y[1, 0] == NEUTRAL_FLOW
    assert g.flow_x[0, 0] == NEUTRAL_FLOW


def test_single_cell_only_has_walls():
    g = MassGrid(width=1, height=1)
    g.set_mass(0, 0, 200)
    solve_flow(g)
    assert g.flow_x[0, 0] == NEUTRAL_FLOW
    assert g.flow_y[0, 0] == NEUTRAL_FLOW


def test_limiter_shares_exchange_between_faces():
    # Four faces at half the difference would empty the cell twice over.
    g = MassGrid()
    g.set_mass(10, 10, 64)
    metrics = solve_flow(g)
    assert metrics["limited_cells"] == 1
    assert g.flow_x[10, 10] == 128 + 16    # east
    assert g.flow_x[10, 9] == 128 - 16     # west
    assert g.flow_y[10, 10] == 128 + 16    # south
    assert g.flow_y[9, 10] == 128 - 16     # north


def test_unlimited_spike():
    g = MassGrid()
    g.set_mass(25, 25, 255)
    metrics = solve_flow(g)
    assert metrics["limited_cells"] == 0
    assert metrics["faces_x"] == 2 and metrics["faces_y"] == 2
    assert g.flow_x[25, 25] == 128 + 32


def test_wall_faces_stay_neutral_with_full_edges(random_field):
    g = MassGrid()
    g.load(random_field)
    solve_flow(g)
    assert np.all(g.flow_x[:, -1] == NEUTRAL_FLOW)
    assert np.all(g.flow_y[-1, :] == NEUTRAL_FLOW)


def test_solver_does_not_touch_mass(random_field):
    g = MassGrid()
    g.load(random_field)
    solve_flow(g)
    assert np.array_equal(g.mass, random_field)


def test_flows_are_rebuilt_from_scratch(random_field):
    a = MassGrid()
    b = MassGrid()
    a.load(random_field)
    b.load(random_field)
    b.flow_x.fill(3)
    b.flow_y.fill(250)
    solve_flow(a)
    solve_flow(b)
    assert np.array_equal(a.flow_x, b.flow_x)
    assert np.array_equal(a.flow_y, b.flow_y)


def test_exchange_fraction_per_cell_is_at_most_one(random_field):
    g = MassGrid()
    g.load(random_field)
    solve_flow(g)
    m = g.mass.astype(np.int32)
    dx = np.abs(m[:, :-1] - m[:, 1:])
    dy = np.abs(m[:-1, :] - m[1:, :])
    mx = np.abs(decode_flow(g.flow_x[:, :-1])).astype(np.int32)
    my = np.abs(decode_flow(g.flow_y[:-1, :])).astype(np.int32)

    # every move stays within half the difference and the cap
    assert np.all(2 * mx <= dx) and np.all(2 * my <= dy)
    assert mx.max() <= MAX_EXCHANGE and my.max() <= MAX_EXCHANGE

    cx = np.divide(mx, dx, out=np.zeros(dx.shape), where=dx != 0)
    cy = np.divide(my, dy, out=np.zeros(dy.shape), where=dy != 0)
    load = np.zeros(m.shape)
    load[:, :-1] += cx
    load[:, 1:] += cx
    load[:-1, :] += cy
    load[1:, :] += cy
    assert load.max() <= 1.0 + 1e-9


@pytest.mark.parametrize("move, byte", [(0, 128), (5, 133), (-5, 123), (200, 255), (-200, 1)])
def test_encode_flow_clamps(move, byte):
    assert encode_flow(np.array([move]))[0] == byte


def test_decode_flow_is_signed():
    assert decode_flow(np.array([0, 128, 255], dtype=np.uint8)).tolist() == [-128, 0, 127]

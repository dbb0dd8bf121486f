"""
simulation.py - Step Driver
============================
One call to `step()` advances the grid by one tick.

Pipeline per tick:
  1. Solve face flows from the current mass field   (solver.py)
  2. Move mass along those flows                    (transport.py)

Step 1 finishes for the whole grid before step 2 starts. The renderer
only reads mass between calls, never during one.

The next mass field depends on nothing but the current one:
flows are rebuilt from scratch every tick.
"""

import time

import numpy as np
from .grid import MassGrid, GRID_WIDTH, GRID_HEIGHT, InvalidConfiguration
from .solver import solve_flow, MAX_EXCHANGE, MAX_MOVE
from .transport import transport_mass


class MassFlowSimulation:
    """
    The complete grid fluid simulation.

    Usage:
        sim = MassFlowSimulation()
        sim.pour(25, 5, 200, radius=2)    # Drop some fluid near the top
        for frame in range(100):
            sim.step()
            value = sim.sample(25, 25)    # Hand to the renderer
    """

    def __init__(self, seed=None, width: int = GRID_WIDTH, height: int = GRID_HEIGHT,
                 max_exchange: int = MAX_EXCHANGE):
        """
        Args:
            seed         : Optional (H, W) array-like of initial masses.
                           None = empty grid.
            width, height: Grid extent (default 50 x 50)
            max_exchange : Cap on mass moved across one face per tick (1-127)
        """
        if int(max_exchange) != max_exchange or not 1 <= max_exchange <= MAX_MOVE:
            raise InvalidConfiguration(
                f"max_exchange must be an integer in [1, {MAX_MOVE}], got {max_exchange}"
            )
        self.grid = MassGrid(width=width, height=height)
        self.max_exchange = int(max_exchange)
        self.frame = 0
        self.last_metrics = {}

        if seed is not None:
            self.grid.load(seed)

    @property
    def width(self) -> int:
        return self.grid.width

    @property
    def height(self) -> int:
        return self.grid.height

    def step(self):
        """Advance the simulation by one tick. Cannot fail."""
        t_total_start = time.perf_counter()
        g = self.grid

        # ── Pass 1: flows from a single mass snapshot ──────────────────────
        t0 = time.perf_counter()
        solve_metrics = solve_flow(g, max_exchange=self.max_exchange)
        t_solve = (time.perf_counter() - t0) * 1000

        # ── Pass 2: move mass ──────────────────────────────────────────────
        t0 = time.perf_counter()
        transport_metrics = transport_mass(g)
        t_transport = (time.perf_counter() - t0) * 1000

        self.frame += 1
        t_total = (time.perf_counter() - t_total_start) * 1000

        self.last_metrics = {
            "frame"        : self.frame,
            "total_ms"     : t_total,
            "solve_ms"     : t_solve,
            "transport_ms" : t_transport,
            "moving_faces" : solve_metrics["faces_x"] + solve_metrics["faces_y"],
            "limited_cells": solve_metrics["limited_cells"],
            "moved"        : transport_metrics["moved"],
            "clipped"      : transport_metrics["clipped"],
            "total_mass"   : g.total_mass(),
        }

    def run(self, steps: int):
        for _ in range(steps):
            self.step()

    def sample(self, x: int, y: int) -> int:
        """Mass at cell (x, y), in [0, 255]. Raises OutOfBounds off the grid."""
        return self.grid.get_mass(x, y)

    def pour(self, x: int, y: int, amount: int, radius: int = 0) -> int:
        """
        Inject mass around (x, y), e.g. a tap running every frame.
        Negative amounts drain. Cells saturate at 0 and 255.

        Returns the net mass actually added.
        """
        return self.grid.add_mass(x, y, amount, radius=radius)

    def seed(self, pattern):
        """Replace the mass field with `pattern` and restart the frame count."""
        self.grid.load(pattern)
        self.frame = 0
        self.last_metrics = {}

    def mass_field(self) -> np.ndarray:
        """Read-only copy of the mass field, shape (H, W), for renderers."""
        field = self.grid.mass.copy()
        field.flags.writeable = False
        return field

    def total_mass(self) -> int:
        return self.grid.total_mass()

    def save_state(self) -> dict:
        state = self.grid.save_state()
        state["frame"] = self.frame
        return state

    def reset(self):
        self.grid.reset()
        self.frame = 0
        self.last_metrics = {}
        print(f"[Simulation] Grid reset ({self.width}x{self.height})")

    def print_status(self):
        """Pretty-print current simulation state."""
        m = self.grid.mass
        print(f"\n{'='*50}")
        print(f"  Frame: {self.frame}  |  Grid: {self.width}x{self.height}")
        print(f"  Mass     : total={self.total_mass()}, max={int(m.max())}, min={int(m.min())}")
        print(f"  Occupied : {int(np.count_nonzero(m))} / {self.grid.size} cells")
        if self.last_metrics:
            last = self.last_metrics
            print(f"  Flow     : {last['moving_faces']} faces moving, "
                  f"{last['moved']} units moved")
            print(f"  Perf     : {last['total_ms']:.2f}ms/step")
        print(f"{'='*50}")

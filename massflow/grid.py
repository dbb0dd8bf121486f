"""
grid.py - Byte-Quantized Mass Grid
===================================
The single source of truth passed between the two passes of a step.

Layout (one entry per cell, all arrays shape (H, W), indexed [y, x]):
  - `mass`   : fluid amount in the cell, 0 = empty, 255 = full
  - `flow_x` : signed flow across the EAST face, stored with a +128 bias
  - `flow_y` : signed flow across the SOUTH face, same encoding

Why three byte arrays instead of one struct per cell? It keeps every pass a
plain NumPy slice over contiguous memory, and C-order storage means
`field.ravel()[y * W + x]` is the row-major cell index.

y grows downward, so "south" is row y + 1.
"""

import numpy as np


# ── Grid dimensions ───────────────────────────────────────────────────────────
GRID_WIDTH  = 50
GRID_HEIGHT = 50

# ── Byte range of every field ─────────────────────────────────────────────────
MASS_MIN = 0
MASS_MAX = 255
NEUTRAL_FLOW = 128


class OutOfBounds(IndexError):
    """A coordinate outside [0, W) x [0, H) was passed to an accessor."""

    def __init__(self, x, y, width, height):
        super().__init__(f"Cell ({x}, {y}) is outside the {width}x{height} grid")
        self.x = x
        self.y = y


class InvalidConfiguration(ValueError):
    """Grid or simulation parameters that cannot describe a valid grid."""


class MassGrid:
    """
    W x H grid holding the mass field and the two face-flow fields.

    The arrays are allocated once here and only ever mutated in place,
    so a renderer holding a reference to `mass` always sees the live field.
    """

    def __init__(self, width: int = GRID_WIDTH, height: int = GRID_HEIGHT):
        """
        Args:
            width  : Number of columns (x extent)
            height : Number of rows (y extent)
        """
        if int(width) != width or int(height) != height or width <= 0 or height <= 0:
            raise InvalidConfiguration(
                f"Grid dimensions must be positive integers, got {width}x{height}"
            )
        self.width = int(width)
        self.height = int(height)

        # ── Cell field ─────────────────────────────────────────────────────
        self.mass = np.zeros((self.height, self.width), dtype=np.uint8)

        # ── Face fields (transient, rebuilt every step) ────────────────────
        self.flow_x = np.full((self.height, self.width), NEUTRAL_FLOW, dtype=np.uint8)
        self.flow_y = np.full((self.height, self.width), NEUTRAL_FLOW, dtype=np.uint8)

    @property
    def size(self) -> int:
        return self.width * self.height

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def _check(self, x: int, y: int):
        if not isinstance(x, (int, np.integer)) or not isinstance(y, (int, np.integer)):
            raise TypeError(f"Cell coordinates must be integers, got ({x!r}, {y!r})")
        # Negative indices would silently wrap in NumPy, so reject them here.
        if not self.in_bounds(x, y):
            raise OutOfBounds(x, y, self.width, self.height)

    def index(self, x: int, y: int) -> int:
        """Row-major linear index of cell (x, y)."""
        self._check(x, y)
        return y * self.width + x

    def get_mass(self, x: int, y: int) -> int:
        self._check(x, y)
        return int(self.mass[y, x])

    def set_mass(self, x: int, y: int, value) -> int:
        """
        Write a mass value, clamped into [0, 255].
        Clamping is the contract, not an error.

        Returns the value actually stored.
        """
        self._check(x, y)
        stored = int(np.clip(int(value), MASS_MIN, MASS_MAX))
        self.mass[y, x] = stored
        return stored

    def add_mass(self, x: int, y: int, amount: int, radius: int = 0) -> int:
        """
        Add (or with a negative amount, drain) mass around cell (x, y).
        Every cell in the square of the given radius, clipped to the grid,
        gets `amount` and is clamped into [0, 255].

        Returns the net change in total mass.
        """
        self._check(x, y)
        if radius < 0:
            raise InvalidConfiguration(f"Pour radius must be >= 0, got {radius}")
        x0, x1 = max(0, x - radius), min(self.width, x + radius + 1)
        y0, y1 = max(0, y - radius), min(self.height, y + radius + 1)

        # Anything past one full byte saturates anyway.
        amount = max(-MASS_MAX, min(MASS_MAX, int(amount)))

        region = self.mass[y0:y1, x0:x1]
        before = int(region.sum(dtype=np.int64))
        updated = np.clip(region.astype(np.int32) + amount, MASS_MIN, MASS_MAX)
        region[...] = updated.astype(np.uint8)
        return int(region.sum(dtype=np.int64)) - before

    def load(self, pattern):
        """
        Replace the whole mass field with `pattern` (array-like of shape (H, W)).
        Values are clamped into [0, 255].
        """
        values = np.asarray(pattern)
        if values.shape != self.mass.shape:
            raise InvalidConfiguration(
                f"Seed pattern has shape {values.shape}, expected {self.mass.shape}"
            )
        # Clip before narrowing: Python ints past int64 must saturate too.
        clamped = np.minimum(np.maximum(values, MASS_MIN), MASS_MAX)
        np.copyto(self.mass, clamped.astype(np.uint8))
        self.clear_flow()

    def clear_flow(self):
        self.flow_x.fill(NEUTRAL_FLOW)
        self.flow_y.fill(NEUTRAL_FLOW)

    def total_mass(self) -> int:
        # uint8 sums would overflow; accumulate wide.
        return int(self.mass.sum(dtype=np.int64))

    def save_state(self) -> dict:
        """Snapshot all three fields as independent copies."""
        return {
            "mass":   self.mass.copy(),
            "flow_x": self.flow_x.copy(),
            "flow_y": self.flow_y.copy(),
        }

    def reset(self):
        """Empty the grid. Useful for running several scenarios on one object."""
        self.mass.fill(MASS_MIN)
        self.clear_flow()

    def __repr__(self):
        active = int(np.count_nonzero(self.flow_x != NEUTRAL_FLOW)
                     + np.count_nonzero(self.flow_y != NEUTRAL_FLOW))
        return (
            f"MassGrid({self.width}x{self.height})\n"
            f"  mass  : max={int(self.mass.max())}, sum={self.total_mass()}\n"
            f"  faces : {active} moving"
        )

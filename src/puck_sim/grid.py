from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

import puck_sim.config as cfg
from puck_sim.physics import BasketSpec

Index2D = Tuple[int, int]


@dataclass(frozen=True, slots=True, eq=False)
class Field:
    """
    Scalar field over the (row, col) grid, stored as one flat read-only buffer
    in row-major order.
    """
    data: np.ndarray
    rows: int
    cols: int

    def __post_init__(self):
        flat = np.array(self.data, dtype=np.float64).reshape(-1)
        if flat.size != self.rows * self.cols:
            raise ValueError(f"Field of {flat.size} values does not fit {self.rows}x{self.cols}")
        flat.setflags(write=False)
        object.__setattr__(self, "data", flat)

    @classmethod
    def from_array(cls, a: np.ndarray) -> "Field":
        a = np.asarray(a, dtype=np.float64)
        if a.ndim != 2:
            raise ValueError(f"expected a 2D array, got shape {a.shape}")
        n, m = a.shape
        return cls(data=a, rows=n, cols=m)

    @classmethod
    def zeros(cls, rows: int, cols: int) -> "Field":
        return cls(data=np.zeros(rows * cols), rows=rows, cols=cols)

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def at(self, row: int, col: int) -> float:
        if not self.in_bounds(row, col):
            raise IndexError(f"({row}, {col}) outside {self.rows}x{self.cols} field")
        return float(self.data[row * self.cols + col])

    def row(self, row: int) -> np.ndarray:
        if not 0 <= row < self.rows:
            raise IndexError(f"row {row} outside 0..{self.rows - 1}")
        return self.data[row * self.cols:(row + 1) * self.cols]

    def to_array(self) -> np.ndarray:
        return self.data.reshape(self.rows, self.cols).copy()

    def max(self) -> float:
        return float(np.max(self.data)) if self.data.size else 0.0

    def normalized(self) -> "Field":
        """Scaled by its own max and clipped to [0, 1]; all zeros stay zeros."""
        top = self.max()
        if top <= 0.0:
            return Field.zeros(self.rows, self.cols)
        return Field(data=np.clip(self.data / top, 0.0, 1.0), rows=self.rows, cols=self.cols)


@dataclass(frozen=True, slots=True)
class PuckGrid:
    """
    Axisymmetric (r, z) grid over the bed.
    rows: axial nodes, row 0 on the inlet face, row rows-1 on the basket screen.
    cols: radial cells, col 0 on the axis, col cols-1 against the wall.
    """
    rows: int
    cols: int
    radius_m: float
    height_m: float

    def __post_init__(self):
        if self.rows < 3 or self.cols < 2:
            raise ValueError(f"grid must be at least 3x2, got {self.rows}x{self.cols}")
        if not (self.radius_m > 0.0 and self.height_m > 0.0):
            raise ValueError(f"grid extent must be positive, got r={self.radius_m}, h={self.height_m}")

    @property
    def shape(self) -> Index2D:
        return self.rows, self.cols

    @property
    def size(self) -> int:
        return self.rows * self.cols

    @property
    def dr(self) -> float:
        return self.radius_m / self.cols

    @property
    def dz(self) -> float:
        return self.height_m / (self.rows - 1)

    @property
    def radii(self) -> np.ndarray:
        """Cell-centre radii."""
        return (np.arange(self.cols) + 0.5) * self.dr

    @property
    def face_radii(self) -> np.ndarray:
        """Radius of the outer face of each radial cell; the last one is the wall."""
        return (np.arange(self.cols) + 1.0) * self.dr

    @property
    def annular_areas(self) -> np.ndarray:
        """Horizontal cross-section of each radial ring [m^2]; sums to pi R^2."""
        j = np.arange(self.cols, dtype=np.float64)
        return math.pi * self.dr ** 2 * ((j + 1.0) ** 2 - j ** 2)

    def radial_fraction(self, col):
        """0 on the axis, exactly 1 at the wall; accepts an index array."""
        return col / (self.cols - 1)

    def depth_fraction(self, row):
        """0 on the inlet face, exactly 1 on the screen; accepts an index array."""
        return row / (self.rows - 1)

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def neighbors4(self, row: int, col: int) -> List[Index2D]:
        cand = ((row + 1, col), (row - 1, col), (row, col + 1), (row, col - 1))
        return [(i, j) for (i, j) in cand if self.in_bounds(i, j)]

    def index(self, row: int, col: int) -> int:
        if not self.in_bounds(row, col):
            raise IndexError(f"({row}, {col}) outside {self.rows}x{self.cols} grid")
        return row * self.cols + col


def grid_shape_for(basket: BasketSpec) -> Index2D:
    """Resolution scaled with basket size, never coarser than MIN_GRID x MIN_GRID."""
    rows = max(cfg.MIN_GRID, int(round(basket.depth_mm * cfg.AXIAL_NODES_PER_MM)))
    cols = max(cfg.MIN_GRID, int(round(basket.diameter_mm / 2.0 / cfg.RADIAL_CELL_MM)))
    return rows, cols


def make_grid(basket: BasketSpec, puck_height_mm: float, rows: int | None = None,
              cols: int | None = None) -> PuckGrid:
    n, m = grid_shape_for(basket)
    return PuckGrid(
        rows=int(rows) if rows is not None else n,
        cols=int(cols) if cols is not None else m,
        radius_m=basket.radius_m,
        height_m=puck_height_mm / 1000.0,
    )

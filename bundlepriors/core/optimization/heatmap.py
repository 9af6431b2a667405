"""Heatmap raster sampling and the heatmap position residual."""

from typing import List, Sequence, Tuple

import numpy as np

from .cost_function import CostFunction
from .residuals import ResidualFunctor, ResidualRegistry
from ..math.pose import POSE_BLOCK_SIZE, PoseParameter, ShotPoseFunctor


class Grid2D:
    """Read-only view of a row-major scalar raster.

    Cells outside ``[0, rows) x [0, cols)`` take the value of the nearest
    border cell, so the raster extends infinitely by edge replication.
    """

    def __init__(self, data: np.ndarray):
        data = np.asarray(data, dtype=float)
        if data.ndim != 2:
            raise ValueError(f"Grid data must be 2D, got shape {data.shape}")
        if data.size == 0:
            raise ValueError("Grid data cannot be empty")

        self.data = data
        self.num_rows, self.num_cols = data.shape

    def get_value(self, row: int, col: int) -> float:
        r = min(max(row, 0), self.num_rows - 1)
        c = min(max(col, 0), self.num_cols - 1)
        return self.data[r, c]


def cubic_hermite_spline(
    p0: float, p1: float, p2: float, p3: float, x: float
) -> Tuple[float, float]:
    """Catmull-Rom spline through p1 (x=0) and p2 (x=1).

    Returns:
        Tuple of (value, derivative with respect to x)
    """
    a = 0.5 * (-p0 + 3.0 * p1 - 3.0 * p2 + p3)
    b = 0.5 * (2.0 * p0 - 5.0 * p1 + 4.0 * p2 - p3)
    c = 0.5 * (-p0 + p2)
    d = p1

    f = d + x * (c + x * (b + x * a))
    dfdx = c + x * (2.0 * b + 3.0 * a * x)
    return f, dfdx


class BiCubicInterpolator:
    """Continuously differentiable reconstruction of a :class:`Grid2D`.

    Interpolates along columns in the four rows surrounding the sample, then
    along rows. Grid cell ``(i, j)`` is reproduced exactly at ``(i, j)``.
    """

    def __init__(self, grid: Grid2D):
        self.grid = grid

    def evaluate_with_gradient(self, r: float, c: float) -> Tuple[float, float, float]:
        """Evaluate at fractional (row, column).

        Returns:
            Tuple of (f, df/dr, df/dc)
        """
        row = int(np.floor(r))
        col = int(np.floor(c))
        fc = c - col

        values = []
        col_derivatives = []
        for i in range(row - 1, row + 3):
            f, dfdc = cubic_hermite_spline(
                self.grid.get_value(i, col - 1),
                self.grid.get_value(i, col),
                self.grid.get_value(i, col + 1),
                self.grid.get_value(i, col + 2),
                fc,
            )
            values.append(f)
            col_derivatives.append(dfdc)

        fr = r - row
        f, dfdr = cubic_hermite_spline(*values, fr)
        dfdc, _ = cubic_hermite_spline(*col_derivatives, fr)
        return f, dfdr, dfdc

    def evaluate(self, r: float, c: float) -> float:
        return self.evaluate_with_gradient(r, c)[0]


@ResidualRegistry.register("heatmap")
class HeatmapCostFunctor(ResidualFunctor):
    """Geolocation likelihood residual sampled from a heatmap raster.

    The shot position, relative to the raster origin, is converted to a
    fractional cell: ``row = height/2 - y/resolution`` and
    ``col = width/2 + x/resolution``. The altitude is ignored. The
    interpolator is borrowed and only read; out-of-range samples are left
    to it.
    """

    def __init__(
        self,
        interpolator: BiCubicInterpolator,
        x_offset: float,
        y_offset: float,
        height: float,
        width: float,
        resolution: float,
        std_deviation: float,
    ):
        """Initialize heatmap residual.

        Args:
            interpolator: Raster reconstruction exposing ``evaluate(row, col)``
                and ``evaluate_with_gradient(row, col)``
            x_offset: World X of the raster origin
            y_offset: World Y of the raster origin
            height: Raster height in cells
            width: Raster width in cells
            resolution: World distance per cell
            std_deviation: Standard deviation scaling the sampled value
        """
        self.interpolator = interpolator
        self.x_offset = x_offset
        self.y_offset = y_offset
        self.height = height
        self.width = width
        self.resolution = resolution
        self.scale = 1.0 / std_deviation
        self.pose_functor = ShotPoseFunctor()

    def raster_coordinates(self, blocks: Sequence[np.ndarray]) -> Tuple[float, float]:
        """Fractional (row, col) of the shot in the raster."""
        position = self.pose_functor.position(blocks)
        x_coor = position[0] - self.x_offset
        y_coor = position[1] - self.y_offset
        row = self.height / 2.0 - (y_coor / self.resolution)
        col = self.width / 2.0 + (x_coor / self.resolution)
        return row, col

    def compute_residual(self, blocks: Sequence[np.ndarray]) -> np.ndarray:
        row, col = self.raster_coordinates(blocks)
        return np.array([self.interpolator.evaluate(row, col) * self.scale])

    def compute_jacobian(self, blocks: Sequence[np.ndarray]) -> List[np.ndarray]:
        row, col = self.raster_coordinates(blocks)
        _, dfdr, dfdc = self.interpolator.evaluate_with_gradient(row, col)

        J = np.zeros((1, POSE_BLOCK_SIZE))
        J[0, PoseParameter.TX] = self.scale * dfdc / self.resolution
        J[0, PoseParameter.TY] = -self.scale * dfdr / self.resolution
        return [J]

    def residual_dimension(self) -> int:
        return 1

    def parameter_block_sizes(self) -> List[int]:
        return [POSE_BLOCK_SIZE]

    @classmethod
    def create(
        cls,
        interpolator: BiCubicInterpolator,
        x_offset: float,
        y_offset: float,
        height: float,
        width: float,
        resolution: float,
        std_deviation: float,
    ) -> CostFunction:
        """Cost function with one residual and one 6-value shot block."""
        return CostFunction(
            cls(interpolator, x_offset, y_offset, height, width, resolution, std_deviation)
        )


# Historical name, kept for existing callers
HeatmapdCostFunctor = HeatmapCostFunctor

"""
Dense binned flux table.

Content is a non-negative flux density per bin. Bin probabilities used for
sampling and the total integral weight each bin by its volume
(energy width x cos(zenith) width [x azimuth width]).

Out-of-range policy: coordinates outside any axis have no bin.
`bin_index_of` returns None, `fill` drops the value and `value_at`
returns 0.

License: MIT
"""

from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

import numpy as np

from .binning import BinAxis, FluxGeometry


class FluxTable:
    """Flux content over a FluxGeometry, indexed (energy, cos_theta[, azimuth])."""

    def __init__(self, geometry: FluxGeometry):
        self.geometry = geometry
        self._content = np.zeros(geometry.shape, dtype=float)

    @property
    def axes(self) -> Tuple[BinAxis, ...]:
        return self.geometry.axes

    @property
    def ndim(self) -> int:
        return self.geometry.ndim

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.geometry.shape

    @property
    def content(self) -> np.ndarray:
        """Read-only view of the bin contents."""
        view = self._content.view()
        view.setflags(write=False)
        return view

    @property
    def is_empty(self) -> bool:
        return not np.any(self._content > 0)

    def bin_index_of(self, *coords: float) -> Optional[Tuple[int, ...]]:
        """Per-axis bin indices of a point, or None if it lies outside the grid."""
        if len(coords) != self.ndim:
            raise ValueError(f"Expected {self.ndim} coordinates, got {len(coords)}.")
        indices = []
        for axis, value in zip(self.axes, coords):
            i = axis.find_bin(value)
            if i < 0:
                return None
            indices.append(i)
        return tuple(indices)

    def get(self, indices: Sequence[int]) -> float:
        return float(self._content[tuple(indices)])

    def set(self, indices: Sequence[int], value: float) -> None:
        """Overwrite one bin."""
        if not math.isfinite(value) or value < 0:
            raise ValueError(f"Flux content must be finite and non-negative, got {value}.")
        self._content[tuple(indices)] = value

    def fill(self, coords: Sequence[float], value: float) -> bool:
        """Store value in the bin holding coords. Returns False when out of range."""
        indices = self.bin_index_of(*coords)
        if indices is None:
            return False
        self.set(indices, value)
        return True

    def value_at(self, *coords: float) -> float:
        indices = self.bin_index_of(*coords)
        if indices is None:
            return 0.0
        return self.get(indices)

    def bin_volumes(self) -> np.ndarray:
        """Outer product of the axis widths, same shape as the content."""
        volumes = np.ones(())
        for axis in self.axes:
            volumes = np.multiply.outer(volumes, axis.widths)
        return volumes

    def bin_masses(self) -> np.ndarray:
        return self._content * self.bin_volumes()

    def total_integral(self) -> float:
        return float(self.bin_masses().sum())

    def build_cumulative(self, energy_range: Optional[Tuple[float, float]] = None) -> np.ndarray:
        """
        Cumulative bin masses over the flattened index.

        Flattening is C order: energy-major, then cos_theta, then azimuth.
        With energy_range, energy bins lying entirely outside (low, high)
        contribute no mass.
        """
        masses = self.bin_masses()
        if energy_range is not None:
            e_low, e_high = energy_range
            if not e_high > e_low:
                raise ValueError("Upper energy must be greater than lower energy.")
            edges = self.geometry.energy.edges
            outside = (edges[1:] <= e_low) | (edges[:-1] >= e_high)
            masses[outside] = 0.0
        return np.cumsum(masses.ravel())

    def accumulate(self, other: "FluxTable") -> None:
        """Add the content of a table with the same geometry."""
        if other.geometry != self.geometry:
            raise ValueError("Cannot add flux tables with different geometries.")
        self._content += other._content

    def normalize(self, total: float = 1.0) -> None:
        """Rescale so that total_integral() == total. No-op on an empty table."""
        integral = self.total_integral()
        if integral > 0:
            self._content *= total / integral

    def copy(self) -> "FluxTable":
        new = FluxTable(self.geometry)
        new._content[...] = self._content
        return new

    def __repr__(self) -> str:
        return f"FluxTable(shape={self.shape}, integral={self.total_integral():.6g})"

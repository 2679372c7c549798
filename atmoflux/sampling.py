"""
Sampling utilities.

Points are drawn proportionally to the bin masses of a FluxTable by
inverse-cumulative lookup over the flattened bin index, followed by a
uniform offset inside the chosen bin on each axis.

Every call consumes the random generator in the same order:
bin, energy offset, cos(zenith) offset, azimuth. This keeps event streams
reproducible for a fixed seed.

License: MIT
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .config import AZIMUTH_MAX, AZIMUTH_MIN
from .errors import EmptyTableError, SamplingError
from .table import FluxTable

_MAX_ATTEMPTS = 10000


@dataclass(frozen=True)
class FluxSample:
    """One sampled neutrino: energy in GeV, direction as (cos zenith, azimuth)."""
    energy: float
    cos_theta: float
    azimuth: float
    pdg: int
    weight: float = 1.0
    position: Optional[Tuple[float, float, float]] = None

    @property
    def direction(self) -> Tuple[float, float, float]:
        """
        Unit vector of travel.

        The zenith angle points from the detector to where the neutrino
        comes from, so the neutrino moves along the opposite direction.
        """
        sin_theta = math.sqrt(max(0.0, 1.0 - self.cos_theta ** 2))
        return (
            -sin_theta * math.cos(self.azimuth),
            -sin_theta * math.sin(self.azimuth),
            -self.cos_theta,
        )

    @property
    def momentum(self) -> Tuple[float, float, float, float]:
        """Four-momentum (px, py, pz, E) of a massless neutrino."""
        dx, dy, dz = self.direction
        return (self.energy * dx, self.energy * dy, self.energy * dz, self.energy)


class FluxSampler:
    """
    Draw (energy, cos_theta, azimuth) points from a flux table.

    Parameters
    ----------
    table:
        Filled flux table. It must not change while the sampler is used.
    resample_azimuth:
        Draw azimuth uniformly over its full range at every call instead of
        inside the chosen table bin. Used for formats without tabulated
        azimuth dependence.
    energy_range:
        Optional (low, high) restriction. Bins outside are never chosen and
        points outside are redrawn.
    """

    def __init__(
        self,
        table: FluxTable,
        *,
        resample_azimuth: bool = False,
        energy_range: Optional[Tuple[float, float]] = None,
    ):
        self.table = table
        self.resample_azimuth = resample_azimuth or not table.geometry.has_azimuth
        self.energy_range = energy_range

        self._cumulative = table.build_cumulative(energy_range)
        total = float(self._cumulative[-1])
        if not math.isfinite(total) or total <= 0:
            raise EmptyTableError("Flux table has zero integral: nothing to sample.")
        self._total = total
        # Last bin with non-zero mass
        self._last = int(np.searchsorted(self._cumulative, total, side="left"))

    @property
    def total(self) -> float:
        return self._total

    def sample_bin(self, rng: np.random.Generator) -> Tuple[int, ...]:
        """Pick a bin with probability proportional to its mass (one uniform draw)."""
        u = rng.random() * self._total
        flat = int(np.searchsorted(self._cumulative, u, side="right"))
        # u < total, but guard against round-off at the top of the range
        flat = min(flat, self._last)
        return tuple(int(i) for i in np.unravel_index(flat, self.table.shape))

    def sample_point(
        self, rng: np.random.Generator, indices: Tuple[int, ...]
    ) -> Tuple[float, float, float]:
        """Uniform point inside a bin: (energy, cos_theta, azimuth)."""
        geometry = self.table.geometry
        coords = []
        for axis, i in zip((geometry.energy, geometry.cos_theta), indices):
            low, high = axis.bin_bounds(i)
            coords.append(low + (high - low) * rng.random())

        if self.resample_azimuth:
            if geometry.has_azimuth:
                low, high = geometry.azimuth.low, geometry.azimuth.high
            else:
                low, high = AZIMUTH_MIN, AZIMUTH_MAX
        else:
            low, high = geometry.azimuth.bin_bounds(indices[2])
        coords.append(low + (high - low) * rng.random())
        return tuple(coords)

    def _in_range(self, energy: float) -> bool:
        if self.energy_range is None:
            return True
        e_low, e_high = self.energy_range
        return e_low <= energy <= e_high

    def draw(self, rng: np.random.Generator) -> Tuple[Tuple[int, ...], Tuple[float, float, float]]:
        """Return (bin indices, point), redrawing points outside the energy range."""
        for _ in range(_MAX_ATTEMPTS):
            indices = self.sample_bin(rng)
            point = self.sample_point(rng, indices)
            if self._in_range(point[0]):
                return indices, point
        raise SamplingError(
            f"No point inside energy range {self.energy_range} after {_MAX_ATTEMPTS} attempts."
        )

    def sample(self, rng: np.random.Generator, pdg: int, *, weight: float = 1.0) -> FluxSample:
        _, (energy, cos_theta, azimuth) = self.draw(rng)
        return FluxSample(
            energy=energy, cos_theta=cos_theta, azimuth=azimuth, pdg=pdg, weight=weight,
        )

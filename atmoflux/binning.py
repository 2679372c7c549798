"""
Bin geometry for flux tables.

Implements:
- BinAxis: immutable, strictly increasing bin edges with value lookup
- Uniform axes (cos(zenith), azimuth)
- Piecewise log-spaced energy axes with separate low/high-energy densities
- The per-format table layouts

License: MIT
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .config import AZIMUTH_MAX, AZIMUTH_MIN, FLUX_FORMAT_CONFIG, FluxFormat
from .errors import InvalidGeometryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class BinAxis:
    """Bin edges for one physical dimension. Bin i covers [edges[i], edges[i+1])."""
    name: str
    edges: np.ndarray

    def __post_init__(self) -> None:
        edges = np.array(self.edges, dtype=float)
        if edges.ndim != 1 or edges.size < 2:
            raise InvalidGeometryError(f"Axis '{self.name}' needs at least one bin.")
        if not np.all(np.isfinite(edges)):
            raise InvalidGeometryError(f"Axis '{self.name}' has non-finite edges.")
        if np.any(np.diff(edges) <= 0):
            raise InvalidGeometryError(f"Axis '{self.name}' edges must be strictly increasing.")
        edges.setflags(write=False)
        object.__setattr__(self, "edges", edges)

    @property
    def n_bins(self) -> int:
        return self.edges.size - 1

    @property
    def low(self) -> float:
        return float(self.edges[0])

    @property
    def high(self) -> float:
        return float(self.edges[-1])

    @property
    def widths(self) -> np.ndarray:
        return np.diff(self.edges)

    @property
    def centers(self) -> np.ndarray:
        return 0.5 * (self.edges[:-1] + self.edges[1:])

    def find_bin(self, value: float) -> int:
        """Return the bin index holding value, or -1 when it lies outside the axis."""
        if not (self.edges[0] <= value < self.edges[-1]):
            # Also catches NaN
            return -1
        return int(np.searchsorted(self.edges, value, side="right")) - 1

    def bin_bounds(self, index: int) -> Tuple[float, float]:
        return float(self.edges[index]), float(self.edges[index + 1])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BinAxis):
            return NotImplemented
        return self.name == other.name and np.array_equal(self.edges, other.edges)

    def __hash__(self) -> int:
        return hash((self.name, self.edges.tobytes()))

    def __len__(self) -> int:
        return self.n_bins


@dataclass(frozen=True)
class FluxGeometry:
    """Axes of a flux table: energy, cos(zenith) and optionally azimuth."""
    energy: BinAxis
    cos_theta: BinAxis
    azimuth: Optional[BinAxis] = None

    @property
    def axes(self) -> Tuple[BinAxis, ...]:
        if self.azimuth is None:
            return (self.energy, self.cos_theta)
        return (self.energy, self.cos_theta, self.azimuth)

    @property
    def ndim(self) -> int:
        return len(self.axes)

    @property
    def shape(self) -> Tuple[int, ...]:
        return tuple(axis.n_bins for axis in self.axes)

    @property
    def n_bins(self) -> int:
        """Total number of bins, for sizing the content array."""
        return int(np.prod(self.shape))

    @property
    def has_azimuth(self) -> bool:
        return self.azimuth is not None


def uniform_axis(name: str, low: float, high: float, n_bins: int) -> BinAxis:
    """Equal-width bins: edges = low + i*(high - low)/n_bins."""
    if n_bins < 1:
        raise InvalidGeometryError(f"Axis '{name}' needs at least one bin, got {n_bins}.")
    if not high > low:
        raise InvalidGeometryError(f"Axis '{name}' upper edge must exceed lower edge.")
    step = (high - low) / n_bins
    edges = low + np.arange(n_bins + 1) * step
    return BinAxis(name, edges)


def piecewise_log_axis(
    name: str,
    e_min: float,
    low_bins_per_decade: float,
    n_low: int,
    high_bins_per_decade: float,
    n_high: int,
) -> BinAxis:
    """
    Log-spaced bins with two densities sharing one boundary edge.

    Parameters
    ----------
    e_min:
        Lower edge of the first bin.
    low_bins_per_decade, n_low:
        Density and number of bins of the low-energy piece.
    high_bins_per_decade, n_high:
        Density and number of bins of the high-energy piece (n_high may be 0).

    The decade steps are accumulated edge by edge, so the first n_low + 1
    edges are identical to those of the low piece alone.
    """
    if e_min <= 0 or not math.isfinite(e_min):
        raise InvalidGeometryError(f"Axis '{name}' needs a positive lower edge, got {e_min}.")
    if low_bins_per_decade <= 0 or high_bins_per_decade <= 0:
        raise InvalidGeometryError(f"Axis '{name}' bins per decade must be positive.")
    if n_low < 0 or n_high < 0 or n_low + n_high < 1:
        raise InvalidGeometryError(f"Axis '{name}' needs at least one bin.")

    dlog_low = 1.0 / low_bins_per_decade
    dlog_high = 1.0 / high_bins_per_decade

    n_bins = n_low + n_high
    edges = np.empty(n_bins + 1)
    log_e = math.log10(e_min)
    edges[0] = e_min
    for i in range(1, n_bins + 1):
        log_e += dlog_low if i <= n_low else dlog_high
        edges[i] = 10.0 ** log_e
    return BinAxis(name, edges)


def log_axis(name: str, e_min: float, bins_per_decade: float, n_bins: int) -> BinAxis:
    """Single-density log-spaced axis."""
    return piecewise_log_axis(name, e_min, bins_per_decade, n_bins, bins_per_decade, 0)


def build_geometry(fmt, *, azimuth_bins: Optional[int] = None) -> FluxGeometry:
    """
    Build the table geometry of a supported format.

    azimuth_bins adds a uniform azimuth axis over [0, 2*pi) to formats that
    tabulate no azimuth; it is ignored by formats that carry their own.
    """
    fmt = FluxFormat(fmt)
    cfg = FLUX_FORMAT_CONFIG[fmt]

    ecfg = cfg["energy"]
    energy = piecewise_log_axis(
        "energy",
        ecfg["e_min"],
        ecfg["low_bins_per_decade"],
        ecfg["n_low"],
        ecfg["high_bins_per_decade"],
        ecfg["n_high"],
    )
    ccfg = cfg["cos_theta"]
    cos_theta = uniform_axis("cos_theta", ccfg["low"], ccfg["high"], ccfg["n_bins"])

    azimuth = None
    if cfg["azimuth"] is not None:
        acfg = cfg["azimuth"]
        azimuth = uniform_axis("azimuth", acfg["low"], acfg["high"], acfg["n_bins"])
    elif azimuth_bins is not None:
        azimuth = uniform_axis("azimuth", AZIMUTH_MIN, AZIMUTH_MAX, azimuth_bins)

    geometry = FluxGeometry(energy=energy, cos_theta=cos_theta, azimuth=azimuth)
    for axis in geometry.axes:
        logger.debug(
            "%s flux: %s axis with %d bins, edges %.6g .. %.6g",
            fmt.value, axis.name, axis.n_bins, axis.low, axis.high,
        )
    return geometry

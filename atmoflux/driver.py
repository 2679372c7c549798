"""
Atmospheric neutrino flux driver.

Builds the geometry of a table format, loads one table per neutrino
species and serves samples (`generate_next`) and direct lookups (`flux`).

The random generator is injected by the caller and is the only source of
randomness, both for azimuth synthesis at load time and for sampling.

License: MIT
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .binning import FluxGeometry, build_geometry
from .config import FLUX_FORMAT_CONFIG, PDG_NAMES, FluxFormat
from .data import load_flux_file
from .errors import DriverStateError, EmptyTableError, FluxError, UnsupportedSpeciesError
from .sampling import FluxSample, FluxSampler
from .table import FluxTable

logger = logging.getLogger(__name__)


class DriverState(str, Enum):
    UNINITIALIZED = "uninitialized"
    GEOMETRY_BUILT = "geometry_built"
    TABLES_LOADED = "tables_loaded"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class FluxDriverConfig:
    """
    Run-time settings of a FluxDriver.

    flux_files maps a PDG code to the files holding its flux. Several files
    for one species (e.g. Bartol low- and high-energy pieces) are summed.
    radii = (r_longitudinal, r_transverse) enables generation positions.
    flux_scale converts table units (1.0 for m^-2, 1e-4 for cm^-2).
    """
    format: FluxFormat
    flux_files: Mapping[int, Tuple[Path, ...]]
    azimuth_bins: Optional[int] = None
    energy_range: Optional[Tuple[float, float]] = None
    flux_scale: float = 1.0
    radii: Optional[Tuple[float, float]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "format", FluxFormat(self.format))
        files = {}
        for pdg, paths in self.flux_files.items():
            if isinstance(paths, (str, Path)):
                paths = [paths]
            files[int(pdg)] = tuple(Path(p) for p in paths)
        object.__setattr__(self, "flux_files", files)

        if self.energy_range is not None and not self.energy_range[1] > self.energy_range[0]:
            raise ValueError("Upper energy must be greater than lower energy.")
        if self.radii is not None and min(self.radii) < 0:
            raise ValueError("Generation radii must be non-negative.")

    @classmethod
    def from_dict(cls, cfg: Mapping) -> "FluxDriverConfig":
        """Build a config from a plain mapping (e.g. parsed from JSON/YAML)."""
        energy_range = cfg.get("energy_range")
        radii = cfg.get("radii")
        return cls(
            format=cfg["format"],
            flux_files=cfg["flux_files"],
            azimuth_bins=cfg.get("azimuth_bins"),
            energy_range=tuple(energy_range) if energy_range is not None else None,
            flux_scale=float(cfg.get("flux_scale", 1.0)),
            radii=tuple(radii) if radii is not None else None,
        )


class FluxDriver:
    """Geometry + species tables + samplers behind one query/sample interface."""

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self.rng = rng if rng is not None else np.random.default_rng()
        self.state = DriverState.UNINITIALIZED
        self.config: Optional[FluxDriverConfig] = None
        self.geometry: Optional[FluxGeometry] = None
        self.n_generated = 0
        self._tables: Dict[int, FluxTable] = {}
        self._samplers: Dict[int, FluxSampler] = {}
        self._mixture_sampler: Optional[FluxSampler] = None

    @property
    def is_ready(self) -> bool:
        return self.state == DriverState.READY

    @property
    def species(self) -> List[int]:
        return list(self._tables)

    def initialize(self, config: FluxDriverConfig) -> bool:
        """
        Build the geometry and load every species table.

        Returns True when the driver is ready to sample. On any file-level
        failure the error is logged and the driver stays FAILED.
        """
        fmt = config.format
        logger.info("Instantiating the %s atmospheric neutrino flux driver", fmt.value)
        self.config = config
        self._tables = {}
        self._samplers = {}
        self._mixture_sampler = None

        try:
            self.geometry = build_geometry(fmt, azimuth_bins=config.azimuth_bins)
            self.state = DriverState.GEOMETRY_BUILT

            if not config.flux_files:
                raise FluxError("No flux files configured.")
            for pdg, paths in config.flux_files.items():
                self._tables[pdg] = self._load_species(pdg, paths)
            self.state = DriverState.TABLES_LOADED
        except (FluxError, OSError) as e:
            logger.error("Flux driver initialization failed: %s", e)
            self.state = DriverState.FAILED
            return False

        self._build_samplers()
        self.state = DriverState.READY
        logger.info(
            "Flux driver ready: %s",
            ", ".join(f"{PDG_NAMES.get(p, p)} ({self._tables[p].total_integral():.4g})" for p in self._tables),
        )
        return True

    def _load_species(self, pdg: int, paths: Sequence[Path]) -> FluxTable:
        if not paths:
            raise FluxError(f"No flux files for PDG code {pdg}.")
        species_table = FluxTable(self.geometry)
        for path in paths:
            file_table = FluxTable(self.geometry)
            load_flux_file(
                file_table, path, self.config.format,
                pdg=pdg, rng=self.rng, scale=self.config.flux_scale,
            )
            species_table.accumulate(file_table)
        return species_table

    def _build_samplers(self) -> None:
        resample_azimuth = FLUX_FORMAT_CONFIG[self.config.format]["resample_azimuth"]
        energy_range = self.config.energy_range

        total = FluxTable(self.geometry)
        for pdg, table in self._tables.items():
            total.accumulate(table)
            try:
                self._samplers[pdg] = FluxSampler(
                    table, resample_azimuth=resample_azimuth, energy_range=energy_range,
                )
            except EmptyTableError:
                logger.warning("Flux table for PDG code %d is empty.", pdg)
        try:
            self._mixture_sampler = FluxSampler(
                total, resample_azimuth=resample_azimuth, energy_range=energy_range,
            )
        except EmptyTableError:
            self._mixture_sampler = None

    def _require_ready(self) -> None:
        if not self.is_ready:
            raise DriverStateError(f"Flux driver is not ready (state: {self.state.value}).")

    def table(self, pdg: int) -> FluxTable:
        try:
            return self._tables[pdg]
        except KeyError:
            raise UnsupportedSpeciesError(f"No flux table for PDG code {pdg}.") from None

    def generate_next(self, pdg: Optional[int] = None) -> FluxSample:
        """
        Draw the next flux neutrino.

        With pdg=None the species is chosen from the relative flux of all
        loaded species in the sampled bin (one extra uniform draw).
        """
        self._require_ready()

        if pdg is None:
            sampler = self._mixture_sampler
            if sampler is None:
                raise EmptyTableError("All flux tables are empty: nothing to sample.")
            indices, point = sampler.draw(self.rng)
            pdg = self._pick_species(indices)
        else:
            self.table(pdg)
            sampler = self._samplers.get(pdg)
            if sampler is None:
                raise EmptyTableError(f"Flux table for PDG code {pdg} is empty.")
            _, point = sampler.draw(self.rng)

        energy, cos_theta, azimuth = point
        sample = FluxSample(energy=energy, cos_theta=cos_theta, azimuth=azimuth, pdg=pdg)
        if self.config.radii is not None:
            sample = replace(sample, position=self._generation_position(sample))
        self.n_generated += 1
        return sample

    def generate(self, n: int, pdg: Optional[int] = None) -> List[FluxSample]:
        return [self.generate_next(pdg) for _ in range(n)]

    def _pick_species(self, indices: Tuple[int, ...]) -> int:
        species = list(self._tables)
        contents = np.array([self._tables[p].get(indices) for p in species])
        u = self.rng.random() * contents.sum()
        i = int(np.searchsorted(np.cumsum(contents), u, side="right"))
        return species[min(i, len(species) - 1)]

    def _generation_position(self, sample: FluxSample) -> Tuple[float, float, float]:
        """
        Start point on a disc of radius Rt, perpendicular to the direction of
        travel and centred Rl upstream of the origin.
        """
        r_long, r_trans = self.config.radii
        d = np.array(sample.direction)
        helper = np.array([1.0, 0.0, 0.0]) if abs(d[2]) > 0.9 else np.array([0.0, 0.0, 1.0])
        u = np.cross(d, helper)
        u /= np.linalg.norm(u)
        v = np.cross(d, u)

        r = r_trans * math.sqrt(self.rng.random())
        phi = 2.0 * math.pi * self.rng.random()
        pos = -r_long * d + r * (math.cos(phi) * u + math.sin(phi) * v)
        return (float(pos[0]), float(pos[1]), float(pos[2]))

    def flux(
        self,
        energy: float,
        cos_theta: float,
        azimuth: Optional[float] = None,
        pdg: Optional[int] = None,
    ) -> float:
        """
        Table value at a point, summed over species when pdg is None.

        Points outside the grid give 0. Azimuth is ignored by tables without
        an azimuth axis.
        """
        self._require_ready()
        tables = self._tables.values() if pdg is None else [self.table(pdg)]

        coords = [energy, cos_theta]
        if self.geometry.has_azimuth:
            if azimuth is None:
                raise ValueError("This flux table depends on azimuth: pass an azimuth value.")
            coords.append(azimuth)
        return float(sum(t.value_at(*coords) for t in tables))

    def total_flux(self, pdg: Optional[int] = None) -> float:
        """Integral of one species table, or of all of them."""
        self._require_ready()
        if pdg is not None:
            return self.table(pdg).total_integral()
        return float(sum(t.total_integral() for t in self._tables.values()))

"""
Atmospheric Neutrino Flux Tables - Core Package

This package contains reusable, testable building blocks for:
- Building the bin geometry of published flux tables (log-spaced energy,
  cos(zenith), optional azimuth)
- Loading Bartol, Honda and FLUKA ASCII flux tables into dense binned tables
- Sampling (energy, direction) points proportionally to the tabulated flux
- Serving samples and flux lookups per neutrino species through FluxDriver

License: MIT
"""

from .config import FLUX_FORMAT_CONFIG, FluxFormat
from .binning import BinAxis, FluxGeometry, build_geometry, log_axis, piecewise_log_axis, uniform_axis
from .table import FluxTable
from .data import FluxRecord, load_flux_file, load_flux_stream
from .sampling import FluxSample, FluxSampler
from .driver import DriverState, FluxDriver, FluxDriverConfig
from .errors import (
    DriverStateError,
    EmptyTableError,
    FileOpenError,
    FluxError,
    InvalidGeometryError,
    MalformedRecordError,
    SamplingError,
    UnsupportedSpeciesError,
)
from .export import samples_to_dataframe, table_to_csv_bytes, table_to_dataframe
from .logging_utils import setup_logging

__all__ = [
    "FLUX_FORMAT_CONFIG",
    "FluxFormat",
    "BinAxis",
    "FluxGeometry",
    "build_geometry",
    "log_axis",
    "piecewise_log_axis",
    "uniform_axis",
    "FluxTable",
    "FluxRecord",
    "load_flux_file",
    "load_flux_stream",
    "FluxSample",
    "FluxSampler",
    "DriverState",
    "FluxDriver",
    "FluxDriverConfig",
    "DriverStateError",
    "EmptyTableError",
    "FileOpenError",
    "FluxError",
    "InvalidGeometryError",
    "MalformedRecordError",
    "SamplingError",
    "UnsupportedSpeciesError",
    "samples_to_dataframe",
    "table_to_csv_bytes",
    "table_to_dataframe",
    "setup_logging",
]

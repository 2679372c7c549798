"""
Flux table file loaders.

Expected text formats:

Bartol (BGLRS):
- One comment line, then rows of: Energy(GeV) cos(zenith) Flux Err1 Err2
- Flux is dN/dlogE and is divided by the energy when stored

FLUKA 3D:
- Rows of: Energy(GeV) cos(zenith) Flux Err1 Err2
- cos(zenith) uses the opposite sign convention and is negated
- Read with the same columns as Bartol. Older FLUKA readers took
  "Energy x cos(zenith) x Flux" with single-character separators, so
  cos(zenith) and flux sat in fields 2 and 4; such files need reformatting

Honda (HAKKM) 3D:
- Blocks of 2 header lines followed by 101 rows of:
  Enu(GeV) NuMu NuMubar NuE NuEbar
- No coordinate columns: cos(zenith) and azimuth follow from the position
  of the block in the file (12 azimuth blocks per cos(zenith) section)

Common rules:
- Records with non-positive flux are skipped
- Malformed rows are skipped without aborting the file
- A later record landing in an already filled bin overwrites it

License: MIT
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional, TextIO

import numpy as np

from .config import FLUX_FORMAT_CONFIG, HONDA_SPECIES_COLUMN, FluxFormat
from .errors import FileOpenError, FluxError, MalformedRecordError, UnsupportedSpeciesError
from .table import FluxTable

logger = logging.getLogger(__name__)

_ROW_FIELDS = 5


@dataclass(frozen=True)
class FluxRecord:
    """One parsed table entry, before it is folded into a FluxTable."""
    energy: float
    cos_theta: float
    flux: float
    azimuth: Optional[float] = None


def _check_values(energy: float, flux: float, line: str) -> None:
    """Energy must be positive and finite, flux finite."""
    if not (math.isfinite(energy) and energy > 0.0):
        raise MalformedRecordError(f"Invalid energy in row {line!r}")
    if not math.isfinite(flux):
        raise MalformedRecordError(f"Non-finite flux in row {line!r}")


def _parse_row(line: str) -> FluxRecord:
    """Parse 'energy cos_theta flux err err'. The error columns are not used."""
    fields = line.split()
    if len(fields) < _ROW_FIELDS:
        raise MalformedRecordError(f"Expected {_ROW_FIELDS} fields, got {len(fields)}: {line!r}")
    try:
        energy, cos_theta, flux = (float(x) for x in fields[:3])
    except ValueError as e:
        raise MalformedRecordError(f"Unparsable row {line!r}: {e}") from e
    _check_values(energy, flux, line)
    return FluxRecord(energy=energy, cos_theta=cos_theta, flux=flux)


def _iter_rows(stream: TextIO, header_lines: int) -> Iterator[FluxRecord]:
    for lineno, line in enumerate(stream, start=1):
        if lineno <= header_lines or not line.strip():
            continue
        try:
            yield _parse_row(line)
        except MalformedRecordError as e:
            logger.debug("Skipping line %d: %s", lineno, e)


def iter_bartol_records(stream: TextIO) -> Iterator[FluxRecord]:
    """Records of a Bartol table, flux converted from dN/dlogE to dN/dE."""
    cfg = FLUX_FORMAT_CONFIG[FluxFormat.BARTOL]
    for rec in _iter_rows(stream, cfg["header_lines"]):
        if rec.flux > 0.0:
            # Compensate for logarithmic units: dlogE = dE/E
            rec = FluxRecord(rec.energy, rec.cos_theta, rec.flux / rec.energy)
        yield rec


def iter_fluka_records(stream: TextIO) -> Iterator[FluxRecord]:
    """Records of a FLUKA table, cos(zenith) converted to the internal sign convention."""
    cfg = FLUX_FORMAT_CONFIG[FluxFormat.FLUKA]
    for rec in _iter_rows(stream, cfg["header_lines"]):
        yield FluxRecord(rec.energy, -rec.cos_theta, rec.flux)


def honda_column(pdg: int) -> int:
    """Column of a Honda data row holding the flux of a species."""
    try:
        return HONDA_SPECIES_COLUMN[pdg]
    except KeyError:
        raise UnsupportedSpeciesError(f"No Honda flux column for PDG code {pdg}.") from None


def iter_honda_records(stream: TextIO, pdg: int) -> Iterator[FluxRecord]:
    """
    Records of a Honda 3D table for one species.

    Block (section, subsection) gives
        cos_theta = 1 - section*dcos + dcos/2
        azimuth   = azimuth_min + subsection*dphi
    with section counted from 1 and subsection from 0. A malformed data row
    still uses up its slot in the block.
    """
    column = honda_column(pdg)

    cfg = FLUX_FORMAT_CONFIG[FluxFormat.HONDA]
    header_lines = cfg["header_lines"]
    block_lines = header_lines + cfg["data_lines"]
    blocks_per_sweep = cfg["blocks_per_sweep"]
    ccfg, acfg = cfg["cos_theta"], cfg["azimuth"]
    dcos = (ccfg["high"] - ccfg["low"]) / ccfg["n_bins"]
    dphi = (acfg["high"] - acfg["low"]) / acfg["n_bins"]

    section, subsection = 1, 0
    line_in_block = 0
    for lineno, line in enumerate(stream, start=1):
        if line_in_block >= header_lines:
            fields = line.split()
            try:
                energy = float(fields[0])
                flux = float(fields[column])
                _check_values(energy, flux, line)
            except (IndexError, ValueError) as e:
                logger.debug("Skipping line %d: malformed Honda row %r (%s)", lineno, line, e)
            else:
                yield FluxRecord(
                    energy=energy,
                    cos_theta=1.0 - section * dcos + dcos / 2,
                    flux=flux,
                    azimuth=acfg["low"] + subsection * dphi,
                )

        line_in_block += 1
        if line_in_block == block_lines:
            line_in_block = 0
            subsection += 1
            if subsection == blocks_per_sweep:
                subsection = 0
                section += 1


def iter_records(stream: TextIO, fmt, *, pdg: Optional[int] = None) -> Iterator[FluxRecord]:
    """Dispatch to the record parser of a format."""
    fmt = FluxFormat(fmt)
    if fmt == FluxFormat.BARTOL:
        return iter_bartol_records(stream)
    if fmt == FluxFormat.FLUKA:
        return iter_fluka_records(stream)
    if pdg is None:
        raise UnsupportedSpeciesError("Honda tables hold several species: a PDG code is required.")
    return iter_honda_records(stream, pdg)


def fill_table(
    table: FluxTable,
    records: Iterable[FluxRecord],
    *,
    rng: Optional[np.random.Generator] = None,
    scale: float = 1.0,
) -> int:
    """
    Store records in a table (last write wins) and return how many were stored.

    When the table has an azimuth axis and a record carries no azimuth, one
    is drawn uniformly over the axis range from rng for each stored record.
    """
    azimuth_axis = table.geometry.azimuth
    n_stored = 0
    for rec in records:
        if not rec.flux > 0.0:
            continue

        coords = [rec.energy, rec.cos_theta]
        if azimuth_axis is not None:
            azimuth = rec.azimuth
            if azimuth is None:
                if rng is None:
                    raise ValueError("A random generator is needed to synthesize azimuth values.")
                azimuth = azimuth_axis.low + (azimuth_axis.high - azimuth_axis.low) * rng.random()
            coords.append(azimuth)

        value = scale * rec.flux
        if not math.isfinite(value):
            logger.debug("Skipping record with non-finite flux: %s", rec)
            continue

        if table.fill(coords, value):
            n_stored += 1
            logger.debug(
                "Flux[Ev = %g, cos8 = %g] = %g", rec.energy, rec.cos_theta, value,
            )
        else:
            logger.debug("Record outside table range: %s", rec)
    return n_stored


def load_flux_stream(
    table: FluxTable,
    stream: TextIO,
    fmt,
    *,
    pdg: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    scale: float = 1.0,
) -> int:
    """Parse a text stream of the given format into table."""
    if table is None:
        raise FluxError("Null flux table.")
    return fill_table(table, iter_records(stream, fmt, pdg=pdg), rng=rng, scale=scale)


def load_flux_file(
    table: FluxTable,
    path: Path,
    fmt,
    *,
    pdg: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    scale: float = 1.0,
) -> int:
    """Load one flux file into table and return the number of stored records."""
    path = Path(path)
    logger.info("Loading: %s", path)
    if table is None:
        raise FluxError("Null flux table.")
    try:
        stream = path.open("r")
    except OSError as e:
        raise FileOpenError(f"Could not open file: {path}") from e
    with stream:
        n_stored = load_flux_stream(table, stream, fmt, pdg=pdg, rng=rng, scale=scale)
    logger.info("Stored %d flux records from %s", n_stored, path.name)
    return n_stored

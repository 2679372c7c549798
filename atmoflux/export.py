"""
Export helpers for flux tables and samples.

License: MIT
"""

from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd

from .sampling import FluxSample
from .table import FluxTable


def table_to_dataframe(table: FluxTable) -> pd.DataFrame:
    """
    One row per bin, in the table's flattened order.

    Columns: <axis>_low, <axis>_high for each axis, then Flux.
    """
    grids = np.meshgrid(*[np.arange(axis.n_bins) for axis in table.axes], indexing="ij")
    columns = {}
    for axis, idx in zip(table.axes, grids):
        idx = idx.ravel()
        columns[f"{axis.name}_low"] = axis.edges[idx]
        columns[f"{axis.name}_high"] = axis.edges[idx + 1]
    columns["Flux"] = table.content.ravel()
    return pd.DataFrame(columns)


def table_to_csv_bytes(table: FluxTable) -> bytes:
    """Serialize a flux table to UTF-8 CSV bytes."""
    return table_to_dataframe(table).to_csv(index=False).encode("utf-8")


def samples_to_dataframe(samples: Iterable[FluxSample]) -> pd.DataFrame:
    rows = [
        {
            "Energy_GeV": s.energy,
            "CosTheta": s.cos_theta,
            "Azimuth": s.azimuth,
            "Pdg": s.pdg,
            "Weight": s.weight,
        }
        for s in samples
    ]
    return pd.DataFrame(rows, columns=["Energy_GeV", "CosTheta", "Azimuth", "Pdg", "Weight"])

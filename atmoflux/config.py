"""
Configuration for the supported flux table formats.

The numbers below describe the shape of the published tables. They are
format metadata: changing them breaks compatibility with existing files.

Energies are in GeV, angles in radians.

License: MIT
"""

from enum import Enum
import math


class FluxFormat(str, Enum):
    BARTOL = "bartol"
    HONDA = "honda"
    FLUKA = "fluka"


# PDG particle codes
PDG_NUE = 12
PDG_NUEBAR = -12
PDG_NUMU = 14
PDG_NUMUBAR = -14

PDG_NAMES = {
    PDG_NUE: "nu_e",
    PDG_NUEBAR: "nu_e_bar",
    PDG_NUMU: "nu_mu",
    PDG_NUMUBAR: "nu_mu_bar",
}

# Honda data lines: Enu(GeV) NuMu NuMubar NuE NuEbar
HONDA_SPECIES_COLUMN = {
    PDG_NUMU: 1,
    PDG_NUMUBAR: 2,
    PDG_NUE: 3,
    PDG_NUEBAR: 4,
}

AZIMUTH_MIN = 0.0
AZIMUTH_MAX = 2.0 * math.pi

FLUX_FORMAT_CONFIG = {
    FluxFormat.BARTOL: {
        "info": "BGLRS (Bartol) 2D tables: low-energy (solar min/max) and high-energy pieces.",
        "cos_theta": {"low": -1.0, "high": 1.0, "n_bins": 20},
        "energy": {
            "e_min": 0.1,
            "low_bins_per_decade": 20,
            "n_low": 40,
            "high_bins_per_decade": 10,
            "n_high": 30,
        },
        "azimuth": None,
        "header_lines": 1,
        # Tables give dN/dlogE; dlogE = dE/E
        "divide_by_energy": True,
        "flip_cos_theta": False,
        "resample_azimuth": True,
    },
    FluxFormat.FLUKA: {
        "info": "FLUKA 3D tables (Battistoni et al.), opposite zenith-angle sign convention.",
        "cos_theta": {"low": -1.0, "high": 1.0, "n_bins": 40},
        "energy": {
            "e_min": 0.1,
            "low_bins_per_decade": 20,
            "n_low": 61,
            "high_bins_per_decade": 20,
            "n_high": 0,
        },
        "azimuth": None,
        "header_lines": 0,
        "divide_by_energy": False,
        "flip_cos_theta": True,
        "resample_azimuth": True,
    },
    FluxFormat.HONDA: {
        "info": "Honda (HAKKM) 3D tables with azimuth dependence.",
        "cos_theta": {"low": -1.0, "high": 1.0, "n_bins": 20},
        # Tabulated energies 0.1 .. 1e4 GeV sit at the log-centre of each bin
        "energy": {
            "e_min": 10.0 ** (-1.0 - 0.5 / 20),
            "low_bins_per_decade": 20,
            "n_low": 101,
            "high_bins_per_decade": 20,
            "n_high": 0,
        },
        "azimuth": {"low": AZIMUTH_MIN, "high": AZIMUTH_MAX, "n_bins": 12},
        "header_lines": 2,
        "data_lines": 101,
        "blocks_per_sweep": 12,
        "divide_by_energy": False,
        "flip_cos_theta": False,
        "resample_azimuth": False,
    },
}

import numpy as np
import pytest

from atmoflux.binning import BinAxis, build_geometry, log_axis, piecewise_log_axis, uniform_axis
from atmoflux.config import FluxFormat
from atmoflux.errors import InvalidGeometryError


def test_uniform_axis_edges():
    axis = uniform_axis("cos_theta", -1.0, 1.0, 20)
    assert axis.n_bins == 20
    assert axis.edges.size == axis.n_bins + 1
    assert np.all(np.diff(axis.edges) > 0)
    assert axis.low == -1.0
    assert np.isclose(axis.high, 1.0)
    assert np.allclose(axis.widths, 0.1)


def test_piecewise_log_axis_two_regimes():
    axis = piecewise_log_axis("energy", 0.1, 20, 40, 10, 30)
    assert axis.n_bins == 70
    assert axis.edges.size == 71
    assert np.all(np.diff(axis.edges) > 0)
    assert axis.edges[0] == 0.1
    assert axis.edges[40] == pytest.approx(10.0)
    assert axis.edges[-1] == pytest.approx(1000.0)

    # 20 bins per decade below 10 GeV, 10 above
    log_steps = np.diff(np.log10(axis.edges))
    assert np.allclose(log_steps[:40], 0.05)
    assert np.allclose(log_steps[40:], 0.1)


def test_piecewise_log_axis_shared_boundary_is_continuous():
    full = piecewise_log_axis("energy", 0.1, 20, 40, 10, 30)
    low_only = piecewise_log_axis("energy", 0.1, 20, 40, 10, 0)
    assert np.array_equal(full.edges[:41], low_only.edges)


def test_log_axis_matches_single_regime():
    a = log_axis("energy", 0.1, 20, 61)
    b = piecewise_log_axis("energy", 0.1, 20, 61, 20, 0)
    assert a == b
    assert a.high == pytest.approx(10 ** 2.05)


@pytest.mark.parametrize("args", [
    ("x", 0.0, 1.0, 0),
    ("x", 1.0, 1.0, 5),
    ("x", 2.0, 1.0, 5),
])
def test_uniform_axis_invalid_raises(args):
    with pytest.raises(InvalidGeometryError):
        uniform_axis(*args)


def test_log_axis_invalid_raises():
    with pytest.raises(InvalidGeometryError):
        piecewise_log_axis("energy", 0.0, 20, 40, 10, 30)
    with pytest.raises(InvalidGeometryError):
        piecewise_log_axis("energy", 0.1, 20, 0, 10, 0)
    with pytest.raises(InvalidGeometryError):
        piecewise_log_axis("energy", 0.1, 0, 10, 10, 0)


def test_bin_axis_rejects_bad_edges():
    with pytest.raises(InvalidGeometryError):
        BinAxis("x", [0.0, 2.0, 1.0])
    with pytest.raises(InvalidGeometryError):
        BinAxis("x", [0.0, 1.0, 1.0])
    with pytest.raises(InvalidGeometryError):
        BinAxis("x", [1.0])
    # Geometry errors are ValueErrors too
    with pytest.raises(ValueError):
        BinAxis("x", [0.0, np.nan])


def test_bin_axis_is_immutable():
    edges = [0.0, 1.0, 2.0]
    axis = BinAxis("x", edges)
    edges[0] = -5.0
    assert axis.edges[0] == 0.0
    with pytest.raises(ValueError):
        axis.edges[0] = 3.0


def test_find_bin_half_open():
    axis = BinAxis("x", [0.0, 1.0, 2.0, 4.0])
    assert axis.find_bin(0.0) == 0
    assert axis.find_bin(0.999) == 0
    assert axis.find_bin(1.0) == 1
    assert axis.find_bin(3.5) == 2
    # Last edge is exclusive
    assert axis.find_bin(4.0) == -1
    assert axis.find_bin(-0.1) == -1
    assert axis.find_bin(float("nan")) == -1


def test_format_geometries():
    bartol = build_geometry(FluxFormat.BARTOL)
    assert bartol.shape == (70, 20)
    assert not bartol.has_azimuth
    assert bartol.n_bins == 1400

    fluka = build_geometry("fluka")
    assert fluka.shape == (61, 40)

    honda = build_geometry(FluxFormat.HONDA)
    assert honda.shape == (101, 20, 12)
    assert honda.azimuth.low == 0.0
    assert np.isclose(honda.azimuth.high, 2 * np.pi)


def test_optional_azimuth_axis_for_2d_formats():
    geometry = build_geometry(FluxFormat.BARTOL, azimuth_bins=6)
    assert geometry.shape == (70, 20, 6)
    # Honda keeps its own azimuth binning
    assert build_geometry(FluxFormat.HONDA, azimuth_bins=6).shape == (101, 20, 12)


def test_honda_tabulated_energies_sit_inside_their_bins():
    energy = build_geometry(FluxFormat.HONDA).energy
    for k in range(101):
        e = 10.0 ** (-1.0 + k / 20.0)
        assert energy.find_bin(e) == k

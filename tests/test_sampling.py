import math

import numpy as np
import pytest

from atmoflux.binning import FluxGeometry, build_geometry, uniform_axis
from atmoflux.config import FluxFormat
from atmoflux.errors import EmptyTableError
from atmoflux.sampling import FluxSample, FluxSampler
from atmoflux.table import FluxTable


class _FixedRng:
    """Stands in for numpy's Generator, always returning the same uniform value."""

    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


def _single_bin_table(fmt=FluxFormat.BARTOL, indices=(30, 5)):
    table = FluxTable(build_geometry(fmt))
    table.set(indices, 7.0)
    return table


def test_sampling_single_bin_stays_inside_bin():
    table = _single_bin_table()
    sampler = FluxSampler(table, resample_azimuth=True)
    e_low, e_high = table.geometry.energy.bin_bounds(30)
    c_low, c_high = table.geometry.cos_theta.bin_bounds(5)

    rng = np.random.default_rng(3)
    for _ in range(500):
        s = sampler.sample(rng, 14)
        assert e_low <= s.energy < e_high
        assert c_low <= s.cos_theta < c_high
        assert 0.0 <= s.azimuth < 2 * math.pi


@pytest.mark.parametrize("u", [0.0, 0.25, 0.999999999])
def test_sampling_single_bin_for_any_draw(u):
    table = _single_bin_table()
    sampler = FluxSampler(table)
    assert sampler.sample_bin(_FixedRng(u)) == (30, 5)

    energy, cos_theta, _ = sampler.sample_point(_FixedRng(u), (30, 5))
    assert table.bin_index_of(energy, cos_theta) == (30, 5)


def test_empty_table_raises():
    table = FluxTable(build_geometry(FluxFormat.BARTOL))
    with pytest.raises(EmptyTableError):
        FluxSampler(table)


def test_energy_range_excluding_all_mass_raises():
    table = _single_bin_table()
    with pytest.raises(EmptyTableError):
        FluxSampler(table, energy_range=(100.0, 200.0))


def test_sampling_reproducible_with_seed():
    table = FluxTable(build_geometry(FluxFormat.BARTOL))
    table.set((10, 3), 1.0)
    table.set((50, 17), 2.0)
    sampler = FluxSampler(table)

    rng_a = np.random.default_rng(123)
    rng_b = np.random.default_rng(123)
    a = [sampler.sample(rng_a, 14) for _ in range(20)]
    b = [sampler.sample(rng_b, 14) for _ in range(20)]
    assert a == b


def test_sampling_follows_bin_masses():
    geometry = FluxGeometry(
        energy=uniform_axis("energy", 0.0, 2.0, 2),
        cos_theta=uniform_axis("cos_theta", -1.0, 1.0, 1),
    )
    table = FluxTable(geometry)
    table.set((0, 0), 1.0)
    table.set((1, 0), 3.0)
    sampler = FluxSampler(table)

    rng = np.random.default_rng(0)
    energies = np.array([sampler.sample(rng, 12).energy for _ in range(20000)])
    assert np.isclose(np.mean(energies >= 1.0), 0.75, atol=0.02)


def test_zero_mass_bins_are_never_chosen():
    geometry = FluxGeometry(
        energy=uniform_axis("energy", 0.0, 4.0, 4),
        cos_theta=uniform_axis("cos_theta", -1.0, 1.0, 1),
    )
    table = FluxTable(geometry)
    table.set((1, 0), 1.0)
    table.set((3, 0), 1.0)
    sampler = FluxSampler(table)

    assert sampler.sample_bin(_FixedRng(0.0)) == (1, 0)
    assert sampler.sample_bin(_FixedRng(0.5)) == (3, 0)
    assert sampler.sample_bin(_FixedRng(1.0)) == (3, 0)


def test_table_azimuth_used_for_honda():
    table = _single_bin_table(FluxFormat.HONDA, indices=(40, 10, 7))
    sampler = FluxSampler(table)
    low, high = table.geometry.azimuth.bin_bounds(7)

    rng = np.random.default_rng(5)
    for _ in range(200):
        assert low <= sampler.sample(rng, 14).azimuth < high


def test_resampled_azimuth_ignores_table_bin():
    geometry = build_geometry(FluxFormat.BARTOL, azimuth_bins=4)
    table = FluxTable(geometry)
    table.set((30, 5, 0), 1.0)
    sampler = FluxSampler(table, resample_azimuth=True)

    rng = np.random.default_rng(9)
    azimuths = np.array([sampler.sample(rng, 14).azimuth for _ in range(500)])
    assert azimuths.min() >= 0.0
    assert azimuths.max() < 2 * math.pi
    # Outside the first quarter, which holds all the table mass
    assert np.any(azimuths > math.pi / 2)


def test_energy_range_is_respected():
    table = FluxTable(build_geometry(FluxFormat.BARTOL))
    for i in range(70):
        table.set((i, 10), 1.0)
    sampler = FluxSampler(table, energy_range=(1.5, 20.0))

    rng = np.random.default_rng(11)
    for _ in range(300):
        assert 1.5 <= sampler.sample(rng, 14).energy <= 20.0


def test_flux_sample_direction_and_momentum():
    down = FluxSample(energy=2.0, cos_theta=1.0, azimuth=0.3, pdg=14)
    assert np.allclose(down.direction, (0.0, 0.0, -1.0))

    s = FluxSample(energy=3.0, cos_theta=0.0, azimuth=0.0, pdg=-14)
    assert np.allclose(s.direction, (-1.0, 0.0, 0.0))
    px, py, pz, e = s.momentum
    assert np.isclose(math.sqrt(px ** 2 + py ** 2 + pz ** 2), e)
    assert s.weight == 1.0

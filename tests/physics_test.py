import math

import numpy as np
import pytest

import puck_sim.config as cfg
from puck_sim.baskets import ALL_BASKETS, DEFAULT_BASKET, basket_by_id
from puck_sim.physics import (
    ergun_inertial_factor,
    kozeny_carman_permeability,
    water_viscosity,
)

from conftest import make_params


def test_viscosity_decreases_over_brew_range():
    temps = np.linspace(70.0, 100.0, 31)
    mu = [water_viscosity(t) for t in temps]
    assert all(b < a for a, b in zip(mu, mu[1:]))
    assert water_viscosity(90.0) == pytest.approx(0.315e-3)


def test_viscosity_clamps_outside_table():
    assert water_viscosity(150.0) == water_viscosity(100.0)
    assert water_viscosity(-5.0) == water_viscosity(20.0)


def test_kozeny_carman_formula_and_guard():
    d = 400e-6
    eps = 0.4
    expected = cfg.PERMEABILITY_SCALE * eps ** 3 * d ** 2 / (180.0 * (1.0 - eps) ** 2)
    assert kozeny_carman_permeability(d, eps) == pytest.approx(expected)

    # degenerate porosity never blows up
    assert np.isfinite(kozeny_carman_permeability(d, 1.0))
    assert kozeny_carman_permeability(d, 0.0) > 0.0


def test_ergun_factor_grows_with_speed():
    f1 = ergun_inertial_factor(1e-3, 400e-6, 0.38, 3e-4)
    f2 = ergun_inertial_factor(2e-3, 400e-6, 0.38, 3e-4)
    assert f2 == pytest.approx(2.0 * f1)
    assert ergun_inertial_factor(0.0, 400e-6, 0.38, 3e-4) == 0.0


def test_tamp_has_diminishing_returns():
    eps = [make_params(tamp_pressure_kg=t).base_porosity for t in (5.0, 10.0, 15.0, 20.0, 25.0, 30.0)]
    drops = [a - b for a, b in zip(eps, eps[1:])]
    assert all(d > 0.0 for d in drops)
    assert all(b < a for a, b in zip(drops, drops[1:]))


def test_moisture_lowers_porosity_within_band():
    dry = make_params(moisture_content=0.02).base_porosity
    wet = make_params(moisture_content=0.18).base_porosity
    assert wet < dry
    for p in (make_params(tamp_pressure_kg=30.0, moisture_content=0.18, bean_density=1.25),
              make_params(tamp_pressure_kg=5.0, moisture_content=0.02, bean_density=1.05)):
        assert cfg.POROSITY_MIN <= p.base_porosity <= cfg.POROSITY_MAX


def test_clamped_pulls_values_into_range():
    p = make_params(grind_size_microns=5000.0, brew_pressure_bar=-3.0, distribution_quality=0.0,
                    water_temp_c=float("nan")).clamped()
    assert p.grind_size_microns == 800.0
    assert p.brew_pressure_bar == 1.0
    assert p.distribution_quality == cfg.DISTRIBUTION_QUALITY_MIN
    assert p.water_temp_c == 70.0


def test_every_field_is_clamped_to_config_ranges():
    low = make_params(**{name: lo - 1.0 for name, (lo, _) in cfg.PARAM_RANGES.items()}).clamped()
    high = make_params(**{name: hi + 1.0 for name, (_, hi) in cfg.PARAM_RANGES.items()}).clamped()
    for name, (lo, hi) in cfg.PARAM_RANGES.items():
        assert getattr(low, name) == lo
        assert getattr(high, name) == hi


def test_driving_pressure_with_valve():
    tea = basket_by_id("decent_tea")
    assert make_params(basket=tea, brew_pressure_bar=1.5).driving_pressure_pa == 0.0
    assert make_params(basket=tea, brew_pressure_bar=9.0).driving_pressure_pa == pytest.approx(7e5)
    assert make_params(brew_pressure_bar=9.0).driving_pressure_pa == pytest.approx(9e5)


def test_puck_height_fits_nominal_basket():
    p = make_params()
    assert 5.0 < p.puck_height_mm < DEFAULT_BASKET.depth_mm
    assert p.headspace_mm == pytest.approx(DEFAULT_BASKET.depth_mm - p.puck_height_mm)
    assert make_params(dose_grams=25.0).puck_height_mm > p.puck_height_mm


def test_fingerprint_and_seed():
    a = make_params()
    assert a.fingerprint() == make_params().fingerprint()
    assert a.fingerprint() != make_params(brew_pressure_bar=8.0).fingerprint()

    # the bed realization ignores grind, pressure, temperature and distribution quality
    assert a.bed_seed() == make_params(grind_size_microns=300.0, brew_pressure_bar=6.0,
                                       water_temp_c=88.0, distribution_quality=0.4).bed_seed()
    assert a.bed_seed() != make_params(dose_grams=17.0).bed_seed()


def test_sensor_overrides_replace_only_given_values():
    p = make_params()
    q = p.with_sensor_overrides(brew_pressure_bar=8.2)
    assert q.brew_pressure_bar == 8.2
    assert q.water_temp_c == p.water_temp_c
    assert p.brew_pressure_bar == 9.0


def test_basket_catalog():
    assert len(ALL_BASKETS) == 6
    assert DEFAULT_BASKET.id == "decent_18g"
    valves = [b for b in ALL_BASKETS if b.has_back_pressure_valve]
    assert [b.id for b in valves] == ["decent_tea"]
    assert DEFAULT_BASKET.area_m2 == pytest.approx(math.pi * 0.029 ** 2)
    with pytest.raises(KeyError):
        basket_by_id("nope")

import pytest

from puck_sim.baskets import DEFAULT_BASKET
from puck_sim.physics import SimulationParameters


def make_params(basket=DEFAULT_BASKET, **overrides) -> SimulationParameters:
    base = dict(
        grind_size_microns=400.0,
        dose_grams=18.0,
        tamp_pressure_kg=15.0,
        brew_pressure_bar=9.0,
        water_temp_c=93.0,
        bean_density=1.15,
        moisture_content=0.10,
        distribution_quality=1.0,
    )
    base.update(overrides)
    return SimulationParameters(basket=basket, **base)


@pytest.fixture
def params() -> SimulationParameters:
    return make_params()

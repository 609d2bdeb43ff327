from puck_sim.baskets import ALL_BASKETS, DEFAULT_BASKET
from puck_sim.physics import SimulationParameters
from puck_sim.simulation import simulate


def make_params(basket=DEFAULT_BASKET, **overrides) -> SimulationParameters:
    base = dict(
        grind_size_microns=400.0,
        dose_grams=basket.nominal_dose_g,
        tamp_pressure_kg=15.0,
        brew_pressure_bar=9.0,
        water_temp_c=93.0,
        bean_density=1.15,
        moisture_content=0.10,
        distribution_quality=0.85,
    )
    base.update(overrides)
    return SimulationParameters(basket=basket, **base)


def main():
    for basket in ALL_BASKETS:
        res = simulate(make_params(basket))
        print(
            f"{basket.name:14s} flow={res.total_flow_rate:5.2f} ml/s "
            f"time={res.effective_shot_time:5.1f} s "
            f"risk={res.channeling_risk:4.2f} uniformity={res.uniformity_index:4.2f} "
            f"channels={len(res.channel_locations)} iters={res.solver_iterations}"
        )

    # distribution sweep on the default basket
    for q in (1.0, 0.85, 0.65, 0.3):
        res = simulate(make_params(distribution_quality=q))
        print(f"distribution={q:4.2f} risk={res.channeling_risk:4.2f} channels={len(res.channel_locations)}")


if __name__ == "__main__":
    main()
